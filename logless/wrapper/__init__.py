"""Invocation wrapper module."""

from .errors import SerializedError, serialize_error
from .wrapper import CompletionHook, InstrumentedContext, Invocation, capture

__all__ = [
    "CompletionHook",
    "InstrumentedContext",
    "Invocation",
    "SerializedError",
    "capture",
    "serialize_error",
]
