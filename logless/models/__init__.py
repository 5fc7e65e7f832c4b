"""Core data models for logless."""

from .tracing import (
    REQUEST_TAG,
    RESPONSE_TAG,
    LogEntry,
    Severity,
    TraceDocument,
    Transaction,
    format_timestamp,
)

__all__ = [
    "REQUEST_TAG",
    "RESPONSE_TAG",
    "LogEntry",
    "Severity",
    "TraceDocument",
    "Transaction",
    "format_timestamp",
]
