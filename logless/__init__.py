"""Capture the logs, request and outcome of serverless handlers as one trace."""

from .config import Settings
from .logging_config import setup_logging
from .models import LogEntry, Severity, TraceDocument, Transaction
from .recorder import ITraceRecorder, TraceRecorder
from .sink import HttpLogSink, ILogSink
from .wrapper import CompletionHook, Invocation, SerializedError, capture, serialize_error

__all__ = [
    # Entry point
    "capture",
    # Models
    "LogEntry",
    "Severity",
    "TraceDocument",
    "Transaction",
    # Components
    "ITraceRecorder",
    "TraceRecorder",
    "ILogSink",
    "HttpLogSink",
    "CompletionHook",
    "Invocation",
    "SerializedError",
    "serialize_error",
    # Configuration
    "Settings",
    "setup_logging",
]
