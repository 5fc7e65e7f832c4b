"""Trace recorder module."""

from .recorder import CaptureHandler, ITraceRecorder, TraceRecorder

__all__ = ["CaptureHandler", "ITraceRecorder", "TraceRecorder"]
