"""Log sink module."""

from .sink import HttpLogSink, ILogSink

__all__ = ["HttpLogSink", "ILogSink"]
