"""Per-invocation trace recorder and ambient logging interception."""

import logging
import threading
from contextvars import ContextVar
from typing import Any, Protocol

from ..logging_config import PACKAGE_LOGGER
from ..models import REQUEST_TAG, LogEntry, Severity, TraceDocument, Transaction, format_timestamp

# Recorder that owns log records emitted from the current thread/task.
_active_recorder: ContextVar["TraceRecorder | None"] = ContextVar(
    "logless_active_recorder", default=None
)


class ITraceRecorder(Protocol):
    """Append-only log buffer for one transaction."""

    def begin(self, source: str) -> Transaction:
        """Start a new transaction and clear the buffer."""
        ...

    def intercept(self) -> None:
        """Start capturing ambient log calls."""
        ...

    def restore(self) -> None:
        """Stop capturing and put ambient logging back as it was."""
        ...

    def append(self, entry: LogEntry) -> None:
        """Append an entry directly."""
        ...

    def finalize(self) -> TraceDocument:
        """Snapshot the buffer into a document."""
        ...


class _RootLevelGuard:
    """Reference-counted lowering of the root logger level.

    Overlapping invocations share the root logger; the saved level is put
    back only when the last of them restores. Handlers already on the root
    logger get an _OriginalLevelFilter meanwhile, so they keep emitting
    exactly what they did before.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._holders = 0
        self._saved_level: int | None = None
        self._filter: _OriginalLevelFilter | None = None
        self._filtered: list[logging.Handler] = []

    def acquire(self, level: int) -> None:
        with self._lock:
            root = logging.getLogger()
            if self._holders == 0:
                self._saved_level = root.level
                self._filter = _OriginalLevelFilter(root.level)
                self._filtered = [h for h in root.handlers if not isinstance(h, CaptureHandler)]
                for handler in self._filtered:
                    handler.addFilter(self._filter)
            self._holders += 1
            if root.getEffectiveLevel() > level:
                root.setLevel(level)

    def release(self) -> None:
        with self._lock:
            self._holders -= 1
            if self._holders == 0:
                logging.getLogger().setLevel(self._saved_level)
                for handler in self._filtered:
                    handler.removeFilter(self._filter)
                self._filtered = []
                self._filter = None
                self._saved_level = None


class _OriginalLevelFilter(logging.Filter):
    """Drop records that only got through because the root level was lowered."""

    def __init__(self, root_level: int):
        super().__init__()
        self._root_level = root_level

    def filter(self, record: logging.LogRecord) -> bool:
        root = logging.getLogger()
        logger = None if record.name == root.name else logging.getLogger(record.name)
        while logger is not None and logger is not root:
            # A logger with its own level decided the same way it always did.
            if logger.level:
                return True
            logger = logger.parent
        return record.levelno >= self._root_level


_root_level = _RootLevelGuard()


class CaptureHandler(logging.Handler):
    """Root handler that turns log records into entries of one recorder."""

    def __init__(self, recorder: "TraceRecorder", level: int = logging.DEBUG):
        super().__init__(level=level)
        self._recorder = recorder

    def emit(self, record: logging.LogRecord) -> None:
        if _active_recorder.get() is not self._recorder:
            return
        if record.name == PACKAGE_LOGGER or record.name.startswith(PACKAGE_LOGGER + "."):
            return

        try:
            stack = None
            if record.exc_info:
                stack = logging.Formatter().formatException(record.exc_info)
            self._recorder.append(
                LogEntry(
                    timestamp=format_timestamp(record.created),
                    severity=Severity.from_level(record.levelno),
                    payload=record.getMessage(),
                    stack=stack,
                )
            )
        except Exception:
            self.handleError(record)


class TraceRecorder:
    """Log buffer, transaction identity and interception for one invocation."""

    def __init__(self, capture_level: int = logging.DEBUG):
        self._capture_level = capture_level
        self._transaction: Transaction | None = None
        self._entries: list[LogEntry] = []
        self._handler: CaptureHandler | None = None
        self._previous: "TraceRecorder | None" = None

    @property
    def transaction(self) -> Transaction | None:
        return self._transaction

    @property
    def entries(self) -> tuple[LogEntry, ...]:
        return tuple(self._entries)

    @property
    def intercepting(self) -> bool:
        return self._handler is not None

    def begin(self, source: str) -> Transaction:
        """Start a new transaction and clear the buffer."""
        self._transaction = Transaction.new(source)
        self._entries = []
        return self._transaction

    def intercept(self) -> None:
        """
        Start capturing ambient log calls into this recorder.

        Calling it again while already intercepting does nothing.
        """
        if self._handler is not None:
            return

        handler = CaptureHandler(self, level=self._capture_level)
        _root_level.acquire(self._capture_level)
        logging.getLogger().addHandler(handler)
        self._previous = _active_recorder.get()
        _active_recorder.set(self)
        self._handler = handler

    def restore(self) -> None:
        """Remove the capture handler and restore the root level. Safe to repeat."""
        handler, self._handler = self._handler, None
        if handler is None:
            return

        try:
            logging.getLogger().removeHandler(handler)
        finally:
            _root_level.release()
            if _active_recorder.get() is self:
                _active_recorder.set(self._previous)
            self._previous = None

    def append(self, entry: LogEntry) -> None:
        """Append an entry, bypassing interception."""
        if self._transaction is None:
            raise RuntimeError("append() called before begin()")
        self._entries.append(entry)

    def record_request(self, event: Any) -> None:
        """Append the inbound event as the request entry."""
        self.append(LogEntry(severity=Severity.INFO, payload=event, tags=(REQUEST_TAG,)))

    def finalize(self) -> TraceDocument:
        """Snapshot the buffer into a document for the current transaction."""
        if self._transaction is None:
            raise RuntimeError("finalize() called before begin()")
        return TraceDocument(
            source=self._transaction.source,
            transaction_id=self._transaction.id,
            logs=tuple(self._entries),
        )
