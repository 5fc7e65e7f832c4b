"""Wrap a serverless handler so each invocation ships one trace.

The wrapped handler behaves exactly like the original toward its caller.
Whichever completion idiom the handler uses (``context.done``/``succeed``/
``fail``, a trailing ``callback``, or plain return/raise), completion funnels
into :meth:`Invocation.complete`, which records the terminal entry, hands the
finished document to the sink and restores ambient logging before the
original hook runs.
"""

import functools
import inspect
from enum import Enum
from typing import Any, Callable

from ..config import Settings
from ..logging_config import get_logger
from ..models import RESPONSE_TAG, LogEntry, Severity
from ..recorder import TraceRecorder
from ..sink import HttpLogSink, ILogSink
from .errors import serialize_error

logger = get_logger(__name__)


Handler = Callable[..., Any]


class CompletionHook(str, Enum):
    """Ways a handler can signal that it is finished."""

    DONE = "done"
    SUCCEED = "succeed"
    FAIL = "fail"
    CALLBACK = "callback"


def _error_and_result(error: Any = None, result: Any = None, *_args, **_kwargs) -> tuple[Any, Any]:
    return error, result


def _result_only(result: Any = None, *_args, **_kwargs) -> tuple[Any, Any]:
    return None, result


def _error_only(error: Any = None, *_args, **_kwargs) -> tuple[Any, Any]:
    return error, None


# Every hook reduces to one (error, result) pair. Extra arguments are only
# forwarded to the original hook.
_NORMALIZERS: dict[CompletionHook, Callable[..., tuple[Any, Any]]] = {
    CompletionHook.DONE: _error_and_result,
    CompletionHook.SUCCEED: _result_only,
    CompletionHook.FAIL: _error_only,
    CompletionHook.CALLBACK: _error_and_result,
}

_CONTEXT_HOOKS = {
    CompletionHook.DONE.value: CompletionHook.DONE,
    CompletionHook.SUCCEED.value: CompletionHook.SUCCEED,
    CompletionHook.FAIL.value: CompletionHook.FAIL,
}


def _has_context_hooks(context: Any) -> bool:
    return any(callable(getattr(context, name, None)) for name in _CONTEXT_HOOKS)


class Invocation:
    """One call of a wrapped handler, from request entry to sent trace."""

    def __init__(self, source: str, sink: ILogSink, recorder: TraceRecorder):
        self._source = source
        self._sink = sink
        self._recorder = recorder
        self._completed = False

    @property
    def completed(self) -> bool:
        return self._completed

    def open(self, event: Any) -> None:
        """Start the transaction, begin capturing and record the request."""
        self._recorder.begin(self._source)
        self._recorder.intercept()
        self._recorder.record_request(event)

    def close(self) -> None:
        self._recorder.restore()

    def complete(self, error: Any, result: Any) -> bool:
        """
        Record the terminal entry, send the trace and stop capturing.

        Only the first completion is recorded.

        Returns:
            True if this call completed the invocation.
        """
        if self._completed:
            logger.warning("Invocation of %s completed more than once", self._source)
            return False
        self._completed = True

        try:
            self._recorder.append(self._terminal_entry(error, result))
            document = self._recorder.finalize()
            self._sink.send(document)
        except Exception:
            logger.exception("Failed to send trace for %s", self._source)
        finally:
            self._recorder.restore()
        return True

    def instrument(self, hook: CompletionHook, original: Callable) -> Callable:
        """Return a hook that completes the invocation, then calls ``original``."""
        normalize = _NORMALIZERS[hook]

        @functools.wraps(original)
        def instrumented(*args, **kwargs):
            error, result = normalize(*args, **kwargs)
            self.complete(error, result)
            return original(*args, **kwargs)

        return instrumented

    def arguments(self, event: Any, context: Any, callback: Callable | None) -> tuple:
        """Arguments for the user handler, with completion hooks instrumented."""
        if _has_context_hooks(context):
            context = InstrumentedContext(context, self)
        if callback is None:
            return event, context
        return event, context, self.instrument(CompletionHook.CALLBACK, callback)

    def settle(self, result: Any, context: Any, callback: Callable | None) -> Any:
        """
        Handler returned. With no completion hook to call later, the return
        value is the result; otherwise the invocation stays open until a hook
        completes it.
        """
        if not self._completed and callback is None and not _has_context_hooks(context):
            self.complete(None, result)
        return result

    def fail(self, error: Exception, context: Any, callback: Callable | None) -> Any:
        """
        Handler raised before completing: record the error, then hand it to
        the original failure hook. With no hook to call, the error is
        re-raised unchanged.
        """
        self.complete(error, None)
        if callback is not None:
            return callback(error)

        fail = getattr(context, CompletionHook.FAIL.value, None)
        if callable(fail):
            return fail(error)
        raise error

    @staticmethod
    def _terminal_entry(error: Any, result: Any) -> LogEntry:
        if error is not None:
            return serialize_error(error).to_entry()
        return LogEntry(severity=Severity.INFO, payload=result, tags=(RESPONSE_TAG,))


class InstrumentedContext:
    """Proxy for the platform context with instrumented completion methods.

    Reads and writes go through to the original context; ``done``,
    ``succeed`` and ``fail`` are instrumented when the original has them.
    """

    def __init__(self, context: Any, invocation: Invocation):
        object.__setattr__(self, "_context", context)
        object.__setattr__(self, "_invocation", invocation)

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._context, name)
        hook = _CONTEXT_HOOKS.get(name)
        if hook is not None and callable(attr):
            return self._invocation.instrument(hook, attr)
        return attr

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(self._context, name, value)

    def __delattr__(self, name: str) -> None:
        delattr(self._context, name)

    def __repr__(self) -> str:
        return f"InstrumentedContext({self._context!r})"


def capture(
    source: str,
    handler: Handler,
    sink: ILogSink | None = None,
    settings: Settings | None = None,
) -> Handler:
    """
    Wrap ``handler`` so every invocation ships one trace to ``sink``.

    Args:
        source: Name of the handler/service, sent with every trace.
        handler: ``handler(event, context[, callback])``, sync or async.
        sink: Where traces go. Defaults to an HttpLogSink built from settings.
        settings: Defaults to ``Settings.from_env()``.

    Returns:
        Drop-in replacement for ``handler`` with ``source`` and ``sink``
        attributes.
    """
    if settings is None:
        settings = Settings.from_env()
    if sink is None:
        sink = HttpLogSink.from_settings(settings)
    capture_level = settings.capture_level

    def start(event: Any) -> Invocation:
        invocation = Invocation(source, sink, TraceRecorder(capture_level))
        invocation.open(event)
        return invocation

    if inspect.iscoroutinefunction(handler):

        @functools.wraps(handler)
        async def wrapped(event, context=None, callback=None):
            invocation = start(event)
            try:
                try:
                    result = await handler(*invocation.arguments(event, context, callback))
                except Exception as error:
                    if invocation.completed:
                        raise
                    return invocation.fail(error, context, callback)
                return invocation.settle(result, context, callback)
            finally:
                invocation.close()

    else:

        @functools.wraps(handler)
        def wrapped(event, context=None, callback=None):
            invocation = start(event)
            try:
                try:
                    result = handler(*invocation.arguments(event, context, callback))
                except Exception as error:
                    if invocation.completed:
                        raise
                    return invocation.fail(error, context, callback)
                return invocation.settle(result, context, callback)
            finally:
                invocation.close()

    wrapped.source = source
    wrapped.sink = sink
    return wrapped
