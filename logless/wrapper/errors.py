"""Turn whatever a handler fails with into a stable payload."""

import traceback
from dataclasses import dataclass
from functools import singledispatch

from ..models import RESPONSE_TAG, LogEntry, Severity

DEFAULT_ERROR_NAME = "Error"


@dataclass(frozen=True)
class SerializedError:
    """Failure rendered as text, with the traceback when there is one."""

    payload: str
    stack: str | None = None

    def to_entry(self) -> LogEntry:
        """Terminal ERROR entry for this failure."""
        return LogEntry(
            severity=Severity.ERROR,
            payload=self.payload,
            tags=(RESPONSE_TAG,),
            stack=self.stack,
        )


@singledispatch
def serialize_error(value: object) -> SerializedError:
    """Anything that is not an exception is reported verbatim, without a stack."""
    return SerializedError(payload=str(value))


@serialize_error.register
def _(error: BaseException) -> SerializedError:
    name = _error_name(error)
    payload = f"{name}: {error}"

    code = getattr(error, "code", None)
    syscall = getattr(error, "syscall", None)
    if code is not None and syscall is not None:
        payload = f"{payload} code: {code} syscall: {syscall}"

    stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return SerializedError(payload=payload, stack=stack or None)


def _error_name(error: BaseException) -> str:
    # An explicit `error.name = "..."` overrides the class name. Builtins such
    # as ImportError keep `name` in a slot, not in the instance dict.
    name = vars(error).get("name") if hasattr(error, "__dict__") else None
    if not isinstance(name, str):
        name = type(error).__name__
    return name or DEFAULT_ERROR_NAME
