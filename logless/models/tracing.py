"""Trace data models: transaction identity, log entries and the sent document."""

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

REQUEST_TAG = "request"
RESPONSE_TAG = "response"


class Severity(str, Enum):
    """Severity of a log entry as it appears on the wire."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"

    @classmethod
    def from_level(cls, levelno: int) -> "Severity":
        """Map a ``logging`` level number onto one of the four severities."""
        if levelno <= logging.DEBUG:
            return cls.DEBUG
        if levelno < logging.WARNING:
            return cls.INFO
        if levelno < logging.ERROR:
            return cls.WARN
        return cls.ERROR


def format_timestamp(moment: datetime | float | None = None) -> str:
    """Render a UTC moment as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` (24 characters)."""
    if moment is None:
        moment = datetime.now(timezone.utc)
    elif isinstance(moment, (int, float)):
        moment = datetime.fromtimestamp(moment, timezone.utc)
    else:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


@dataclass(frozen=True)
class Transaction:
    """Identity of one handler invocation."""

    id: str
    source: str  # handler/service that owns the trace

    @classmethod
    def new(cls, source: str) -> "Transaction":
        return cls(id=str(uuid.uuid4()), source=source)


class LogEntry(BaseModel):
    """A single captured event."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, use_enum_values=True)

    timestamp: str = Field(default_factory=format_timestamp)
    severity: Severity = Field(alias="type")
    payload: Any = None
    tags: tuple[str, ...] = ()
    stack: str | None = None

    def to_wire(self) -> dict:
        """Entry as it is sent; ``stack`` only appears when present."""
        data = {
            "timestamp": self.timestamp,
            "type": self.severity,
            "payload": self.payload,
            "tags": list(self.tags),
        }
        if self.stack is not None:
            data["stack"] = self.stack
        return data


class TraceDocument(BaseModel):
    """The finished trace of one invocation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    source: str
    transaction_id: str = Field(alias="transactionID")
    logs: tuple[LogEntry, ...] = ()

    def to_wire(self) -> dict:
        return {
            "source": self.source,
            "transactionID": self.transaction_id,
            "logs": [entry.to_wire() for entry in self.logs],
        }

    def to_json(self) -> str:
        """
        JSON request body. Values JSON cannot encode are sent as ``str()``;
        a payload that still cannot be encoded (circular, non-string keys)
        is sent as ``str(payload)``.
        """
        data = self.to_wire()
        try:
            return json.dumps(data, default=str)
        except (TypeError, ValueError):
            pass

        for entry in data["logs"]:
            try:
                json.dumps(entry["payload"], default=str)
            except (TypeError, ValueError):
                entry["payload"] = str(entry["payload"])
        return json.dumps(data, default=str)
