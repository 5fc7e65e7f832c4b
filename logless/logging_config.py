"""Logging setup for the library's own diagnostics."""

import json
import logging
import logging.config
import os
from datetime import datetime, timezone

from .config import DEFAULT_LOG_LEVEL

PACKAGE_LOGGER = "logless"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Trace identity when the caller attached one via `extra`
        if hasattr(record, "transaction_id"):
            log_data["transaction_id"] = record.transaction_id

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str | None = None) -> None:
    """
    Route the library's own log records to stdout as JSON.

    Only the ``logless`` logger is configured; the root logger and the
    handler's own logging setup are left alone.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
                   Defaults to LOG_LEVEL env var or WARNING.
    """
    # Determine log level
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL)

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "logless.logging_config.JSONFormatter",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            PACKAGE_LOGGER: {
                "level": log_level.upper(),
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(logging_config)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
