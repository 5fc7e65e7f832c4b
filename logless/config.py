"""Runtime configuration read from the environment."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from dotenv import load_dotenv

DEFAULT_SINK_URL = "http://localhost:8000/v1/receive"
DEFAULT_SINK_TIMEOUT = 5.0
DEFAULT_CAPTURE_LEVEL = "DEBUG"
DEFAULT_LOG_LEVEL = "WARNING"


PathLike = Union[str, Path]


def parse_level(value: str | int) -> int:
    """Resolve a level name such as "info" or a number to a logging level."""
    if isinstance(value, int):
        return value

    text = value.strip()
    if text.isdigit():
        return int(text)

    level = logging.getLevelName(text.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {value!r}")
    return level


@dataclass(frozen=True)
class Settings:
    """Where traces go and what gets captured."""

    sink_url: str = DEFAULT_SINK_URL
    sink_timeout: float = DEFAULT_SINK_TIMEOUT
    capture_level: int = logging.DEBUG
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls, env_file: PathLike | None = None) -> "Settings":
        """
        Build settings from LOGLESS_* environment variables.

        Args:
            env_file: Optional .env file loaded first. Variables already set
                      in the environment win.

        Raises:
            ValueError: If a variable holds a value that cannot be parsed.
        """
        if env_file is not None:
            load_dotenv(env_file)

        raw_timeout = os.getenv("LOGLESS_SINK_TIMEOUT", str(DEFAULT_SINK_TIMEOUT))
        try:
            sink_timeout = float(raw_timeout)
        except ValueError as e:
            raise ValueError(f"LOGLESS_SINK_TIMEOUT is not a number: {raw_timeout!r}") from e
        if sink_timeout <= 0:
            raise ValueError("LOGLESS_SINK_TIMEOUT must be positive")

        log_level = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
        parse_level(log_level)

        return cls(
            sink_url=os.getenv("LOGLESS_SINK_URL", DEFAULT_SINK_URL),
            sink_timeout=sink_timeout,
            capture_level=parse_level(
                os.getenv("LOGLESS_CAPTURE_LEVEL", DEFAULT_CAPTURE_LEVEL)
            ),
            log_level=log_level,
        )
