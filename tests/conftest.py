"""Pytest configuration and fixtures."""

import json
import logging
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))


class RecordingSink:
    """Sink that keeps every document it is given."""

    def __init__(self, events: list | None = None):
        self.documents = []
        self._events = events

    def send(self, document):
        self.documents.append(document)
        if self._events is not None:
            self._events.append("send")

    @property
    def last(self) -> dict:
        """Last document as decoded JSON, the way the collector sees it."""
        return json.loads(self.documents[-1].to_json())


class FakeContext:
    """Platform context exposing done/succeed/fail."""

    function_name = "test-function"

    def __init__(self, events: list | None = None):
        self.calls = []
        self._events = events

    def _called(self, name, *args):
        self.calls.append((name, args))
        if self._events is not None:
            self._events.append(name)

    def done(self, error=None, result=None):
        self._called("done", error, result)

    def succeed(self, result=None):
        self._called("succeed", result)

    def fail(self, error=None):
        self._called("fail", error)


@pytest.fixture
def events():
    """Shared ordering log for sink and completion hooks."""
    return []


@pytest.fixture
def sink(events):
    return RecordingSink(events)


@pytest.fixture
def context(events):
    return FakeContext(events)


@pytest.fixture
def settings():
    from logless.config import Settings

    return Settings(sink_url="http://collector.test/v1/receive")


@pytest.fixture
def handler_logger():
    """Logger used by the handlers under test."""
    return logging.getLogger("tests.handler")


@pytest.fixture(autouse=True)
def clean_root_logger():
    """Fail loudly if a test leaves capture handlers or a changed level behind."""
    from logless.recorder import CaptureHandler

    root = logging.getLogger()
    level = root.level
    yield
    assert not [h for h in root.handlers if isinstance(h, CaptureHandler)]
    assert root.level == level
