"""Log sinks: where finished trace documents are delivered."""

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Protocol

import httpx

from ..config import Settings
from ..logging_config import get_logger
from ..models import TraceDocument

logger = get_logger(__name__)


class ILogSink(Protocol):
    """Accepts one finished trace document per invocation."""

    def send(self, document: TraceDocument) -> None:
        """Start delivering the document. Must not wait for acknowledgement."""
        ...


class HttpLogSink:
    """POSTs trace documents as JSON from a background worker."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
        max_workers: int = 1,
    ):
        self._url = url
        self._client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="logless-sink"
        )
        self._lock = threading.Lock()
        self._pending: set[Future] = set()

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpLogSink":
        return cls(settings.sink_url, timeout=settings.sink_timeout)

    @property
    def url(self) -> str:
        return self._url

    def send(self, document: TraceDocument) -> None:
        """Encode the document now and post it in the background."""
        body = document.to_json()
        future = self._executor.submit(self._post, document.transaction_id, body)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def flush(self, timeout: float | None = None) -> bool:
        """
        Wait for in-flight sends.

        Returns:
            True if every pending send finished within the timeout.
        """
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self) -> None:
        """Flush, then release the worker and the HTTP client."""
        self.flush()
        self._executor.shutdown(wait=True)
        self._client.close()

    def _post(self, transaction_id: str, body: str) -> bool:
        try:
            response = self._client.post(self._url, content=body)
            response.raise_for_status()
        except Exception as e:
            logger.warning("Failed to deliver trace %s: %s", transaction_id, e)
            return False

        logger.debug("Delivered trace %s (%s)", transaction_id, response.status_code)
        return True

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
