"""Server-Sent Events output sink for streamed answers."""

import logging
import queue
import threading
from collections.abc import Iterator

from docchat.errors import GenerationError, SinkClosedError

logger = logging.getLogger(__name__)

_CLOSE = object()


class _Failure:
    def __init__(self, cause: BaseException) -> None:
        self.cause = cause


def format_sse(event: str, data: str) -> str:
    """Encode one named event in text/event-stream format.

    Multi-line payloads are split across several ``data:`` lines.
    """
    lines = "".join(f"data: {line}\n" for line in data.split("\n"))
    return f"event: {event}\n{lines}\n"


class SSEOutputSink:
    """Output sink feeding a streaming HTTP response.

    The generation session calls :meth:`send`, :meth:`fail` and :meth:`close`
    from a worker thread while the response iterates :meth:`stream`. When the
    client disconnects the response generator is closed, after which
    :meth:`send` raises :class:`SinkClosedError`.
    """

    def __init__(self, idle_timeout: float | None = None) -> None:
        self.idle_timeout = idle_timeout
        self._queue: queue.Queue = queue.Queue()
        self._closed = threading.Event()
        self._disconnected = threading.Event()

    @property
    def disconnected(self) -> bool:
        return self._disconnected.is_set()

    def send(self, event: str, data: str) -> None:
        if self._disconnected.is_set():
            raise SinkClosedError("Client disconnected")
        if self._closed.is_set():
            raise SinkClosedError("Sink already released")
        self._queue.put(format_sse(event, data))

    def fail(self, cause: BaseException) -> None:
        if not self._closed.is_set():
            self._queue.put(_Failure(cause))

    def close(self) -> None:
        if not self._closed.is_set():
            self._closed.set()
            self._queue.put(_CLOSE)

    def stream(self) -> Iterator[str]:
        """Yield encoded events until the sink is released.

        A failure ends the response by raising, which aborts the connection
        without a ``done`` event. When nothing arrives for ``idle_timeout``
        seconds the response ends quietly, also without ``done``.
        """
        try:
            while True:
                try:
                    item = self._queue.get(timeout=self.idle_timeout)
                except queue.Empty:
                    logger.warning(f"⏱️ No stream event for {self.idle_timeout}s, closing response")
                    self._closed.set()
                    return
                if item is _CLOSE:
                    return
                if isinstance(item, _Failure):
                    raise GenerationError(f"Stream aborted: {item.cause}") from item.cause
                yield item
        finally:
            self._disconnected.set()
