"""Aggregate per-chunk completions into a transcription percentage."""

import logging
import queue
import threading
from collections.abc import Callable

from .types import ProgressEvent

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressEvent], None]

_CLOSED = object()


def emit(listener: ProgressListener | None, event: ProgressEvent) -> None:
    """Deliver an event; delivery failures are logged, never raised."""
    if listener is None:
        return
    try:
        listener(event)
    except Exception:
        logger.warning("Progress listener failed on %s", event.stage, exc_info=True)


class ProgressAggregator:
    """Counting channel turning completion tokens into ``transcribing`` events.

    Workers call :meth:`notify` once per finished chunk (success or
    failure). A single consumer thread owns the running count, so the
    percentages it emits never go backwards. :meth:`close` ends the channel
    and the consumer exits after draining it.
    """

    def __init__(self, total: int, listener: ProgressListener | None = None):
        self.total = total
        self.listener = listener
        self.completed = 0
        self._queue: queue.Queue = queue.Queue()
        self._consumer: threading.Thread | None = None
        self._closed = False

    def start(self) -> None:
        if self._consumer is not None:
            return
        self._consumer = threading.Thread(
            target=self._consume, name="progress-aggregator", daemon=True
        )
        self._consumer.start()

    def notify(self) -> None:
        """Send one completion token."""
        if self._closed:
            raise RuntimeError("Progress channel is closed")
        self._queue.put(None)

    def close(self) -> None:
        """Close the channel and wait for the consumer to drain it."""
        if not self._closed:
            self._closed = True
            self._queue.put(_CLOSED)
        if self._consumer is not None:
            self._consumer.join()

    def percent(self) -> int:
        if self.total <= 0:
            return 100
        return min(100, (100 * self.completed) // self.total)

    def _consume(self) -> None:
        while True:
            token = self._queue.get()
            if token is _CLOSED:
                break
            self.completed += 1
            emit(self.listener, ProgressEvent.transcribing(self.percent()))

    def __enter__(self) -> "ProgressAggregator":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
