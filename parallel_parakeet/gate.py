"""Bound the number of resident engine instances.

Each engine instance holds hundreds of MB, so every chunk worker must hold
a slot while its instance exists.
"""

import contextlib
import logging
import threading

from .errors import TranscriptionCancelled

logger = logging.getLogger(__name__)

# How often a blocked acquire re-checks the cancel event
_POLL_INTERVAL = 0.05


class ConcurrencyGate:
    """A counting slot pool with scoped, always-released acquisition."""

    def __init__(self, capacity: int = 1):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._semaphore = threading.BoundedSemaphore(capacity)
        self._counter_lock = threading.Lock()
        self._in_use = 0
        self._peak = 0

    @property
    def in_use(self) -> int:
        return self._in_use

    @property
    def peak(self) -> int:
        """Highest number of slots held at the same time."""
        return self._peak

    def _acquire(self, cancel: threading.Event | None) -> None:
        if cancel is None:
            self._semaphore.acquire()
            return
        while not self._semaphore.acquire(timeout=_POLL_INTERVAL):
            if cancel.is_set():
                raise TranscriptionCancelled("Cancelled while waiting for an engine slot")
        if cancel.is_set():
            self._semaphore.release()
            raise TranscriptionCancelled("Cancelled while waiting for an engine slot")

    @contextlib.contextmanager
    def slot(self, cancel: threading.Event | None = None):
        """Hold one slot for the duration of the ``with`` block.

        Blocks until a slot frees. When ``cancel`` is set while waiting,
        raises TranscriptionCancelled without taking a slot.
        """
        self._acquire(cancel)
        with self._counter_lock:
            self._in_use += 1
            self._peak = max(self._peak, self._in_use)
        try:
            yield
        finally:
            with self._counter_lock:
                self._in_use -= 1
            self._semaphore.release()
