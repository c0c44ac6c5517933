"""Thread-safe FIFO queue with optional capacity and drop accounting."""

from __future__ import annotations

import collections
import threading
from typing import Deque, Generic, List, Optional, TypeVar

T = TypeVar("T")


class EventQueue(Generic[T]):
    """FIFO queue refusing new items once ``capacity`` is reached.

    With no capacity the queue grows without bound.
    """

    def __init__(self, capacity: Optional[int] = None) -> None:
        """Initialize the queue with an optional capacity."""

        if capacity is not None and capacity <= 0:
            raise ValueError("Queue capacity must be positive")

        self._capacity = capacity
        self._items: Deque[T] = collections.deque()
        self._lock = threading.RLock()
        self._ready = threading.Condition(self._lock)
        self._interrupted = False
        self._dropped = 0

    @property
    def capacity(self) -> Optional[int]:
        return self._capacity

    @property
    def dropped(self) -> int:
        """Get the number of refused items."""

        with self._lock:
            return self._dropped

    def size(self) -> int:
        """Get the size of the queue."""

        with self._lock:
            return len(self._items)

    def put(self, item: T) -> bool:
        """Append ``item``; returns False when it was refused for lack of room."""

        with self._lock:
            if self._capacity is not None and len(self._items) >= self._capacity:
                self._dropped += 1
                return False

            self._items.append(item)
            self._ready.notify()

            return True

    def drain(self, max_items: int) -> List[T]:
        """Remove up to ``max_items`` from the head of the queue."""

        with self._lock:
            batch: List[T] = []

            while self._items and len(batch) < max_items:
                batch.append(self._items.popleft())

            return batch

    def wait(self, threshold: int, timeout: float) -> bool:
        """Block until ``threshold`` items are queued, ``interrupt()`` or timeout."""

        with self._lock:
            return self._ready.wait_for(
                lambda: self._interrupted or len(self._items) >= threshold,
                timeout,
            )

    def interrupt(self) -> None:
        """Release every current and future ``wait()`` immediately."""

        with self._lock:
            self._interrupted = True
            self._ready.notify_all()
