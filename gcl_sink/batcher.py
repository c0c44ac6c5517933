"""Periodic batching between log producers and the sink."""

from __future__ import annotations

import enum
import threading
import time
from typing import Callable, List, Optional

from . import selflog
from .config import BatchSettings
from .events import LogEvent
from .metrics import (
    record_drop,
    record_emission_failure,
    record_flush,
    set_queue_depth,
)
from .queue import EventQueue

# Handlers may return how many events they wrote; None means the whole batch.
BatchHandler = Callable[[List[LogEvent], threading.Event], Optional[int]]


class BatcherState(str, enum.Enum):
    RUNNING = "running"
    DRAINING = "draining"
    CLOSED = "closed"


class PeriodicBatcher:
    """Queues events and hands them to ``handler`` in FIFO batches.

    A single worker thread flushes when ``batch_size_limit`` events are
    waiting or when ``period`` elapses, whichever comes first. Flushes are
    serial: the next batch is not drained until the handler returns.
    """

    def __init__(self, handler: BatchHandler, settings: BatchSettings) -> None:
        """Initialize the batcher; the worker starts with ``start()``."""

        self._handler = handler # Receives each drained batch
        self._queue: EventQueue[LogEvent] = EventQueue(settings.queue_limit)
        self._batch_size = settings.batch_size_limit
        self._period = settings.period # Seconds between flushes
        self._state = BatcherState.RUNNING
        self._state_lock = threading.Lock() # Guards state and enqueue
        self._flush_lock = threading.Lock() # One flush in flight at a time
        self._cancel = threading.Event() # Handed to the handler with every batch
        self._thread: Optional[threading.Thread] = None
        self._dropped = 0

    @property
    def state(self) -> BatcherState:
        with self._state_lock:
            return self._state

    @property
    def dropped(self) -> int:
        """Events refused because the queue was full or no longer accepting."""

        with self._state_lock:
            return self._dropped

    def pending(self) -> int:
        return self._queue.size()

    def start(self) -> None:
        """Start the flush worker."""

        with self._state_lock:
            if self._state is not BatcherState.RUNNING:
                raise RuntimeError(f"cannot start a batcher that is {self._state.value}")

            if self._thread is not None:
                return

            self._thread = threading.Thread(
                target=self._worker,
                name="gcl-sink-batcher",
                daemon=True,
            )
            self._thread.start()

    def enqueue(self, event: LogEvent) -> bool:
        """Queue ``event`` without blocking; False when it was dropped."""

        with self._state_lock:
            accepted = self._state is BatcherState.RUNNING and self._queue.put(event)
            if not accepted:
                self._dropped += 1

        if not accepted:
            record_drop(getattr(event.level, "name", str(event.level)))

        return accepted

    def flush(self) -> None:
        """Synchronously emit everything queued so far."""

        while self._flush_once():
            pass

    def close(self, timeout: Optional[float] = None) -> None:
        """Stop accepting events and emit whatever is still queued."""

        with self._state_lock:
            if self._state is BatcherState.RUNNING:
                self._state = BatcherState.DRAINING
            thread = self._thread

        self._queue.interrupt()

        if thread is None:
            self._drain()
            return

        thread.join(timeout)

    # --------------------- internal helpers ---------------------
    def _worker(self) -> None:
        """Run the flush loop until close is requested, then drain."""

        while True:
            self._queue.wait(self._batch_size, self._period)

            if self.state is not BatcherState.RUNNING:
                break

            self._flush_once()

        self._drain()

    def _drain(self) -> None:
        self.flush()

        with self._state_lock:
            self._state = BatcherState.CLOSED

    def _flush_once(self) -> int:
        """Emit at most one batch; returns the number of events drained."""

        with self._flush_lock:
            batch = self._queue.drain(self._batch_size)

            if not batch:
                return 0

            start = time.perf_counter()

            try:
                written = self._handler(batch, self._cancel)
            except Exception as exc:
                record_emission_failure()
                selflog.write(
                    "Failed to emit a batch of %d log events: %r", len(batch), exc
                )
            else:
                record_flush(
                    (time.perf_counter() - start) * 1000.0,
                    len(batch) if written is None else written,
                )

            set_queue_depth(self._queue.size())

            return len(batch)
