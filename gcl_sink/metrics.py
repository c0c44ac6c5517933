"""In-process metrics for the sink runtime."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict


@dataclass
class RuntimeMetrics:
    """Runtime metrics for the batching pipeline."""

    dropped_total: int = 0 # Events refused by a full or closed queue
    dropped_levels: dict[str, int] | None = None # Refused events by level
    projection_failures: int = 0 # Events dropped while building entries
    emission_failures: int = 0 # Batches the transport rejected
    flush_total: int = 0 # Batches handed to the sink
    events_emitted: int = 0 # Entries written by successful batches
    last_flush_duration_ms: float = 0.0
    queue_depth: int = 0

    def as_dict(self) -> dict[str, object]:
        """Return the metrics as a dictionary."""

        return {
            "dropped_total": self.dropped_total,
            "dropped_levels": dict(self.dropped_levels or {}),
            "projection_failures": self.projection_failures,
            "emission_failures": self.emission_failures,
            "flush_total": self.flush_total,
            "events_emitted": self.events_emitted,
            "last_flush_duration_ms": self.last_flush_duration_ms,
            "queue_depth": self.queue_depth,
        }


_LOCK = threading.RLock()
_METRICS = RuntimeMetrics(dropped_levels={})


def record_drop(level: str) -> None:
    """Record an event refused by the queue."""

    with _LOCK:
        _METRICS.dropped_total += 1
        levels: Dict[str, int] = _METRICS.dropped_levels or {}
        levels[level] = levels.get(level, 0) + 1
        _METRICS.dropped_levels = levels


def record_projection_failure() -> None:
    with _LOCK:
        _METRICS.projection_failures += 1


def record_emission_failure() -> None:
    with _LOCK:
        _METRICS.emission_failures += 1


def record_flush(duration_ms: float, batch_size: int) -> None:
    """Record a successfully emitted batch."""

    with _LOCK:
        _METRICS.flush_total += 1
        _METRICS.events_emitted += batch_size
        _METRICS.last_flush_duration_ms = duration_ms


def set_queue_depth(depth: int) -> None:
    """Set the depth of the queue."""

    with _LOCK:
        _METRICS.queue_depth = depth


def reset_metrics() -> None:
    """Reset the metrics."""

    with _LOCK:
        _METRICS.dropped_total = 0
        _METRICS.dropped_levels = {}
        _METRICS.projection_failures = 0
        _METRICS.emission_failures = 0
        _METRICS.flush_total = 0
        _METRICS.events_emitted = 0
        _METRICS.last_flush_duration_ms = 0.0
        _METRICS.queue_depth = 0


def get_metrics() -> RuntimeMetrics:
    """Get a snapshot of the metrics."""

    with _LOCK:
        return RuntimeMetrics(**_METRICS.as_dict())
