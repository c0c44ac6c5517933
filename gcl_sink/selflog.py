"""Self-diagnostics for failures inside the sink.

Messages written here never travel through the sink itself, so a broken
transport cannot feed back into the queue it is failing to drain.
"""

from __future__ import annotations

import datetime as _dt
import sys
import threading
from typing import Any, Callable, Optional

Writer = Callable[[str], None]


def _stderr_writer(message: str) -> None:
    print(message, file=sys.stderr)


_LOCK = threading.Lock()
_WRITER: Optional[Writer] = _stderr_writer


def enable(writer: Optional[Writer] = None) -> None:
    """Route diagnostics to ``writer`` (stderr when omitted)."""

    global _WRITER
    with _LOCK:
        _WRITER = writer or _stderr_writer


def disable() -> None:
    global _WRITER
    with _LOCK:
        _WRITER = None


def write(message: str, *args: Any) -> None:
    """Write a ``%``-formatted diagnostic line, if a writer is enabled."""

    with _LOCK:
        writer = _WRITER

    if writer is None:
        return

    text = message % args if args else message
    timestamp = (
        _dt.datetime.now(tz=_dt.timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )

    writer(f"{timestamp} gcl_sink: {text}")
