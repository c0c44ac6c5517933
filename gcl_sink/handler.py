"""Bridge from the standard library ``logging`` module to the sink.

Example:
    ```python
    import logging
    import gcl_sink

    gcl_sink.configure(gcl_sink.SinkSettings(gcl_sink.SinkOptions(project_id="my-project")))
    logging.getLogger().addHandler(gcl_sink.CloudLoggingHandler())
    ```
"""

from __future__ import annotations

import datetime as _dt
import logging
from typing import Any, Dict, Optional, Protocol

from .context import get_context
from .events import ExceptionInfo, LogEvent, LogLevel, to_property_value
from .logger import get_manager
from .sink import SOURCE_CONTEXT_PROPERTY

# Standard LogRecord attributes that should not be treated as extra properties
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)


class EventTarget(Protocol):
    def enqueue(self, event: LogEvent) -> bool:  # pragma: no cover - protocol
        ...


def level_for_record(levelno: int) -> LogLevel:
    """Map a stdlib level number onto the closest event level."""

    if levelno >= logging.CRITICAL:
        return LogLevel.FATAL
    if levelno >= logging.ERROR:
        return LogLevel.ERROR
    if levelno >= logging.WARNING:
        return LogLevel.WARNING
    if levelno >= logging.INFO:
        return LogLevel.INFORMATION
    if levelno >= logging.DEBUG:
        return LogLevel.DEBUG
    return LogLevel.VERBOSE


def _escape_braces(message: str) -> str:
    return message.replace("{", "{{").replace("}", "}}")


class CloudLoggingHandler(logging.Handler):
    """Logging handler that queues records as events for Cloud Logging.

    The record's logger name becomes ``SourceContext``; attributes passed
    through ``extra=`` become event properties.
    """

    def __init__(self, target: Optional[EventTarget] = None, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self._target = target

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = self.to_event(record)
            target = self._target if self._target is not None else get_manager()
            target.enqueue(event)
        except Exception:
            self.handleError(record)

    def to_event(self, record: logging.LogRecord) -> LogEvent:
        properties: Dict[str, Any] = {}

        for key, value in record.__dict__.items():
            if key not in _STANDARD_LOGRECORD_ATTRS and not key.startswith("_"):
                properties[key] = value

        for key, value in get_context().items():
            properties.setdefault(key, value)

        properties.setdefault(SOURCE_CONTEXT_PROPERTY, record.name)

        exception = None
        if record.exc_info and record.exc_info[1] is not None:
            exception = ExceptionInfo.from_exception(record.exc_info[1])

        # The stdlib has already interpolated %-style args; braces are literal text.
        return LogEvent(
            level=level_for_record(record.levelno),
            message_template=_escape_braces(record.getMessage()),
            properties={key: to_property_value(value) for key, value in properties.items()},
            timestamp=_dt.datetime.fromtimestamp(record.created, tz=_dt.timezone.utc),
            exception=exception,
        )
