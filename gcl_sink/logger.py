"""Structured logging facade feeding the Cloud Logging sink."""

from __future__ import annotations

import sys
from threading import RLock
from typing import Any, Dict, Optional

from google.api import monitored_resource_pb2

from . import selflog
from .batcher import PeriodicBatcher
from .config import SinkSettings, get_settings
from .context import get_context
from .errors import ConfigurationError
from .events import ExceptionInfo, LogEvent, LogLevel, hole_names, to_property_value
from .metrics import record_drop, reset_metrics
from .sink import SOURCE_CONTEXT_PROPERTY, GoogleCloudLoggingSink
from .templates import OutputTemplateFormatter
from .transport import Transport


def _exception_info(exc_info: Any) -> Optional[ExceptionInfo]:
    if exc_info is None or exc_info is False:
        return None

    if isinstance(exc_info, BaseException):
        return ExceptionInfo.from_exception(exc_info)

    if exc_info is True:
        exc_info = sys.exc_info()

    if isinstance(exc_info, tuple) and len(exc_info) == 3 and exc_info[1] is not None:
        return ExceptionInfo.from_exception(exc_info[1])

    return None


class StructuredLogger:
    """Logger producing templated events, e.g. ``log.info("Hello {Name}", "bob")``."""

    def __init__(self, name: str, manager: "LoggerManager") -> None:
        self._name = name
        self._manager = manager

    @property
    def name(self) -> str:
        return self._name

    def verbose(self, template: str, /, *args: Any, **properties: Any) -> None:
        self._log(LogLevel.VERBOSE, template, args, properties)

    def debug(self, template: str, /, *args: Any, **properties: Any) -> None:
        self._log(LogLevel.DEBUG, template, args, properties)

    def info(self, template: str, /, *args: Any, **properties: Any) -> None:
        self._log(LogLevel.INFORMATION, template, args, properties)

    def warning(self, template: str, /, *args: Any, **properties: Any) -> None:
        self._log(LogLevel.WARNING, template, args, properties)

    def error(self, template: str, /, *args: Any, **properties: Any) -> None:
        self._log(LogLevel.ERROR, template, args, properties)

    def fatal(self, template: str, /, *args: Any, **properties: Any) -> None:
        self._log(LogLevel.FATAL, template, args, properties)

    def _log(
        self,
        level: LogLevel,
        template: str,
        args: tuple[Any, ...],
        properties: Dict[str, Any],
    ) -> None:
        manager = self._manager

        if level < manager.minimum_level:
            return

        exception = _exception_info(properties.pop("exc_info", None))

        # Positional arguments fill template holes in order of appearance.
        captured: Dict[str, Any] = dict(zip(hole_names(template), args))
        captured.update(properties)

        for key, value in get_context().items():
            captured.setdefault(key, value)

        captured.setdefault(SOURCE_CONTEXT_PROPERTY, self._name)

        event = LogEvent(
            level=level,
            message_template=template,
            properties={key: to_property_value(value) for key, value in captured.items()},
            exception=exception,
        )

        manager.enqueue(event)


class LoggerManager:
    """Owns the sink, the batcher and the loggers handed out to callers."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._loggers: Dict[str, StructuredLogger] = {}
        self._settings: SinkSettings | None = None
        self._sink: GoogleCloudLoggingSink | None = None
        self._batcher: PeriodicBatcher | None = None
        self._minimum_level = LogLevel.VERBOSE
        self._failed = False

    def configure(
        self,
        settings: SinkSettings,
        *,
        transport: Optional[Transport] = None,
        resource: Optional[monitored_resource_pb2.MonitoredResource] = None,
        minimum_level: LogLevel = LogLevel.VERBOSE,
    ) -> None:
        """Build the sink, then start a batcher feeding it."""

        with self._lock:
            self._shutdown()

            batch = settings.batch
            text_formatter = (
                OutputTemplateFormatter(batch.output_template)
                if batch.output_template
                else None
            )

            # The worker only starts once the sink exists, so a configuration
            # error cannot leave a live thread behind.
            sink = GoogleCloudLoggingSink(
                settings.options,
                text_formatter=text_formatter,
                transport=transport,
                resource=resource,
                flush_timeout=batch.flush_timeout,
            )
            batcher = PeriodicBatcher(sink.emit_batch, batch)
            batcher.start()

            self._settings = settings
            self._sink = sink
            self._batcher = batcher
            self._minimum_level = minimum_level
            self._failed = False
            self._loggers.clear()

            reset_metrics()

    @property
    def settings(self) -> SinkSettings:
        settings = self._settings

        if settings is None:
            settings = get_settings()
            self.configure(settings)

        return settings

    @property
    def batcher(self) -> PeriodicBatcher:
        batcher = self._batcher

        if batcher is None:
            self.configure(get_settings())
            batcher = self._batcher

        assert batcher is not None

        return batcher

    @property
    def sink(self) -> GoogleCloudLoggingSink | None:
        return self._sink

    @property
    def minimum_level(self) -> LogLevel:
        return self._minimum_level

    def enqueue(self, event: LogEvent) -> bool:
        batcher = self._batcher or self._configure_from_environment()

        if batcher is None:
            record_drop(event.level.name)
            return False

        return batcher.enqueue(event)

    def get_logger(self, name: str) -> StructuredLogger:
        with self._lock:
            logger = self._loggers.get(name)

            if logger is None:
                logger = StructuredLogger(name, self)
                self._loggers[name] = logger

            return logger

    def flush(self) -> None:
        batcher = self._batcher
        if batcher is not None:
            batcher.flush()

    def reset(self) -> None:
        """Drain and close everything, returning to the unconfigured state."""

        with self._lock:
            self._shutdown()
            self._loggers.clear()
            self._settings = None
            self._failed = False

    # --------------------- internal helpers ---------------------
    def _configure_from_environment(self) -> PeriodicBatcher | None:
        """Configure on first use; a failure is reported once and not retried."""

        with self._lock:
            if self._batcher is None and not self._failed:
                try:
                    self.configure(get_settings())
                except ConfigurationError as exc:
                    self._failed = True
                    selflog.write(
                        "Logging is disabled, the sink could not be configured: %s", exc
                    )

            return self._batcher

    def _shutdown(self) -> None:
        batcher, sink = self._batcher, self._sink
        self._batcher = None
        self._sink = None

        if batcher is not None:
            batcher.close()

        if sink is not None:
            sink.close()


_MANAGER = LoggerManager()


def configure_manager(
    settings: SinkSettings,
    *,
    transport: Optional[Transport] = None,
    resource: Optional[monitored_resource_pb2.MonitoredResource] = None,
    minimum_level: LogLevel = LogLevel.VERBOSE,
) -> LoggerManager:
    _MANAGER.configure(
        settings, transport=transport, resource=resource, minimum_level=minimum_level
    )
    return _MANAGER


def get_manager() -> LoggerManager:
    return _MANAGER


def get_logger(name: str) -> StructuredLogger:
    """Get a logger whose events carry ``name`` as their ``SourceContext``."""

    return _MANAGER.get_logger(name)


def shutdown() -> None:
    """Emit everything still queued and release the transport."""

    _MANAGER.reset()
