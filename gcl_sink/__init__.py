"""Public API for the Google Cloud Logging sink."""

from __future__ import annotations

from typing import Optional

from google.api import monitored_resource_pb2

from .batcher import BatcherState, PeriodicBatcher
from .config import (
    BatchSettings,
    SinkOptions,
    SinkSettings,
    configure_settings,
    get_settings,
    load_settings,
)
from .context import (
    capture_context,
    clear_context,
    get_context,
    logger_context,
    pop_context,
    push_context,
    run_with_context,
)
from .errors import ConfigurationError, EmissionError, ProjectionError, SinkError
from .events import (
    DictionaryValue,
    ExceptionInfo,
    LogEvent,
    LogLevel,
    ScalarValue,
    SequenceValue,
    StructureValue,
    to_property_value,
)
from .formatter import LogFormatter, create_log_name
from .handler import CloudLoggingHandler
from .logger import configure_manager, get_logger, shutdown
from .metrics import get_metrics
from .sink import GoogleCloudLoggingSink, translate_severity
from .templates import OutputTemplateFormatter
from .transport import CloudLoggingTransport, Transport

__all__ = [
    "configure",
    "shutdown",
    "get_logger",
    "logger_context",
    "push_context",
    "pop_context",
    "get_context",
    "clear_context",
    "capture_context",
    "run_with_context",
    "SinkOptions",
    "BatchSettings",
    "SinkSettings",
    "load_settings",
    "get_settings",
    "get_metrics",
    "GoogleCloudLoggingSink",
    "PeriodicBatcher",
    "BatcherState",
    "LogFormatter",
    "OutputTemplateFormatter",
    "CloudLoggingHandler",
    "CloudLoggingTransport",
    "Transport",
    "create_log_name",
    "translate_severity",
    "LogEvent",
    "LogLevel",
    "ExceptionInfo",
    "ScalarValue",
    "SequenceValue",
    "StructureValue",
    "DictionaryValue",
    "to_property_value",
    "SinkError",
    "ConfigurationError",
    "ProjectionError",
    "EmissionError",
]


def configure(
    settings: SinkSettings | None = None,
    *,
    transport: Optional[Transport] = None,
    resource: Optional[monitored_resource_pb2.MonitoredResource] = None,
    minimum_level: LogLevel = LogLevel.VERBOSE,
    **overrides,
) -> SinkSettings:
    """Configure the sink and start its background batcher."""

    resolved = configure_settings(settings, **overrides)
    configure_manager(
        resolved, transport=transport, resource=resource, minimum_level=minimum_level
    )

    return resolved
