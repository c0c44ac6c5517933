"""Google Cloud Logging sink: builds log entries and writes them per batch."""

from __future__ import annotations

import io
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional

from google.api import monitored_resource_pb2
from google.cloud.logging_v2.types import LogEntry
from google.logging.type import log_severity_pb2
from google.protobuf import struct_pb2

from . import selflog
from .config import SinkOptions
from .errors import ConfigurationError, EmissionError, ProjectionError
from .events import LogEvent, LogLevel, PropertyValue, ScalarValue, scalar_string
from .formatter import LogFormatter, TextFormatter, create_log_name, sanitize_log_name
from .metrics import record_projection_failure
from .resource import apply_overrides, discover_resource
from .transport import CloudLoggingTransport, Transport

UNKNOWN_SERVICE_VERSION = "<Unknown>"

SOURCE_CONTEXT_PROPERTY = "SourceContext"
TRACE_ID_PROPERTY = "TraceId"
SPAN_ID_PROPERTY = "SpanId"
TRACE_SAMPLED_PROPERTY = "TraceSampled"

_SEVERITY_BY_LEVEL = {
    LogLevel.VERBOSE: log_severity_pb2.DEBUG,
    LogLevel.DEBUG: log_severity_pb2.DEBUG,
    LogLevel.INFORMATION: log_severity_pb2.INFO,
    LogLevel.WARNING: log_severity_pb2.WARNING,
    LogLevel.ERROR: log_severity_pb2.ERROR,
    LogLevel.FATAL: log_severity_pb2.CRITICAL,
}


def translate_severity(level: Any) -> int:
    """Map an event level to a Cloud Logging severity; unknown levels give DEFAULT."""

    return _SEVERITY_BY_LEVEL.get(level, log_severity_pb2.DEFAULT)


class GoogleCloudLoggingSink:
    """Turns batches of ``LogEvent`` into a single ``WriteLogEntries`` call."""

    def __init__(
        self,
        options: SinkOptions,
        *,
        text_formatter: Optional[TextFormatter] = None,
        transport: Optional[Transport] = None,
        resource: Optional[monitored_resource_pb2.MonitoredResource] = None,
        flush_timeout: Optional[float] = None,
    ) -> None:
        """Resolve resource and project, then build the transport.

        ``resource`` stands in for platform discovery; the configured resource
        type and labels are applied on top of it either way.
        """

        if not options.log_name:
            raise ConfigurationError("log_name must not be empty")

        detected = resource if resource is not None else discover_resource(options.project_id)
        self._resource = apply_overrides(
            detected, options.resource_type, options.resource_labels
        )

        project_id = options.project_id or self._resource.labels.get("project_id")
        if not project_id:
            raise ConfigurationError(
                "project_id is not configured and could not be discovered from the environment"
            )

        self._options = options
        self._project_id = project_id
        self._log_name = create_log_name(project_id, options.log_name)
        self._service_context = self._build_service_context(options)
        self._formatter = LogFormatter(text_formatter)
        self._flush_timeout = flush_timeout
        self._transport = transport or CloudLoggingTransport.from_credential_json(
            options.google_credential_json
        )
        self._closed = threading.Event()

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def log_name(self) -> str:
        return self._log_name

    @property
    def resource(self) -> monitored_resource_pb2.MonitoredResource:
        return self._resource

    @property
    def service_context(self) -> Optional[Mapping[str, str]]:
        return dict(self._service_context) if self._service_context else None

    def emit_batch(
        self, events: Iterable[LogEvent], cancel: Optional[threading.Event] = None
    ) -> int:
        """Write every projectable event of ``events`` in one transport call.

        Returns the number of entries written.
        """

        entries: List[LogEntry] = []
        scratch = io.StringIO()

        for event in events:
            try:
                entries.append(self.build_entry(event, scratch))
            except (ProjectionError, TypeError, ValueError) as exc:
                record_projection_failure()
                selflog.write(
                    "Dropping %s event %r that could not be projected: %s",
                    getattr(event.level, "name", event.level),
                    event.message_template,
                    exc,
                )

        if not entries:
            return 0

        if cancel is not None and cancel.is_set():
            raise EmissionError(f"emission of {len(entries)} entries was cancelled")

        self._transport.write_log_entries(
            self._log_name,
            self._resource,
            self._options.labels,
            entries,
            timeout=self._flush_timeout,
        )

        return len(entries)

    def build_entry(self, event: LogEvent, scratch: Optional[io.StringIO] = None) -> LogEntry:
        """Project a single event onto a ``LogEntry``."""

        scratch = scratch if scratch is not None else io.StringIO()
        fields: Dict[str, Any] = {
            "log_name": self._log_name,
            "severity": translate_severity(event.level),
            "timestamp": event.timestamp,
        }
        message = self._formatter.render_event_message(event, scratch)

        if self._options.use_json_output:
            payload = struct_pb2.Struct()
            payload["message"] = message
            properties = payload.get_or_create_struct("properties")

            for key, value in event.properties.items():
                if not self._route_special_property(fields, key, value):
                    self._formatter.write_property_as_json(properties, key, value)

            if self._service_context:
                payload["serviceContext"] = self._service_context

            fields["json_payload"] = payload
        else:
            labels: Dict[str, str] = {}

            for key, value in event.properties.items():
                if not self._route_special_property(fields, key, value):
                    self._formatter.write_property_as_label(labels, key, value)

            fields["text_payload"] = message
            fields["labels"] = labels

        return LogEntry(**fields)

    def close(self) -> None:
        """Release the transport; safe to call more than once."""

        if self._closed.is_set():
            return

        self._closed.set()
        self._transport.close()

    # --------------------- internal helpers ---------------------
    def _route_special_property(
        self, fields: Dict[str, Any], key: str, value: PropertyValue
    ) -> bool:
        """Promote well-known properties to entry fields; True when consumed."""

        options = self._options

        if options.use_source_context_as_log_name and key.lower() == SOURCE_CONTEXT_PROPERTY.lower():
            name = scalar_string(value)
            # Names with no usable characters keep the default log.
            if sanitize_log_name(name):
                fields["log_name"] = create_log_name(self._project_id, name)
            return True

        if not options.use_log_correlation:
            return False

        if key == TRACE_ID_PROPERTY:
            fields["trace"] = f"projects/{self._project_id}/traces/{scalar_string(value)}"
            return True

        if key == SPAN_ID_PROPERTY:
            fields["span_id"] = scalar_string(value)
            return True

        if key == TRACE_SAMPLED_PROPERTY:
            sampled = isinstance(value, ScalarValue) and isinstance(value.value, bool)
            fields["trace_sampled"] = value.value if sampled else False
            return True

        return False

    @staticmethod
    def _build_service_context(options: SinkOptions) -> Optional[Dict[str, str]]:
        if not options.service_name:
            return None

        return {
            "service": options.service_name,
            "version": options.service_version or UNKNOWN_SERVICE_VERSION,
        }
