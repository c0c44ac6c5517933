"""Projection of log events onto Cloud Logging payloads."""

from __future__ import annotations

import io
import re
import threading
from decimal import Decimal
from typing import Dict, MutableMapping, Optional, Protocol, TextIO, Tuple
from urllib.parse import quote

from google.protobuf import struct_pb2

from .errors import ConfigurationError, ProjectionError
from .events import (
    DictionaryValue,
    LogEvent,
    PropertyValue,
    ScalarValue,
    SequenceValue,
    StructureValue,
)

MAX_LOG_NAME_LENGTH = 500

_INVALID_LOG_NAME_CHARS = re.compile(r"[^A-Za-z0-9._/-]")
_NUMBER_TYPES = (int, float, Decimal)

_LOG_NAME_LOCK = threading.Lock()
_LOG_NAME_CACHE: Dict[Tuple[str, str], str] = {}


class TextFormatter(Protocol):
    def format(self, event: LogEvent, writer: TextIO) -> None:  # pragma: no cover - protocol
        ...


def sanitize_log_name(name: str) -> str:
    """Strip characters Cloud Logging rejects and cap the length."""

    return _INVALID_LOG_NAME_CHARS.sub("", name or "")[:MAX_LOG_NAME_LENGTH]


def create_log_name(project_id: str, name: str) -> str:
    """Return ``projects/{project_id}/logs/{encoded}``, memoized per process."""

    key = (project_id, name)

    with _LOG_NAME_LOCK:
        cached = _LOG_NAME_CACHE.get(key)

    if cached is not None:
        return cached

    cleaned = sanitize_log_name(name)
    if not cleaned:
        raise ConfigurationError(f"log name {name!r} has no usable characters")

    composed = f"projects/{project_id}/logs/{quote(cleaned, safe='')}"

    with _LOG_NAME_LOCK:
        return _LOG_NAME_CACHE.setdefault(key, composed)


def clear_log_name_cache() -> None:
    with _LOG_NAME_LOCK:
        _LOG_NAME_CACHE.clear()


class LogFormatter:
    """Renders messages and projects properties as JSON fields or labels."""

    def __init__(self, text_formatter: Optional[TextFormatter] = None) -> None:
        self._text_formatter = text_formatter

    def render_event_message(self, event: LogEvent, scratch: io.StringIO) -> str:
        """Render the event's text, including its exception chain if any."""

        # An output template takes priority over the message template.
        if self._text_formatter is not None:
            scratch.seek(0)
            scratch.truncate()
            self._text_formatter.format(event, scratch)
            return scratch.getvalue()

        lines = []

        message = event.render_message()
        if message.strip():
            lines.append(message)

        if event.exception is not None:
            lines.append(str(event.exception))

        return "\n".join(lines)

    def write_property_as_json(
        self, parent: struct_pb2.Struct, key: str, value: PropertyValue
    ) -> None:
        """Write ``value`` into ``parent[key]`` keeping its shape and types."""

        if key in parent.fields:
            raise ProjectionError(f"duplicate field {key!r}")

        if isinstance(value, ScalarValue):
            self._write_scalar_as_json(parent.fields[key], value.value)

        elif isinstance(value, SequenceValue):
            elements = struct_pb2.Struct()
            for index, element in enumerate(value.elements):
                self.write_property_as_json(elements, str(index), element)

            items = parent.get_or_create_list(key)
            for index in range(len(value.elements)):
                items.values.add().CopyFrom(elements.fields[str(index)])

        elif isinstance(value, StructureValue):
            child = parent.get_or_create_struct(key)
            for name, field_value in value.fields:
                self.write_property_as_json(child, name, field_value)

        elif isinstance(value, DictionaryValue):
            child = parent.get_or_create_struct(key)
            for entry_key, entry_value in value.entries:
                self.write_property_as_json(child, entry_key.text(), entry_value)

        else:
            raise ProjectionError(f"unsupported property value {type(value).__name__}")

    def write_property_as_label(
        self, labels: MutableMapping[str, str], key: str, value: PropertyValue
    ) -> None:
        """Flatten ``value`` into ``labels`` under dotted keys rooted at ``key``."""

        if isinstance(value, ScalarValue):
            self._add_label(labels, key, value.text())

        elif isinstance(value, SequenceValue):
            self._add_label(labels, key, ",".join(e.render() for e in value.elements))

        elif isinstance(value, StructureValue):
            for name, field_value in value.fields:
                self.write_property_as_label(labels, f"{key}.{name}", field_value)

        elif isinstance(value, DictionaryValue):
            for entry_key, entry_value in value.entries:
                child_key = entry_key.render().replace('"', "")
                self.write_property_as_label(labels, f"{key}.{child_key}", entry_value)

        else:
            raise ProjectionError(f"unsupported property value {type(value).__name__}")

    @staticmethod
    def _write_scalar_as_json(target: struct_pb2.Value, raw: object) -> None:
        if raw is None:
            target.null_value = struct_pb2.NULL_VALUE

        elif isinstance(raw, bool):
            target.bool_value = raw

        elif isinstance(raw, _NUMBER_TYPES):
            # Lossy beyond double precision; such values should be logged as strings.
            try:
                target.number_value = float(raw)
            except OverflowError as exc:
                raise ProjectionError(f"number {raw!r} does not fit in a double") from exc

        elif isinstance(raw, str):
            target.string_value = raw

        else:
            target.string_value = str(raw)

    @staticmethod
    def _add_label(labels: MutableMapping[str, str], key: str, value: str) -> None:
        if key in labels:
            raise ProjectionError(f"duplicate label {key!r}")

        labels[key] = value
