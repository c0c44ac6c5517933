"""Log event model shared by the facade, the formatter and the sink."""

from __future__ import annotations

import dataclasses
import datetime as _dt
import enum
import re
import traceback
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Iterator, Mapping, NamedTuple, Optional, Tuple, Union


class LogLevel(enum.IntEnum):
    """Event levels, ordered from least to most severe."""

    VERBOSE = 0
    DEBUG = 1
    INFORMATION = 2
    WARNING = 3
    ERROR = 4
    FATAL = 5


def _quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


@dataclass(frozen=True)
class ScalarValue:
    """A single primitive value, or any object rendered through ``str()``."""

    value: Any = None

    def text(self) -> str:
        """Raw string rendering; empty for ``None``."""

        if self.value is None:
            return ""

        return str(self.value)

    def render(self) -> str:
        """Display rendering used inside messages and sequence labels."""

        value = self.value

        if value is None:
            return "null"

        if isinstance(value, str):
            return _quote(value)

        return str(value)


@dataclass(frozen=True)
class SequenceValue:
    elements: Tuple["PropertyValue", ...] = ()

    def render(self) -> str:
        return "[" + ", ".join(element.render() for element in self.elements) + "]"


@dataclass(frozen=True)
class StructureValue:
    fields: Tuple[Tuple[str, "PropertyValue"], ...] = ()
    type_tag: Optional[str] = None

    def render(self) -> str:
        body = ", ".join(f"{name}: {value.render()}" for name, value in self.fields)
        prefix = f"{self.type_tag} " if self.type_tag else ""

        return prefix + "{ " + body + " }" if body else prefix + "{ }"


@dataclass(frozen=True)
class DictionaryValue:
    entries: Tuple[Tuple[ScalarValue, "PropertyValue"], ...] = ()

    def render(self) -> str:
        pairs = (f"({key.render()}: {value.render()})" for key, value in self.entries)

        return "[" + ", ".join(pairs) + "]"


PropertyValue = Union[ScalarValue, SequenceValue, StructureValue, DictionaryValue]

_PROPERTY_TYPES = (ScalarValue, SequenceValue, StructureValue, DictionaryValue)
_SCALAR_TYPES = (str, bool, int, float, Decimal, bytes, _dt.datetime, _dt.date, enum.Enum)


def to_property_value(value: Any) -> PropertyValue:
    """Capture a Python object as a property value tree."""

    if isinstance(value, _PROPERTY_TYPES):
        return value

    if value is None or isinstance(value, _SCALAR_TYPES):
        return ScalarValue(value)

    if isinstance(value, Mapping):
        return DictionaryValue(
            tuple(
                (ScalarValue(key), to_property_value(item))
                for key, item in value.items()
            )
        )

    if isinstance(value, (list, tuple, set, frozenset)):
        return SequenceValue(tuple(to_property_value(item) for item in value))

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return StructureValue(
            tuple(
                (item.name, to_property_value(getattr(value, item.name)))
                for item in dataclasses.fields(value)
            ),
            type_tag=type(value).__name__,
        )

    return ScalarValue(value)


def scalar_string(value: PropertyValue) -> str:
    """Raw text of a scalar property; empty for any other shape."""

    if isinstance(value, ScalarValue):
        return value.text()

    return ""


@dataclass(frozen=True)
class ExceptionInfo:
    """Immutable snapshot of an exception and the chain that led to it."""

    type_name: str
    message: str
    stack_trace: str = ""
    cause: Optional["ExceptionInfo"] = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ExceptionInfo":
        return cls._capture(exc, set())

    @classmethod
    def _capture(cls, exc: BaseException, seen: set[int]) -> "ExceptionInfo":
        seen.add(id(exc))

        nested = exc.__cause__
        if nested is None and not exc.__suppress_context__:
            nested = exc.__context__

        exc_type = type(exc)
        module = exc_type.__module__
        type_name = exc_type.__qualname__
        if module not in ("builtins", "__main__"):
            type_name = f"{module}.{type_name}"

        return cls(
            type_name=type_name,
            message=str(exc),
            stack_trace="".join(traceback.format_tb(exc.__traceback__)),
            cause=(
                cls._capture(nested, seen)
                if nested is not None and id(nested) not in seen
                else None
            ),
        )

    def __str__(self) -> str:
        # Innermost first, the way the interpreter prints chained tracebacks.
        parts = []
        if self.cause is not None:
            parts.append(str(self.cause))
            parts.append("\nThe above exception was the direct cause of the following exception:\n\n")

        if self.stack_trace:
            parts.append("Traceback (most recent call last):\n")
            parts.append(self.stack_trace)

        parts.append(f"{self.type_name}: {self.message}" if self.message else self.type_name)

        return "".join(parts)


_HOLE = re.compile(
    r"\{\{|\}\}|\{(?P<hint>[@$]?)(?P<name>[A-Za-z0-9_]+)"
    r"(?:,(?P<align>-?\d+))?(?::(?P<format>[^{}]+))?\}"
)


class TemplateToken(NamedTuple):
    """Literal text (``name`` is None) or a named property hole."""

    text: str
    name: Optional[str] = None
    hint: str = ""
    align: Optional[int] = None
    format: Optional[str] = None


def parse_template(template: str) -> Iterator[TemplateToken]:
    """Split a message template into literal text and property holes."""

    position = 0

    for match in _HOLE.finditer(template):
        if match.start() > position:
            yield TemplateToken(template[position : match.start()])

        raw = match.group(0)
        if raw in ("{{", "}}"):
            yield TemplateToken(raw[0])
        else:
            align = match.group("align")
            yield TemplateToken(
                raw,
                name=match.group("name"),
                hint=match.group("hint"),
                align=int(align) if align is not None else None,
                format=match.group("format"),
            )

        position = match.end()

    if position < len(template):
        yield TemplateToken(template[position:])


def hole_names(template: str) -> list[str]:
    """Property names referenced by ``template``, in order of first use."""

    names: list[str] = []

    for token in parse_template(template):
        if token.name is not None and token.name not in names:
            names.append(token.name)

    return names


def render_value(value: PropertyValue, hint: str = "", format_spec: Optional[str] = None) -> str:
    """Render a property value for a template hole."""

    if hint == "$":
        return _quote(value.text() if isinstance(value, ScalarValue) else value.render())

    if isinstance(value, ScalarValue) and format_spec:
        if format_spec == "l":
            return value.text()
        try:
            return format(value.value, format_spec)
        except (TypeError, ValueError):
            return value.render()

    return value.render()


def align_text(text: str, align: Optional[int]) -> str:
    if align is None:
        return text

    if align < 0:
        return text.ljust(-align)

    return text.rjust(align)


def render_template(template: str, properties: Mapping[str, PropertyValue]) -> str:
    """Render ``template`` against ``properties``; unknown holes stay verbatim."""

    rendered: list[str] = []

    for token in parse_template(template):
        if token.name is None or token.name not in properties:
            rendered.append(token.text)
            continue

        text = render_value(properties[token.name], token.hint, token.format)
        rendered.append(align_text(text, token.align))

    return "".join(rendered)


def _utc_now() -> _dt.datetime:
    return _dt.datetime.now(tz=_dt.timezone.utc)


@dataclass(frozen=True)
class LogEvent:
    """A single templated log event with its captured properties."""

    level: LogLevel
    message_template: str
    properties: Mapping[str, PropertyValue] = field(default_factory=dict)
    timestamp: _dt.datetime = field(default_factory=_utc_now)
    exception: Optional[ExceptionInfo] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))

        if self.timestamp.tzinfo is None:
            object.__setattr__(
                self, "timestamp", self.timestamp.replace(tzinfo=_dt.timezone.utc)
            )

    def render_message(self) -> str:
        """Substitute property renderings into the message template."""

        return render_template(self.message_template, self.properties)
