"""Output templates: user-controlled text layout for rendered events."""

from __future__ import annotations

from typing import TextIO

from .events import (
    LogEvent,
    LogLevel,
    StructureValue,
    align_text,
    hole_names,
    parse_template,
    render_value,
)

DEFAULT_OUTPUT_TEMPLATE = "[{Level:u3}] {Message:l}{NewLine}{Exception}"

_LEVEL_NAMES = {
    LogLevel.VERBOSE: "Verbose",
    LogLevel.DEBUG: "Debug",
    LogLevel.INFORMATION: "Information",
    LogLevel.WARNING: "Warning",
    LogLevel.ERROR: "Error",
    LogLevel.FATAL: "Fatal",
}

_LEVEL_MONIKERS = {
    LogLevel.VERBOSE: "VRB",
    LogLevel.DEBUG: "DBG",
    LogLevel.INFORMATION: "INF",
    LogLevel.WARNING: "WRN",
    LogLevel.ERROR: "ERR",
    LogLevel.FATAL: "FTL",
}


def format_level(level: LogLevel, format_spec: str | None) -> str:
    """Render a level as ``Information``, ``INF`` (u3), ``inf`` (w3), ``INFORMATION`` (u)."""

    name = _LEVEL_NAMES.get(level, str(level))

    if not format_spec:
        return name

    if format_spec in ("u3", "w3"):
        moniker = _LEVEL_MONIKERS.get(level, name[:3].upper())
        return moniker if format_spec == "u3" else moniker.lower()

    if format_spec == "u":
        return name.upper()

    if format_spec == "w":
        return name.lower()

    return name


class OutputTemplateFormatter:
    """Writes an event through an output template such as ``"{Level:u3} {Message}"``.

    Built-in holes are ``Timestamp`` (an optional ``strftime`` format),
    ``Level``, ``Message``, ``NewLine``, ``Exception`` and ``Properties``; any
    other hole is looked up in the event's properties.
    """

    def __init__(self, template: str = DEFAULT_OUTPUT_TEMPLATE) -> None:
        self._template = template
        self._tokens = list(parse_template(template))
        self._template_names = frozenset(hole_names(template))

    @property
    def template(self) -> str:
        return self._template

    def format(self, event: LogEvent, writer: TextIO) -> None:
        for token in self._tokens:
            if token.name is None:
                writer.write(token.text)
                continue

            text = self._render_hole(event, token.name, token.hint, token.format)
            writer.write(align_text(text, token.align))

    def _render_hole(self, event: LogEvent, name: str, hint: str, format_spec: str | None) -> str:
        if name == "Timestamp":
            if format_spec:
                return event.timestamp.strftime(format_spec)
            return event.timestamp.isoformat(timespec="milliseconds")

        if name == "Level":
            return format_level(event.level, format_spec)

        if name == "Message":
            return event.render_message()

        if name == "NewLine":
            return "\n"

        if name == "Exception":
            return f"{event.exception}\n" if event.exception is not None else ""

        if name == "Properties":
            return self._render_remaining_properties(event)

        value = event.properties.get(name)
        if value is None:
            return ""

        return render_value(value, hint, format_spec)

    def _render_remaining_properties(self, event: LogEvent) -> str:
        # Properties already placed by the message or the output template are omitted.
        consumed = self._template_names | frozenset(hole_names(event.message_template))
        remaining = tuple(
            (key, value) for key, value in event.properties.items() if key not in consumed
        )

        return StructureValue(remaining).render()
