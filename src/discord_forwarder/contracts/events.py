# src/discord_forwarder/contracts/events.py
"""Captured diagnostic events and their enclosing context.

These are the values the forwarder consumes at its capture point. They are
produced by an event source (the stdlib logging handler, or application code
calling ``Forwarder.capture`` directly) and are only read, never mutated, by
the filter and formatter.
"""

import types
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from discord_forwarder.contracts.enums import Level

# Field keys that carry the event's heading rather than metadata
HEADING_KEYS: tuple[str, ...] = ("message", "error")


def _freeze(fields: Mapping[str, Any]) -> Mapping[str, Any]:
    return types.MappingProxyType(dict(fields))


@dataclass(frozen=True, slots=True)
class SpanContext:
    """The active named scope an event was recorded in.

    Attributes:
        name: Span name, rendered as the second half of the "Target Span" field
        fields: Values captured when the span was entered, in insertion order
    """

    name: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", _freeze(self.fields))


@dataclass(frozen=True, slots=True)
class Event:
    """A single diagnostic record.

    Attributes:
        target: Logical source name (logger name, module path)
        level: Event severity
        fields: Event fields in insertion order. The heading is taken from
            the ``message`` field, falling back to ``error``.
        file: Source file that emitted the event, if known
        line: Source line that emitted the event, if known
        span: Enclosing context, if the event was recorded inside one
    """

    target: str
    level: Level
    fields: Mapping[str, Any] = field(default_factory=dict)
    file: str | None = None
    line: int | None = None
    span: SpanContext | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", _freeze(self.fields))

    @property
    def heading_key(self) -> str | None:
        """Key of the field used as the heading, or None if neither is a string."""
        for key in HEADING_KEYS:
            if isinstance(self.fields.get(key), str):
                return key
        return None

    @property
    def heading(self) -> str:
        """The event's message text.

        The ``message`` field if it is a string, else the ``error`` field if
        it is a string, else ``"No message"``.
        """
        key = self.heading_key
        if key is None:
            return "No message"
        return str(self.fields[key])

    def metadata_items(self) -> list[tuple[str, Any]]:
        """Event fields other than the one used as the heading, in insertion order."""
        heading_key = self.heading_key
        return [(key, value) for key, value in self.fields.items() if key != heading_key]
