"""Values that cross the boundary between the capture path and delivery.

- events: Event and SpanContext, consumed at the capture point
- message: FormattedMessage and its embeds, produced by the formatter
- enums: Level, LevelFilter, FilterPolarity, MetadataLayout, WorkerState
"""

from discord_forwarder.contracts.enums import (
    FilterGroup,
    FilterPolarity,
    Level,
    LevelFilter,
    MetadataLayout,
    WorkerState,
)
from discord_forwarder.contracts.events import HEADING_KEYS, Event, SpanContext
from discord_forwarder.contracts.message import Embed, EmbedField, FormattedMessage

__all__ = [
    "HEADING_KEYS",
    "Embed",
    "EmbedField",
    "Event",
    "FilterGroup",
    "FilterPolarity",
    "FormattedMessage",
    "Level",
    "LevelFilter",
    "MetadataLayout",
    "SpanContext",
    "WorkerState",
]
