# src/discord_forwarder/formatting.py
"""Convert captured events into size-bounded Discord messages.

PayloadFormatter runs synchronously on the producer's thread: it performs no
I/O and never raises on field content. Values that cannot be serialized are
rendered with repr(); a value whose repr() also fails is skipped.

Discord limits (in characters) that shape the output:
- embed description: 4096, but we stay under the legacy 2048
- field value: 1024
- field name / embed title: 256
- footer: 2048
- fields per embed: 25
- whole embed (title, description, footer, field names and values): 6000
- message content: 2000

A safety margin of 15 characters is kept below the description and field
value limits.
"""

import json
from collections.abc import Iterable
from typing import Any

from discord_forwarder.contracts.enums import Level, MetadataLayout
from discord_forwarder.contracts.events import Event
from discord_forwarder.contracts.message import Embed, EmbedField, FormattedMessage
from discord_forwarder.filtering import FilterChain
from discord_forwarder.text import chunk, truncate

MAX_DESCRIPTION_CHARS = 2048 - 15
MAX_FIELD_VALUE_CHARS = 1024 - 15
MAX_FIELD_NAME_CHARS = 256
MAX_TITLE_CHARS = 256
MAX_FOOTER_CHARS = 2048
MAX_CONTENT_CHARS = 2000
MAX_EMBED_FIELDS = 25
MAX_EMBED_CHARS = 6000

_JSON_FENCE_OPEN = "```json\n"
_JSON_FENCE_CLOSE = "\n```"
# Blob chunks are wrapped in a code fence, which must fit in the field too
METADATA_CHUNK_CHARS = MAX_FIELD_VALUE_CHARS - len(_JSON_FENCE_OPEN) - len(_JSON_FENCE_CLOSE)

# Room kept for the "Omitted" note when fields are dropped
_OMITTED_RESERVE_CHARS = 40

# Discord rejects empty field values
_EMPTY_VALUE = "(empty)"

LEVEL_EMOJI: dict[Level, str] = {
    Level.TRACE: ":mag:",
    Level.DEBUG: ":bug:",
    Level.INFO: ":information_source:",
    Level.WARN: ":warning:",
    Level.ERROR: ":x:",
}

LEVEL_COLOR: dict[Level, int] = {
    Level.TRACE: 0x1ABC9C,
    Level.DEBUG: 0x1ABC9C,
    Level.INFO: 0x57F287,
    Level.WARN: 0xE67E22,
    Level.ERROR: 0xED4245,
}


def level_style(level: Level) -> tuple[str, int]:
    """Return the (emoji, color) pair for a level."""
    return LEVEL_EMOJI[level], LEVEL_COLOR[level]


def render_value(value: Any) -> str | None:
    """Render a field value for display.

    Strings are shown as-is; everything else as compact JSON, falling back to
    repr() for values JSON cannot encode. Returns None if the value cannot be
    rendered at all.
    """
    if isinstance(value, str):
        return value
    return _render_json(value)


def _render_json(value: Any) -> str | None:
    # default=repr itself runs arbitrary __repr__ code, so any exception is possible
    try:
        return json.dumps(value, ensure_ascii=False, default=repr)
    except Exception:
        try:
            return json.dumps(repr(value), ensure_ascii=False)
        except Exception:
            return None


def render_metadata_blob(items: Iterable[tuple[str, Any]]) -> str:
    """Render fields as a pretty-printed JSON object.

    Keys keep their order and duplicates are kept, which a dict-based
    json.dumps would collapse. Returns an empty string if there are no
    renderable fields.
    """
    lines = []
    for key, value in items:
        rendered = _render_json(value)
        if rendered is None:
            continue
        lines.append(f"  {json.dumps(key, ensure_ascii=False)}: {rendered}")
    if not lines:
        return ""
    return "{\n" + ",\n".join(lines) + "\n}"


def chunk_metadata(blob: str, size: int = METADATA_CHUNK_CHARS) -> list[tuple[str, str]]:
    """Split a metadata blob into named chunks.

    A blob that fits in one chunk is named "Metadata"; otherwise chunks are
    named "Metadata (1)", "Metadata (2)", and so on.
    """
    pieces = chunk(blob, size)
    if len(pieces) == 1:
        return [("Metadata", pieces[0])]
    return [(f"Metadata ({number})", piece) for number, piece in enumerate(pieces, start=1)]


class PayloadFormatter:
    """Builds a FormattedMessage from an accepted event.

    Configuration is fixed at construction; format() may be called
    concurrently from any number of producer threads.

    Args:
        app_name: Shown in the embed title and footer
        webhook_url: Destination carried on every message
        filter_chain: Supplies field exclusions. Only its field exclusion
            patterns are consulted here; acceptance is decided before format().
        layout: How event and span fields are rendered
        content: Optional plain text sent alongside every embed
        thumbnail_url: Optional embed thumbnail
    """

    def __init__(
        self,
        app_name: str,
        webhook_url: str,
        *,
        filter_chain: FilterChain | None = None,
        layout: MetadataLayout = MetadataLayout.FIELDS,
        content: str | None = None,
        thumbnail_url: str | None = None,
    ) -> None:
        self._app_name = app_name
        self._webhook_url = webhook_url
        self._filter_chain = filter_chain or FilterChain()
        self._layout = layout
        self._content = truncate(content, MAX_CONTENT_CHARS) if content else None
        self._thumbnail_url = thumbnail_url

    @property
    def webhook_url(self) -> str:
        return self._webhook_url

    def format(self, event: Event) -> FormattedMessage:
        emoji, color = level_style(event.level)
        span_name = event.span.name if event.span is not None else ""
        fields = [
            EmbedField(
                name="Target Span",
                value=truncate(f"{event.target}::{span_name}", MAX_FIELD_VALUE_CHARS),
                inline=True,
            ),
            EmbedField(
                name="Source",
                value=truncate(f"{event.file or 'Unknown'}#L{event.line or 0}", MAX_FIELD_VALUE_CHARS),
                inline=True,
            ),
        ]

        if self._layout is MetadataLayout.BLOB:
            fields.extend(self._blob_fields(event))
        else:
            fields.extend(self._display_fields(event))

        title = truncate(f"{self._app_name} - {emoji} {event.level.value.upper()}", MAX_TITLE_CHARS)
        description = truncate(event.heading, MAX_DESCRIPTION_CHARS)
        footer = truncate(self._app_name, MAX_FOOTER_CHARS)
        embed = Embed(
            title=title,
            description=description,
            fields=_cap_fields(fields, MAX_EMBED_CHARS - len(title) - len(description) - len(footer)),
            footer=footer,
            color=color,
            thumbnail_url=self._thumbnail_url,
        )
        return FormattedMessage.with_embeds([embed], self._webhook_url, text=self._content)

    def _metadata_items(self, event: Event) -> list[tuple[str, Any]]:
        # Event fields first, then span fields; duplicate keys are kept
        items = list(self._filter_chain.candidate_fields(event))
        if event.span is not None:
            items.extend(
                (key, value) for key, value in event.span.fields.items() if not self._filter_chain.is_field_excluded(key)
            )
        return items

    def _display_fields(self, event: Event) -> list[EmbedField]:
        fields = []
        for key, value in self._metadata_items(event):
            rendered = render_value(value)
            if rendered is None:
                continue
            fields.append(
                EmbedField(
                    name=truncate(key or _EMPTY_VALUE, MAX_FIELD_NAME_CHARS),
                    value=truncate(rendered or _EMPTY_VALUE, MAX_FIELD_VALUE_CHARS),
                )
            )
        return fields

    def _blob_fields(self, event: Event) -> list[EmbedField]:
        blob = render_metadata_blob(self._metadata_items(event))
        return [
            EmbedField(name=name, value=f"{_JSON_FENCE_OPEN}{piece}{_JSON_FENCE_CLOSE}") for name, piece in chunk_metadata(blob)
        ]


def _cap_fields(fields: list[EmbedField], budget: int) -> tuple[EmbedField, ...]:
    """Keep within Discord's per-embed field count and total size limits.

    ``budget`` is the number of characters left for field names and values
    once the title, description, and footer are counted. Trailing fields that
    do not fit are dropped and replaced by a single "Omitted" note.
    """
    if len(fields) <= MAX_EMBED_FIELDS and sum(_field_chars(f) for f in fields) <= budget:
        return tuple(fields)
    kept: list[EmbedField] = []
    used = 0
    for field in fields:
        size = _field_chars(field)
        if len(kept) == MAX_EMBED_FIELDS - 1 or used + size > budget - _OMITTED_RESERVE_CHARS:
            break
        kept.append(field)
        used += size
    omitted = len(fields) - len(kept)
    return (*kept, EmbedField(name="Omitted", value=f"{omitted} more fields not shown"))


def _field_chars(field: EmbedField) -> int:
    return len(field.name) + len(field.value)
