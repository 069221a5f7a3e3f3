# src/discord_forwarder/contracts/message.py
"""Transport-ready Discord webhook messages.

A FormattedMessage is built once per accepted event, carried through the
delivery queue, and serialized by the worker. The webhook URL travels with the
message as routing information and is never part of the serialized body.

Wire format:
    {"content"?: str,
     "embeds"?: [{"title", "description", "fields": [{"name", "value", "inline"}],
                  "footer": {"text"}, "color", "thumbnail"?: {"url"}}]}
"""

import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class EmbedField:
    """A name/value pair displayed inside an embed."""

    name: str
    value: str
    inline: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {"name": self.name, "value": self.value, "inline": self.inline}


@dataclass(frozen=True, slots=True)
class Embed:
    """Rich-content block rendered by Discord.

    Attributes:
        title: Bold heading line
        description: Body text under the title
        fields: Ordered display fields
        footer: Footer text
        color: Side-bar color as a 24-bit RGB integer
        thumbnail_url: Optional thumbnail image URL
    """

    title: str
    description: str
    fields: tuple[EmbedField, ...]
    footer: str
    color: int
    thumbnail_url: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "fields": [f.to_payload() for f in self.fields],
            "footer": {"text": self.footer},
            "color": self.color,
        }
        if self.thumbnail_url is not None:
            payload["thumbnail"] = {"url": self.thumbnail_url}
        return payload


@dataclass(frozen=True, slots=True)
class FormattedMessage:
    """A message ready for delivery to a Discord webhook.

    At least one of ``content`` and ``embeds`` must be present.

    Raises:
        ValueError: On construction with neither content nor embeds.
    """

    webhook_url: str
    content: str | None = None
    embeds: tuple[Embed, ...] | None = None

    def __post_init__(self) -> None:
        if self.content is None and not self.embeds:
            raise ValueError("FormattedMessage requires content, embeds, or both")

    @classmethod
    def text_only(cls, text: str, webhook_url: str) -> "FormattedMessage":
        return cls(webhook_url=webhook_url, content=text)

    @classmethod
    def with_embeds(cls, embeds: Sequence[Embed], webhook_url: str, *, text: str | None = None) -> "FormattedMessage":
        return cls(webhook_url=webhook_url, content=text, embeds=tuple(embeds))

    def to_payload(self) -> dict[str, Any]:
        """Build the JSON body. The webhook URL is deliberately absent."""
        payload: dict[str, Any] = {}
        if self.content is not None:
            payload["content"] = self.content
        if self.embeds:
            payload["embeds"] = [embed.to_payload() for embed in self.embeds]
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_payload(), ensure_ascii=False)
