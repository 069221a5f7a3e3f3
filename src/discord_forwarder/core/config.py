# src/discord_forwarder/core/config.py
"""
Construction-time configuration for the forwarder.

Uses Pydantic for validation. Settings are frozen (immutable) after
construction, so the filter chain and formatter built from them can be shared
between producer threads without locking.

Every optional knob defaults to a no-op: no filters, no level threshold, no
extra content, no thumbnail.
"""

import os
import re
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from discord_forwarder.contracts.enums import FilterPolarity, LevelFilter, MetadataLayout
from discord_forwarder.errors import ForwarderConfigurationError
from discord_forwarder.filtering import FilterRule

WEBHOOK_URL_ENV_VAR = "DISCORD_WEBHOOK_URL"


def resolve_webhook_url(explicit: str | None = None) -> str:
    """Return the explicit webhook URL, or the one in DISCORD_WEBHOOK_URL.

    Raises:
        ForwarderConfigurationError: If neither is set.
    """
    if explicit:
        return explicit
    from_env = os.environ.get(WEBHOOK_URL_ENV_VAR)
    if not from_env:
        raise ForwarderConfigurationError(f"No webhook URL given and {WEBHOOK_URL_ENV_VAR} is not set")
    return from_env


def _check_pattern(pattern: str) -> str:
    try:
        re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid regex {pattern!r}: {e}") from e
    return pattern


class FilterRuleSettings(BaseModel):
    """One filter rule.

    Polarity semantics:
    - subtractive: exclude the event unless the pattern MATCHES
    - additive: exclude the event if the pattern MATCHES

    Example YAML:
        target_filters:
          - pattern: "^myapp"
            polarity: subtractive
          - pattern: "healthcheck"
            polarity: additive
    """

    model_config = {"frozen": True}

    pattern: str = Field(description="Regular expression, searched anywhere in the value")
    polarity: FilterPolarity = Field(
        default=FilterPolarity.SUBTRACTIVE,
        description="Whether a match keeps (subtractive) or removes (additive) the event",
    )

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        return _check_pattern(v)

    def compile(self) -> FilterRule:
        return FilterRule.compile(self.pattern, self.polarity)


class ForwarderSettings(BaseModel):
    """Everything needed to build a forwarder and its delivery worker.

    The webhook URL falls back to the DISCORD_WEBHOOK_URL environment variable
    when not given explicitly.
    """

    model_config = {"frozen": True}

    app_name: str = Field(min_length=1, description="Shown in embed titles and footers")
    webhook_url: str = Field(description="Discord webhook URL; DISCORD_WEBHOOK_URL when omitted")

    target_filters: tuple[FilterRuleSettings, ...] = Field(
        default=(),
        description="Rules applied to the event target (logger name)",
    )
    message_filters: tuple[FilterRuleSettings, ...] = Field(
        default=(),
        description="Rules applied to the event message",
    )
    event_by_field_filters: tuple[FilterRuleSettings, ...] = Field(
        default=(),
        description="Rules applied to each event field key",
    )
    field_exclusion_filters: tuple[str, ...] = Field(
        default=(),
        description="Field keys matching any of these regexes are not sent",
    )
    level_filter: LevelFilter | None = Field(
        default=None,
        description="Minimum severity to forward, e.g. 'warn'; 'off' forwards nothing",
    )

    content: str | None = Field(default=None, description="Plain text sent with every embed, e.g. a role mention")
    thumbnail_url: str | None = Field(default=None, description="Embed thumbnail image URL")
    metadata_layout: MetadataLayout = Field(
        default=MetadataLayout.FIELDS,
        description="Render fields individually or as one chunked JSON blob",
    )
    request_timeout_seconds: float = Field(default=10.0, gt=0, description="Per-request HTTP timeout")

    @model_validator(mode="before")
    @classmethod
    def resolve_webhook_url_from_env(cls, data: Any) -> Any:
        """Fill webhook_url from DISCORD_WEBHOOK_URL when it is missing.

        Raises:
            ForwarderConfigurationError: If neither source provides a URL.
                Raised as-is rather than wrapped in a ValidationError.
        """
        if isinstance(data, dict) and not data.get("webhook_url"):
            data = {**data, "webhook_url": resolve_webhook_url(None)}
        return data

    @field_validator("webhook_url")
    @classmethod
    def validate_webhook_url(cls, v: str) -> str:
        if not v.startswith(("https://", "http://")):
            raise ValueError("webhook_url must be an http(s) URL")
        return v

    @field_validator("field_exclusion_filters")
    @classmethod
    def validate_exclusion_patterns(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        for pattern in v:
            _check_pattern(pattern)
        return v

    @field_validator("level_filter", mode="before")
    @classmethod
    def parse_level_filter(cls, v: Any) -> Any:
        if isinstance(v, str):
            return LevelFilter.parse(v)
        return v

    def compiled_field_exclusions(self) -> tuple[re.Pattern[str], ...]:
        return tuple(re.compile(pattern) for pattern in self.field_exclusion_filters)
