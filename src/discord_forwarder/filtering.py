# src/discord_forwarder/filtering.py
"""Event filtering by target, message, field keys, and level.

A FilterChain holds up to four rule groups plus a set of field-exclusion
patterns. Every configured group must accept an event for it to be forwarded;
the first rejection short-circuits. Groups that are not configured never
reject.

Evaluation order:
1. Target: the event's logical source name
2. Message: the event's heading (message, else error, else "No message")
3. Field keys: each metadata field key not removed by field exclusion;
   a single rejected key rejects the whole event
4. Level: the event must be at least as severe as the threshold

Field exclusion never rejects an event. It only removes matching fields from
what is rendered and from what the field-key group inspects.

Rules are compiled once at construction. The chain is immutable afterwards and
safe to share between producer threads.
"""

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from discord_forwarder.contracts.enums import FilterGroup, FilterPolarity, LevelFilter
from discord_forwarder.contracts.events import Event
from discord_forwarder.errors import ForwarderConfigurationError


@dataclass(frozen=True, slots=True)
class FilterRule:
    """A compiled pattern and the polarity it is applied with."""

    pattern: re.Pattern[str]
    polarity: FilterPolarity

    @classmethod
    def compile(cls, pattern: str, polarity: FilterPolarity) -> "FilterRule":
        """Compile a rule from a regex string.

        Raises:
            ForwarderConfigurationError: If the pattern is not a valid regex.
        """
        try:
            compiled = re.compile(pattern)
        except re.error as e:
            raise ForwarderConfigurationError(f"Invalid filter pattern {pattern!r}: {e}") from e
        return cls(pattern=compiled, polarity=FilterPolarity(polarity))

    def rejects(self, value: str) -> bool:
        matched = self.pattern.search(value) is not None
        if self.polarity is FilterPolarity.SUBTRACTIVE:
            return not matched
        return matched


@dataclass(frozen=True, slots=True)
class EventFilters:
    """An ordered group of independently evaluated rules."""

    rules: tuple[FilterRule, ...] = ()

    @classmethod
    def of(cls, *rules: FilterRule) -> "EventFilters":
        return cls(rules=rules)

    def first_rejecting(self, value: str) -> FilterRule | None:
        for rule in self.rules:
            if rule.rejects(value):
                return rule
        return None

    def __len__(self) -> int:
        return len(self.rules)


@dataclass(frozen=True, slots=True)
class FilterRejection:
    """Why an event was not forwarded.

    Attributes:
        group: Rule group that rejected the event
        value: The inspected value (target, heading, field key, or level)
        pattern: Pattern of the rejecting rule; None for the level group
    """

    group: FilterGroup
    value: str
    pattern: str | None = None


class FilterChain:
    """Decides whether an event is forwarded.

    Example:
        >>> from discord_forwarder.contracts import Level
        >>> chain = FilterChain(
        ...     target=EventFilters.of(FilterRule.compile("^myapp", FilterPolarity.SUBTRACTIVE)),
        ...     level=LevelFilter.WARN,
        ... )
        >>> chain.accepts(Event(target="myapp.db", level=Level.ERROR))
        True
    """

    def __init__(
        self,
        *,
        target: EventFilters | None = None,
        message: EventFilters | None = None,
        event_by_field: EventFilters | None = None,
        field_exclusions: Iterable[re.Pattern[str]] = (),
        level: LevelFilter | None = None,
    ) -> None:
        self._target = target
        self._message = message
        self._event_by_field = event_by_field
        self._field_exclusions = tuple(field_exclusions)
        self._level = level

    @property
    def level(self) -> LevelFilter | None:
        return self._level

    def is_field_excluded(self, key: str) -> bool:
        """True if the field key matches any exclusion pattern."""
        return any(pattern.search(key) is not None for pattern in self._field_exclusions)

    def candidate_fields(self, event: Event) -> Iterator[tuple[str, Any]]:
        """Event metadata fields that survive field exclusion, in order."""
        for key, value in event.metadata_items():
            if not self.is_field_excluded(key):
                yield key, value

    def rejection(self, event: Event) -> FilterRejection | None:
        """Return the first rejection for this event, or None if accepted."""
        if self._target is not None:
            rule = self._target.first_rejecting(event.target)
            if rule is not None:
                return FilterRejection(FilterGroup.TARGET, event.target, rule.pattern.pattern)

        if self._message is not None:
            heading = event.heading
            rule = self._message.first_rejecting(heading)
            if rule is not None:
                return FilterRejection(FilterGroup.MESSAGE, heading, rule.pattern.pattern)

        if self._event_by_field is not None and len(self._event_by_field):
            for key, _ in self.candidate_fields(event):
                rule = self._event_by_field.first_rejecting(key)
                if rule is not None:
                    return FilterRejection(FilterGroup.FIELD, key, rule.pattern.pattern)

        if self._level is not None and not self._level.allows(event.level):
            return FilterRejection(FilterGroup.LEVEL, event.level.value)

        return None

    def accepts(self, event: Event) -> bool:
        return self.rejection(event) is None
