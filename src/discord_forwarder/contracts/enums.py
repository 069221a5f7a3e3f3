# src/discord_forwarder/contracts/enums.py
"""Levels, modes, and states shared across the forwarder's subsystems."""

from enum import StrEnum


class Level(StrEnum):
    """Severity of a captured event.

    Ordered by severity: ERROR > WARN > INFO > DEBUG > TRACE.
    """

    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def severity(self) -> int:
        """Numeric severity, higher is more severe."""
        return _SEVERITY[self]

    @classmethod
    def parse(cls, value: str) -> "Level":
        """Parse a level name case-insensitively.

        Accepts ``warning`` as an alias of ``warn`` and ``critical``/``fatal``
        as aliases of ``error``.

        Raises:
            ValueError: If the name is not a known level.
        """
        normalized = value.strip().lower()
        normalized = _LEVEL_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown level {value!r}; expected one of: {', '.join(m.value for m in cls)}") from None


_SEVERITY: dict[Level, int] = {
    Level.TRACE: 0,
    Level.DEBUG: 1,
    Level.INFO: 2,
    Level.WARN: 3,
    Level.ERROR: 4,
}

_LEVEL_ALIASES: dict[str, str] = {
    "warning": "warn",
    "critical": "error",
    "fatal": "error",
}


class LevelFilter(StrEnum):
    """Minimum severity threshold for forwarding.

    ``OFF`` forwards nothing. Any other value forwards events at least as
    severe as the named level, so ``WARN`` passes WARN and ERROR events.
    """

    OFF = "off"
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"
    TRACE = "trace"

    def allows(self, level: Level) -> bool:
        if self is LevelFilter.OFF:
            return False
        return level.severity >= Level(self.value).severity

    @classmethod
    def parse(cls, value: str) -> "LevelFilter":
        """Parse a threshold string such as ``"warn"`` or ``"OFF"``.

        Raises:
            ValueError: If the string names neither a level nor ``off``.
        """
        normalized = value.strip().lower()
        if normalized == "off":
            return cls.OFF
        return cls(Level.parse(normalized).value)


class FilterPolarity(StrEnum):
    """How a filter rule's regex match is interpreted.

    SUBTRACTIVE: reject the candidate unless the pattern matches.
    ADDITIVE: reject the candidate if the pattern matches.
    """

    SUBTRACTIVE = "subtractive"
    ADDITIVE = "additive"


class FilterGroup(StrEnum):
    """Rule group that rejected an event."""

    TARGET = "target"
    MESSAGE = "message"
    FIELD = "field"
    LEVEL = "level"


class MetadataLayout(StrEnum):
    """How event and span fields are rendered into the embed.

    FIELDS: one embed field per event/span field, each truncated.
    BLOB: a single pretty-printed JSON blob, split into numbered chunks
        when it exceeds the per-field limit.
    """

    FIELDS = "fields"
    BLOB = "blob"


class WorkerState(StrEnum):
    """Lifecycle state of the delivery worker."""

    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"
