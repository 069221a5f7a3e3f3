# src/discord_forwarder/handler.py
"""stdlib logging integration.

DiscordHandler converts LogRecords into Events and hands them to a Forwarder.
It covers both plain ``logging`` calls and structlog events routed through
stdlib (see core.logging.configure_logging), whose event dicts arrive as the
record's ``msg``.

Record -> Event mapping:
- target: logger name
- level: CRITICAL/ERROR -> error, WARNING -> warn, INFO -> info,
  DEBUG -> debug, anything lower -> trace
- fields: ``message`` first, then structlog event-dict keys or ``extra=``
  attributes in insertion order, then ``exception`` if exc_info is set
- file/line: pathname and lineno
- span: the active span from discord_forwarder.spans
"""

import logging
import sys
import traceback
from types import TracebackType
from typing import Any

from discord_forwarder.contracts.enums import Level
from discord_forwarder.contracts.events import Event
from discord_forwarder.core.config import ForwarderSettings
from discord_forwarder.delivery.shutdown import ShutdownHandle
from discord_forwarder.forwarder import Forwarder, build
from discord_forwarder.spans import current_span

# Our own diagnostics must never be forwarded back into the queue
_IGNORED_LOGGER_PREFIX = "discord_forwarder"

# Attributes every LogRecord has; anything else came from extra=
_STANDARD_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

# structlog bookkeeping keys that are not user fields
_STRUCTLOG_INTERNAL_KEYS = frozenset({"event", "level", "logger", "timestamp", "exc_info", "stack_info"})


def level_for(levelno: int) -> Level:
    if levelno >= logging.ERROR:
        return Level.ERROR
    if levelno >= logging.WARNING:
        return Level.WARN
    if levelno >= logging.INFO:
        return Level.INFO
    if levelno >= logging.DEBUG:
        return Level.DEBUG
    return Level.TRACE


def _record_message(record: logging.LogRecord) -> str:
    try:
        return record.getMessage()
    except Exception:
        # Mismatched %-args; show the unformatted template
        return str(record.msg)


ExcInfo = tuple[type[BaseException], BaseException, TracebackType | None] | tuple[None, None, None]


def _structlog_exc_info(value: Any) -> ExcInfo | None:
    """Normalize structlog's exc_info (True, an exception, or a tuple)."""
    if value is True:
        return sys.exc_info()
    if isinstance(value, BaseException):
        return (type(value), value, value.__traceback__)
    if isinstance(value, tuple) and len(value) == 3:
        return value  # type: ignore[return-value]
    return None


def record_to_event(record: logging.LogRecord) -> Event:
    """Build an Event from a LogRecord."""
    fields: dict[str, Any] = {}
    if isinstance(record.msg, dict):
        event_dict = record.msg
        if "event" in event_dict:
            fields["message"] = str(event_dict["event"])
        fields.update(
            (key, value)
            for key, value in event_dict.items()
            if isinstance(key, str) and key not in _STRUCTLOG_INTERNAL_KEYS and not key.startswith("_")
        )
    else:
        fields["message"] = _record_message(record)
        fields.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_")
        )

    exc_info = record.exc_info
    if exc_info is None and isinstance(record.msg, dict):
        exc_info = _structlog_exc_info(record.msg.get("exc_info"))
    if exc_info and exc_info[0] is not None:
        fields["exception"] = "".join(traceback.format_exception(*exc_info)).rstrip()

    return Event(
        target=record.name,
        level=level_for(record.levelno),
        fields=fields,
        file=record.pathname or None,
        line=record.lineno,
        span=current_span(),
    )


class DiscordHandler(logging.Handler):
    """Logging handler that forwards records to Discord.

    emit() only filters, formats, and enqueues; delivery happens on the
    forwarder's worker thread. Closing the handler drains and stops the
    worker, so logging.shutdown() at interpreter exit sends what is queued.

    Example:
        handler = DiscordHandler.from_settings(
            ForwarderSettings(app_name="billing", level_filter="warn")
        )
        logging.getLogger().addHandler(handler)
    """

    def __init__(
        self,
        forwarder: Forwarder,
        shutdown_handle: ShutdownHandle | None = None,
        *,
        level: int = logging.NOTSET,
        close_timeout: float | None = 30.0,
    ) -> None:
        super().__init__(level=level)
        self._forwarder = forwarder
        self._shutdown_handle = shutdown_handle
        self._close_timeout = close_timeout

    @classmethod
    def from_settings(cls, settings: ForwarderSettings, *, level: int = logging.NOTSET) -> "DiscordHandler":
        forwarder, handle = build(settings)
        return cls(forwarder, handle, level=level)

    @property
    def forwarder(self) -> Forwarder:
        return self._forwarder

    def emit(self, record: logging.LogRecord) -> None:
        if record.name.startswith(_IGNORED_LOGGER_PREFIX):
            return
        try:
            self._forwarder.capture(record_to_event(record))
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        try:
            if self._shutdown_handle is not None and not self._shutdown_handle.shutdown_requested:
                self._shutdown_handle.shutdown(timeout=self._close_timeout)
        finally:
            super().close()
