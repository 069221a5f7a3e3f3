"""
discord-forwarder: ship structured log events to Discord webhooks.

Events are filtered and formatted synchronously at the capture point, then
handed to a background delivery thread so the instrumented application never
waits on network I/O.
"""

from discord_forwarder.contracts import Event, FormattedMessage, Level, SpanContext
from discord_forwarder.core.config import FilterRuleSettings, ForwarderSettings
from discord_forwarder.delivery import ShutdownHandle
from discord_forwarder.errors import ForwarderConfigurationError, ForwarderError
from discord_forwarder.forwarder import Forwarder, ForwarderBuilder, build
from discord_forwarder.handler import DiscordHandler
from discord_forwarder.spans import span

__version__ = "0.1.0"

__all__ = [
    "DiscordHandler",
    "Event",
    "FilterRuleSettings",
    "FormattedMessage",
    "Forwarder",
    "ForwarderBuilder",
    "ForwarderConfigurationError",
    "ForwarderError",
    "ForwarderSettings",
    "Level",
    "ShutdownHandle",
    "SpanContext",
    "build",
    "span",
]
