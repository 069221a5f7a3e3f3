# src/discord_forwarder/forwarder.py
"""The capture point and the wiring that connects it to delivery.

Forwarder.capture() runs on the producer's thread:
1. FilterChain decides whether the event is forwarded
2. PayloadFormatter builds a size-bounded FormattedMessage
3. The message is pushed onto the DeliveryQueue (never blocks)

capture() never raises. An error while filtering or formatting drops that
event and is logged; the producer carries on.

Re-entrance:
    The forwarder's own diagnostics are themselves log records. If they were
    captured they could loop back into the queue forever, so capture() ignores
    events raised while a capture is already running on the same thread, and
    everything emitted from the delivery worker thread.
"""

import threading
from collections.abc import Iterable
from typing import Any

import httpx
import structlog

from discord_forwarder.contracts.enums import LevelFilter, MetadataLayout, WorkerState
from discord_forwarder.contracts.events import Event
from discord_forwarder.core.config import FilterRuleSettings, ForwarderSettings
from discord_forwarder.delivery.queue import DeliveryQueue
from discord_forwarder.delivery.shutdown import ShutdownHandle
from discord_forwarder.delivery.worker import DeliveryWorker
from discord_forwarder.filtering import EventFilters, FilterChain, FilterRejection
from discord_forwarder.formatting import PayloadFormatter

logger = structlog.get_logger(__name__)

_capture_state = threading.local()


class Forwarder:
    """Filters, formats, and enqueues events for background delivery.

    Built by build(); safe to call from any number of threads.

    Example:
        >>> forwarder, handle = build(ForwarderSettings(app_name="billing", webhook_url=url))
        >>> forwarder.capture(Event(target="billing.invoices", level=Level.ERROR, fields={"message": "boom"}))
        True
        >>> handle.shutdown()
    """

    def __init__(
        self,
        filter_chain: FilterChain,
        formatter: PayloadFormatter,
        delivery_queue: DeliveryQueue,
        worker: DeliveryWorker,
    ) -> None:
        self._filter_chain = filter_chain
        self._formatter = formatter
        self._queue = delivery_queue
        self._worker = worker

    @property
    def filter_chain(self) -> FilterChain:
        return self._filter_chain

    @property
    def formatter(self) -> PayloadFormatter:
        return self._formatter

    @property
    def worker(self) -> DeliveryWorker:
        return self._worker

    def rejection(self, event: Event) -> FilterRejection | None:
        """Why this event would not be forwarded, or None if it would."""
        return self._filter_chain.rejection(event)

    def capture(self, event: Event) -> bool:
        """Queue an event for delivery.

        Returns:
            True if a message was queued; False if the event was filtered,
            ignored for re-entrance, arrived after shutdown, or failed to
            format.
        """
        if threading.current_thread() is self._worker.thread:
            return False
        if getattr(_capture_state, "active", False):
            return False
        if self._worker.state is not WorkerState.RUNNING:
            return False

        _capture_state.active = True
        try:
            if not self._filter_chain.accepts(event):
                return False
            self._queue.push(self._formatter.format(event))
            return True
        except Exception as e:
            logger.error(
                "Failed to capture event for Discord",
                target=event.target,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        finally:
            _capture_state.active = False

    def flush(self) -> None:
        """Wait until everything queued so far has been attempted."""
        self._worker.flush()

    @property
    def health_metrics(self) -> dict[str, Any]:
        return self._worker.health_metrics


def _event_filters(rules: Iterable[FilterRuleSettings]) -> EventFilters | None:
    compiled = tuple(rule.compile() for rule in rules)
    return EventFilters(rules=compiled) if compiled else None


def build(settings: ForwarderSettings, *, client: httpx.Client | None = None) -> tuple[Forwarder, ShutdownHandle]:
    """Create a forwarder and start its delivery worker.

    Args:
        settings: Validated forwarder settings
        client: Optional HTTP client for the worker (tests, proxies). When
            omitted the worker owns a client with the configured timeout.

    Returns:
        The forwarder (the capture point) and the handle used to drain and
        stop its worker.
    """
    filter_chain = FilterChain(
        target=_event_filters(settings.target_filters),
        message=_event_filters(settings.message_filters),
        event_by_field=_event_filters(settings.event_by_field_filters),
        field_exclusions=settings.compiled_field_exclusions(),
        level=settings.level_filter,
    )
    formatter = PayloadFormatter(
        settings.app_name,
        settings.webhook_url,
        filter_chain=filter_chain,
        layout=settings.metadata_layout,
        content=settings.content,
        thumbnail_url=settings.thumbnail_url,
    )
    delivery_queue = DeliveryQueue()
    worker = DeliveryWorker(
        delivery_queue,
        client=client,
        timeout=settings.request_timeout_seconds,
    )
    return Forwarder(filter_chain, formatter, delivery_queue, worker), ShutdownHandle(worker)


class ForwarderBuilder:
    """Chained construction of ForwarderSettings.

    The webhook URL defaults to the DISCORD_WEBHOOK_URL environment variable.

    Example:
        forwarder, handle = (
            ForwarderBuilder("billing")
            .target_filters(FilterRuleSettings(pattern="^billing"))
            .level_filter("warn")
            .build()
        )
    """

    def __init__(self, app_name: str) -> None:
        self._options: dict[str, Any] = {"app_name": app_name}
        self._client: httpx.Client | None = None

    def target_filters(self, *rules: FilterRuleSettings) -> "ForwarderBuilder":
        self._options["target_filters"] = rules
        return self

    def message_filters(self, *rules: FilterRuleSettings) -> "ForwarderBuilder":
        self._options["message_filters"] = rules
        return self

    def event_by_field_filters(self, *rules: FilterRuleSettings) -> "ForwarderBuilder":
        self._options["event_by_field_filters"] = rules
        return self

    def field_exclusion_filters(self, *patterns: str) -> "ForwarderBuilder":
        self._options["field_exclusion_filters"] = patterns
        return self

    def level_filter(self, level: str | LevelFilter) -> "ForwarderBuilder":
        self._options["level_filter"] = level
        return self

    def webhook_url(self, url: str) -> "ForwarderBuilder":
        self._options["webhook_url"] = url
        return self

    def content(self, text: str) -> "ForwarderBuilder":
        self._options["content"] = text
        return self

    def thumbnail_url(self, url: str) -> "ForwarderBuilder":
        self._options["thumbnail_url"] = url
        return self

    def metadata_layout(self, layout: MetadataLayout) -> "ForwarderBuilder":
        self._options["metadata_layout"] = layout
        return self

    def http_client(self, client: httpx.Client) -> "ForwarderBuilder":
        self._client = client
        return self

    def settings(self) -> ForwarderSettings:
        return ForwarderSettings(**self._options)

    def build(self) -> tuple[Forwarder, ShutdownHandle]:
        return build(self.settings(), client=self._client)
