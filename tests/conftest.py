# tests/conftest.py
"""Shared test fixtures and helpers.

Fixtures:
- make_event: factory for Event values with sensible defaults
- webhook_url: a fixed, obviously-fake Discord webhook URL
- recording_transport / make_transport: httpx.MockTransport that records
  every request and answers with a configurable status or transport error
- http_client: httpx.Client over recording_transport
- make_worker: DeliveryWorker factory with instant backoff, stopped on teardown

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import json
import os
import threading
from collections.abc import Callable, Iterator
from typing import Any

import httpx
import pytest
from hypothesis import Phase, Verbosity, settings

from discord_forwarder.contracts import Event, Level, SpanContext
from discord_forwarder.delivery import DeliveryQueue, DeliveryWorker

WEBHOOK_URL = "https://discord.com/api/webhooks/123456/test-token"


class RecordingTransport(httpx.MockTransport):
    """MockTransport that records requests and can simulate failures.

    Attributes:
        requests: Every request received, in arrival order
        fail_with: If set, each request raises this transport error instead
            of getting a response
        status_code: Status returned when not failing
    """

    def __init__(self, *, status_code: int = 204, fail_with: type[httpx.TransportError] | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = status_code
        self.fail_with = fail_with
        self.fail_first: int = 0
        self._lock = threading.Lock()
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
            attempt = len(self.requests)
        if self.fail_with is not None or attempt <= self.fail_first:
            error = self.fail_with or httpx.ConnectError
            raise error("simulated transport failure", request=request)
        return httpx.Response(self.status_code)

    def payloads(self) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests]

    def descriptions(self) -> list[str]:
        return [payload["embeds"][0]["description"] for payload in self.payloads()]


@pytest.fixture
def webhook_url() -> str:
    return WEBHOOK_URL


@pytest.fixture
def recording_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def http_client(recording_transport: RecordingTransport) -> Iterator[httpx.Client]:
    client = httpx.Client(transport=recording_transport)
    yield client
    client.close()


@pytest.fixture
def make_transport() -> type[RecordingTransport]:
    return RecordingTransport


@pytest.fixture
def make_worker() -> Iterator[Callable[..., DeliveryWorker]]:
    """Factory for workers with instant backoff; stops every worker on teardown."""
    workers: list[DeliveryWorker] = []

    def _make(delivery_queue: DeliveryQueue, client: httpx.Client, **kwargs: Any) -> DeliveryWorker:
        kwargs.setdefault("sleep", lambda seconds: None)
        worker = DeliveryWorker(delivery_queue, client=client, **kwargs)
        workers.append(worker)
        return worker

    yield _make

    for worker in workers:
        worker.request_shutdown()
        worker.join(timeout=5.0)


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Factory for events; keyword arguments override the defaults."""

    def _make(
        message: Any = "something happened",
        *,
        target: str = "myapp.service",
        level: Level = Level.ERROR,
        fields: dict[str, Any] | None = None,
        file: str | None = "myapp/service.py",
        line: int | None = 42,
        span: SpanContext | None = None,
    ) -> Event:
        all_fields: dict[str, Any] = {}
        if message is not None:
            all_fields["message"] = message
        all_fields.update(fields or {})
        return Event(target=target, level=level, fields=all_fields, file=file, line=line, span=span)

    return _make


# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
