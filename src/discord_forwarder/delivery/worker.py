# src/discord_forwarder/delivery/worker.py
"""DeliveryWorker sends queued messages to Discord from a background thread.

The worker is the single consumer of a DeliveryQueue:
1. Pops messages in FIFO order, one at a time
2. Serializes each to JSON and POSTs it to the message's webhook URL
3. Retries transport failures (connection, timeout, DNS) with a constant
   backoff, up to MAX_ATTEMPTS attempts in total
4. Drops a message whose attempts are exhausted and logs it
5. Stops after consuming the SHUTDOWN marker

Any HTTP response resolves a message, whatever its status code. Non-2xx
responses are logged and counted as rejected, never retried.

State machine:
    RUNNING --request_shutdown()--> DRAINING --SHUTDOWN popped--> STOPPED

Items that land on the queue behind SHUTDOWN are discarded, not delivered,
and counted in health_metrics["discarded_after_shutdown"].

Thread Safety:
    _run() and everything it calls run on the worker thread only. Counters
    are written only by that thread; health_metrics reads are approximately
    consistent. request_shutdown() may be called from any thread.
"""

import queue
import threading
import time
from collections.abc import Callable
from typing import Any

import httpx
import structlog
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from discord_forwarder.contracts.enums import WorkerState
from discord_forwarder.contracts.message import FormattedMessage
from discord_forwarder.delivery.queue import SHUTDOWN, DeliveryQueue
from discord_forwarder.errors import DeliveryFailedError

logger = structlog.get_logger(__name__)

MAX_ATTEMPTS = 10
BACKOFF_SECONDS = 0.1
DEFAULT_TIMEOUT_SECONDS = 10.0

_HEADERS = {"Content-Type": "application/json"}


class DeliveryWorker:
    """Single-consumer delivery loop on a dedicated daemon thread.

    The thread starts on construction. The thread is a daemon so that an
    application which never shuts the worker down can still exit; call
    ShutdownHandle.shutdown() (or close the logging handler) to drain first.

    Example:
        >>> delivery_queue = DeliveryQueue()
        >>> worker = DeliveryWorker(delivery_queue)
        >>> delivery_queue.push(message)
        >>> worker.request_shutdown()
        >>> worker.join()
    """

    def __init__(
        self,
        delivery_queue: DeliveryQueue,
        *,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_attempts: int = MAX_ATTEMPTS,
        backoff_seconds: float = BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize and start the worker.

        Args:
            delivery_queue: Queue to consume
            client: HTTP client to send with. If omitted the worker creates
                one with the given timeout and closes it when it stops.
            timeout: Per-request timeout in seconds for an owned client
            max_attempts: Total attempts per message, including the first
            backoff_seconds: Constant delay between attempts
            sleep: Sleep function used for backoff
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self._queue = delivery_queue
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client(timeout=timeout)
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep

        self._state = WorkerState.RUNNING
        self._state_lock = threading.Lock()

        # Health metrics (written by the worker thread only)
        self._delivered = 0
        self._rejected = 0
        self._dropped = 0
        self._attempts = 0
        self._discarded_after_shutdown = 0

        self._ready = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            name="discord-delivery",
            daemon=True,
        )
        self._thread.start()
        # Wait for thread to be ready (prevents startup race)
        self._ready.wait(timeout=5.0)

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def thread(self) -> threading.Thread:
        return self._thread

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def request_shutdown(self) -> bool:
        """Enqueue the SHUTDOWN marker and enter DRAINING.

        Returns:
            False if shutdown was already requested or the worker is stopped,
            True if this call enqueued the marker.
        """
        with self._state_lock:
            if self._state is not WorkerState.RUNNING:
                return False
            self._state = WorkerState.DRAINING
        self._queue.push(SHUTDOWN)
        return True

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the worker thread to exit. Returns True if it has."""
        self._thread.join(timeout=timeout)
        return not self._thread.is_alive()

    def flush(self) -> None:
        """Block until every message queued so far has been processed.

        No-op once shutdown has been requested: the drain is already under
        way, and items left behind the marker are never acknowledged. Use
        ShutdownHandle.shutdown() to wait for the drain.
        """
        if self._state is not WorkerState.RUNNING or not self._thread.is_alive():
            return
        self._queue.join()

    def _run(self) -> None:
        """Worker thread: consume the queue until SHUTDOWN is popped."""
        self._ready.set()
        try:
            while True:
                item = self._queue.pop()
                try:
                    if item is SHUTDOWN:
                        break
                    self.deliver(item)
                except Exception as e:
                    # Log but don't crash - one bad message must not stop delivery
                    self._dropped += 1
                    logger.error("Discord delivery failed unexpectedly", error=str(e), error_type=type(e).__name__)
                finally:
                    # ALWAYS acknowledge, including the marker, so join() never hangs
                    self._queue.task_done()
            self._discard_remaining()
        finally:
            with self._state_lock:
                self._state = WorkerState.STOPPED
            if self._owns_client:
                self._client.close()

    def _discard_remaining(self) -> None:
        while True:
            try:
                item = self._queue.pop_nowait()
            except queue.Empty:
                break
            if item is not SHUTDOWN:
                self._discarded_after_shutdown += 1
            self._queue.task_done()
        if self._discarded_after_shutdown:
            logger.warning(
                "Discarded Discord messages queued after shutdown",
                discarded=self._discarded_after_shutdown,
            )

    def deliver(self, message: FormattedMessage) -> None:
        """Send one message, retrying transport failures.

        Never raises for transport failures: an exhausted message is counted
        and logged, then dropped.
        """
        body = message.to_json()
        host = httpx.URL(message.webhook_url).host
        logger.debug("Sending Discord message", host=host, payload=body)

        try:
            response = self._post_with_retry(message.webhook_url, body)
        except DeliveryFailedError as e:
            self._dropped += 1
            logger.error(
                "Discord message dropped after retries",
                host=host,
                attempts=e.attempts,
                error=str(e.last_error),
            )
            return

        if response.is_success:
            self._delivered += 1
            logger.debug("Discord message delivered", host=host, status_code=response.status_code)
        else:
            self._rejected += 1
            logger.warning(
                "Discord webhook rejected message",
                host=host,
                status_code=response.status_code,
                response=response.text[:500],
            )

    def _post_with_retry(self, url: str, body: str) -> httpx.Response:
        """POST with constant backoff between transport failures.

        Raises:
            DeliveryFailedError: If every attempt failed at the transport level.
        """
        try:
            for attempt_state in Retrying(
                stop=stop_after_attempt(self._max_attempts),
                wait=wait_fixed(self._backoff_seconds),
                retry=retry_if_exception_type(httpx.TransportError),
                sleep=self._sleep,
                before_sleep=self._log_retry,
                reraise=False,  # We catch RetryError and convert to DeliveryFailedError
            ):
                with attempt_state:
                    self._attempts += 1
                    return self._client.post(url, content=body.encode("utf-8"), headers=_HEADERS)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            assert last_error is not None, "RetryError without exception is impossible"
            raise DeliveryFailedError(e.last_attempt.attempt_number, last_error) from last_error

        # Should not reach here - Retrying always returns or raises
        raise RuntimeError("Unexpected state in retry loop")  # pragma: no cover

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome is not None else None
        logger.warning(
            "Discord delivery attempt failed, retrying",
            attempt=retry_state.attempt_number,
            max_attempts=self._max_attempts,
            error=str(error),
        )

    @property
    def health_metrics(self) -> dict[str, Any]:
        """Snapshot of delivery health.

        - delivered: Messages the webhook accepted (2xx)
        - rejected: Messages answered with a non-2xx status (not retried)
        - dropped: Messages abandoned after exhausting attempts or failing unexpectedly
        - attempts: Total POST attempts made
        - discarded_after_shutdown: Messages queued behind the SHUTDOWN marker
        - queue_depth: Items currently waiting
        - state: Worker lifecycle state
        """
        return {
            "delivered": self._delivered,
            "rejected": self._rejected,
            "dropped": self._dropped,
            "attempts": self._attempts,
            "discarded_after_shutdown": self._discarded_after_shutdown,
            "queue_depth": len(self._queue),
            "state": self._state.value,
        }
