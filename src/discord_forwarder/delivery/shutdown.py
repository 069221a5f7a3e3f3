# src/discord_forwarder/delivery/shutdown.py
"""Cooperative shutdown for the delivery worker.

Shutdown Sequence:
1. Move the worker to DRAINING so the forwarder stops accepting events
2. Send the SHUTDOWN marker on the same queue as real work; everything
   queued before it is delivered (or exhausts its retries) first
3. Wait for the worker thread to exit

Without calling shutdown(), an application may exit before queued Discord
messages are sent.
"""

import asyncio
import threading

import structlog

from discord_forwarder.contracts.enums import WorkerState
from discord_forwarder.delivery.worker import DeliveryWorker

logger = structlog.get_logger(__name__)


class ShutdownHandle:
    """Signals end-of-stream to a DeliveryWorker and waits for the drain.

    Safe to share between threads. Only the first shutdown() call does any
    work; later calls log a diagnostic and return without blocking.
    """

    def __init__(self, worker: DeliveryWorker) -> None:
        self._worker = worker
        self._lock = threading.Lock()
        self._requested = False

    @property
    def shutdown_requested(self) -> bool:
        return self._requested

    @property
    def worker(self) -> DeliveryWorker:
        return self._worker

    def shutdown(self, timeout: float | None = None) -> bool:
        """Drain queued messages and stop the worker.

        Args:
            timeout: Maximum seconds to wait for the drain. None waits until
                every queued message has been attempted.

        Returns:
            True if the worker has stopped, False if the timeout elapsed first.
        """
        with self._lock:
            already_requested = self._requested
            self._requested = True

        if already_requested:
            logger.warning("Discord worker shutdown already requested")
            return not self._worker.is_alive()

        if self._worker.state is WorkerState.STOPPED or not self._worker.is_alive():
            logger.error("Discord worker is already stopped")
            return True

        if not self._worker.request_shutdown():
            logger.error("Failed to send shutdown marker to Discord worker", state=self._worker.state.value)
            return not self._worker.is_alive()

        stopped = self._worker.join(timeout=timeout)
        if not stopped:
            logger.error("Discord worker did not stop within timeout", timeout=timeout)
            return False

        logger.info("Discord worker stopped", **self._worker.health_metrics)
        return True

    async def ashutdown(self, timeout: float | None = None) -> bool:
        """Awaitable shutdown() that keeps the event loop responsive."""
        return await asyncio.to_thread(self.shutdown, timeout)
