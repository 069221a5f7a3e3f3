"""Background delivery of formatted messages.

- queue: DeliveryQueue and the SHUTDOWN marker
- worker: DeliveryWorker, the single consumer that POSTs with retry
- shutdown: ShutdownHandle, which drains and stops the worker
"""

from discord_forwarder.delivery.queue import SHUTDOWN, DeliveryQueue, WorkItem
from discord_forwarder.delivery.shutdown import ShutdownHandle
from discord_forwarder.delivery.worker import BACKOFF_SECONDS, MAX_ATTEMPTS, DeliveryWorker

__all__ = [
    "BACKOFF_SECONDS",
    "MAX_ATTEMPTS",
    "SHUTDOWN",
    "DeliveryQueue",
    "DeliveryWorker",
    "ShutdownHandle",
    "WorkItem",
]
