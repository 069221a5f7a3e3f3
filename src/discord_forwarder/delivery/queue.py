# src/discord_forwarder/delivery/queue.py
"""Unbounded FIFO channel between producers and the delivery worker.

Any number of producer threads push; exactly one worker thread pops. A single
physical queue gives global FIFO order across all producers. The SHUTDOWN
marker travels on the same queue as real work, so everything pushed before it
is popped before it.
"""

import queue
from typing import Final

from discord_forwarder.contracts.message import FormattedMessage


class _Shutdown:
    """End-of-stream marker type. Use the SHUTDOWN instance."""

    _instance: "_Shutdown | None" = None

    def __new__(cls) -> "_Shutdown":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SHUTDOWN"


SHUTDOWN: Final = _Shutdown()

WorkItem = FormattedMessage | _Shutdown


class DeliveryQueue:
    """Thread-safe, unbounded, multi-producer/single-consumer queue.

    push() never blocks. pop() blocks until an item is available. Every popped
    item must be acknowledged with task_done() so that join() can return.
    """

    def __init__(self) -> None:
        # maxsize=0: unbounded, put() never blocks
        self._queue: queue.Queue[WorkItem] = queue.Queue()

    def push(self, item: WorkItem) -> None:
        self._queue.put_nowait(item)

    def pop(self, timeout: float | None = None) -> WorkItem:
        """Remove and return the oldest item.

        Raises:
            queue.Empty: If timeout elapses with nothing to pop.
        """
        return self._queue.get(timeout=timeout)

    def pop_nowait(self) -> WorkItem:
        """Remove and return the oldest item without waiting.

        Raises:
            queue.Empty: If the queue is empty.
        """
        return self._queue.get_nowait()

    def task_done(self) -> None:
        self._queue.task_done()

    def join(self) -> None:
        """Block until every pushed item has been acknowledged."""
        self._queue.join()

    def __len__(self) -> int:
        return self._queue.qsize()
