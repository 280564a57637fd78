"""Fan-out of spot state changes to live subscribers."""

import asyncio
import logging
from typing import Any, Optional

from ..metrics import increment_dropped_subscribers, set_active_subscribers
from ..state.exceptions import DeliveryFailure
from ..state.models import ParkingSpot
from ..state.registry import SpotRegistry

logger = logging.getLogger(__name__)

INITIAL_STATE = "INITIAL_STATE"
UPDATE = "UPDATE"


def make_message(message_type: str, data: Any) -> dict:
    """Build a message envelope."""
    return {"type": message_type, "data": data}


class Subscriber:
    """
    Delivery channel for one connected viewer.

    Messages are buffered in a bounded FIFO queue. Once closed, the queue
    is emptied and a single None marks the end of the stream.
    """

    def __init__(self, queue_size: int = 100):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.closed = False

    def offer(self, message: dict) -> None:
        """
        Queue a message without blocking.

        Raises:
            DeliveryFailure: The subscriber is closed or its queue is full
        """
        if self.closed:
            raise DeliveryFailure("Subscriber is closed")
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            raise DeliveryFailure(f"Subscriber queue full ({self._queue.maxsize} messages)") from None

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True

        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)

    async def next_message(self) -> Optional[dict]:
        """Wait for the next message; None once the subscriber is closed."""
        return await self._queue.get()

    def pending(self) -> list[Optional[dict]]:
        """Drain and return every queued message."""
        messages = []
        while not self._queue.empty():
            messages.append(self._queue.get_nowait())
        return messages


class Broadcaster:
    """
    Delivers spot updates to every connected subscriber.

    Delivery is best-effort: a subscriber that cannot accept a message is
    closed and removed without affecting the others.
    """

    def __init__(
        self,
        registry: SpotRegistry,
        queue_size: int = 100,
        send_timeout: float = 10.0,
    ):
        """
        Initialize the broadcaster.

        Args:
            registry: Spot registry providing snapshots and the state lock
            queue_size: Per-subscriber buffer before it is dropped as unresponsive
            send_timeout: Seconds a transport may spend on one message
        """
        self.registry = registry
        self.queue_size = queue_size
        self.send_timeout = send_timeout
        self._subscribers: list[Subscriber] = []

    @property
    def subscriber_count(self) -> int:
        with self.registry.lock:
            return len(self._subscribers)

    def subscribe(self) -> Subscriber:
        """
        Register a new subscriber.

        The subscriber's first message is the full spot list. Snapshot and
        registration happen under the state lock, so no update can slip in
        between them or ahead of the snapshot.
        """
        with self.registry.lock:
            subscriber = Subscriber(self.queue_size)
            snapshot = [spot.model_dump(mode="json") for spot in self.registry.get_all()]
            subscriber.offer(make_message(INITIAL_STATE, snapshot))
            self._subscribers.append(subscriber)
            count = len(self._subscribers)

        set_active_subscribers(count)
        logger.info(f"Subscriber connected ({count} active)")
        return subscriber

    def publish(self, spot: ParkingSpot) -> None:
        """Deliver an updated spot to all subscribers."""
        message = make_message(UPDATE, spot.model_dump(mode="json"))

        with self.registry.lock:
            failed = []
            for subscriber in self._subscribers:
                try:
                    subscriber.offer(message)
                except DeliveryFailure as e:
                    logger.warning(f"Dropping subscriber: {e}")
                    failed.append(subscriber)

            for subscriber in failed:
                self._remove(subscriber)
                increment_dropped_subscribers()

    def unsubscribe(self, subscriber: Subscriber) -> None:
        """Remove a subscriber. Safe to call more than once."""
        with self.registry.lock:
            if self._remove(subscriber):
                logger.info(f"Subscriber disconnected ({len(self._subscribers)} active)")

    def _remove(self, subscriber: Subscriber) -> bool:
        subscriber.close()
        if subscriber not in self._subscribers:
            return False
        self._subscribers.remove(subscriber)
        set_active_subscribers(len(self._subscribers))
        return True
