"""
Live Status Channel

In-process fan-out of status records to connected observers. Subscribers
only receive records published after they subscribed; nothing is replayed.
"""

import asyncio
import itertools
import logging

from .models import StatusRecord

logger = logging.getLogger(__name__)

_CLOSED = None


class Subscription:
    """A single observer's queue of pending records."""

    def __init__(self, subscription_id: int, loop: asyncio.AbstractEventLoop, maxsize: int):
        self.id = subscription_id
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize + 1)  # +1 for the close sentinel
        self.maxsize = maxsize
        self.closed = False

    async def get(self) -> StatusRecord | None:
        """Next record, or None once the subscription has been closed."""
        if self.closed and self.queue.empty():
            return None
        return await self.queue.get()

    def _deliver(self, record: StatusRecord) -> bool:
        if self.closed:
            return False
        if self.queue.qsize() >= self.maxsize:
            return False
        self.queue.put_nowait(record)
        return True

    def _close(self):
        if self.closed:
            return
        self.closed = True
        while not self.queue.empty():
            self.queue.get_nowait()
        self.queue.put_nowait(_CLOSED)


class LiveChannel:
    """Publish/subscribe hub for status records."""

    def __init__(self, queue_maxsize: int = 100):
        self.queue_maxsize = queue_maxsize
        self._subscribers: dict[int, Subscription] = {}
        self._ids = itertools.count(1)

    def subscribe(self) -> Subscription:
        """Register an observer; must be called from the observer's event loop."""
        subscription = Subscription(next(self._ids), asyncio.get_running_loop(), self.queue_maxsize)
        self._subscribers[subscription.id] = subscription
        logger.info(f"Live subscriber added: {subscription.id} (total={len(self._subscribers)})")
        return subscription

    def unsubscribe(self, subscription: Subscription):
        """Remove an observer and wake any pending get(); call from the observer's event loop."""
        if self._subscribers.pop(subscription.id, None) is not None:
            logger.info(f"Live subscriber removed: {subscription.id} (total={len(self._subscribers)})")
        subscription._close()

    def publish(self, record: StatusRecord) -> int:
        """Hand a record to every current subscriber.

        Safe to call from any thread; delivery happens on each subscriber's
        event loop.

        Returns:
            Number of subscribers the record was scheduled for
        """
        scheduled = 0
        for subscription in list(self._subscribers.values()):
            try:
                subscription.loop.call_soon_threadsafe(self._deliver, subscription, record)
                scheduled += 1
            except RuntimeError:
                # Subscriber's event loop is closed
                self._subscribers.pop(subscription.id, None)
        return scheduled

    def _deliver(self, subscription: Subscription, record: StatusRecord):
        if subscription.closed:
            return
        if not subscription._deliver(record):
            self._subscribers.pop(subscription.id, None)
            subscription._close()
            logger.warning(f"Dropped live subscriber {subscription.id} due to slow consumer")

    def subscriber_count(self) -> int:
        return len(self._subscribers)
