"""Broadcast hub: fan-out of every event to every connected observer."""

import asyncio
import logging
import threading
from typing import AsyncIterator, Optional

from .events import MonitorEvent

logger = logging.getLogger("agent_monitor")


class Subscription:
    """One observer's view of the event channel.

    Holds serialized events waiting to be written by the observer's
    transport. ``None`` in the queue means the subscription has ended.
    """

    def __init__(self, maxsize: int):
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    def offer(self, message: str) -> bool:
        """Queue ``message`` without waiting. False if the observer can't take it."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        # Make room for the sentinel so a blocked reader wakes up
        while True:
            try:
                self._queue.put_nowait(None)
                return
            except asyncio.QueueFull:
                self._queue.get_nowait()

    async def get(self) -> Optional[str]:
        return await self._queue.get()

    async def messages(self) -> AsyncIterator[str]:
        """Async generator yielding serialized events until closed."""
        while True:
            message = await self._queue.get()
            if message is None:
                break
            yield message


class BroadcastHub:
    """Fans out events to all current subscriptions.

    ``broadcast()`` never blocks and never raises: each observer gets a
    bounded buffer, and an observer whose buffer is full is dropped
    without affecting anyone else. Late subscribers only see what is
    broadcast after they subscribe.
    """

    def __init__(self, queue_size: int = 1000):
        self.queue_size = queue_size
        self._subscribers: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self) -> Subscription:
        sub = Subscription(self.queue_size)
        with self._lock:
            self._subscribers.append(sub)
        logger.debug(f"Observer connected ({self.observer_count} total)")
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            try:
                self._subscribers.remove(sub)
            except ValueError:
                return
        sub.close()
        logger.debug(f"Observer disconnected ({self.observer_count} total)")

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def broadcast(self, event: MonitorEvent) -> int:
        """Deliver ``event`` to every observer. Returns how many accepted it."""
        try:
            message = event.to_json()
        except (TypeError, ValueError):
            logger.exception(f"Could not serialize {event.type} event")
            return 0
        with self._lock:
            subscribers = list(self._subscribers)
        delivered = 0
        lagging = []
        for sub in subscribers:
            if sub.offer(message):
                delivered += 1
            else:
                lagging.append(sub)
        for sub in lagging:
            logger.warning("Dropping observer that fell behind")
            self.unsubscribe(sub)
        return delivered

    def close(self) -> None:
        """End every subscription (server shutdown)."""
        with self._lock:
            subscribers = list(self._subscribers)
            self._subscribers.clear()
        for sub in subscribers:
            sub.close()
