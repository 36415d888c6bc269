# college_notes/core/pubsub.py
"""
Per-user publish/subscribe for push notifications.

Call sites depend on the Broker protocol only; InMemoryBroker is the
single-process implementation. It holds nothing durable: a restart drops
every subscription and undelivered event.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Set

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    name: str
    data: Dict[str, Any] = field(default_factory=dict)


class Subscription(Protocol):
    user_id: str

    async def next(self, timeout: Optional[float] = None) -> Optional[Event]:
        ...

    def close(self) -> None:
        ...


class Broker(Protocol):
    def subscribe(self, user_id: str) -> Subscription:
        ...

    def publish(self, user_id: str, event: Event) -> int:
        ...


class _QueueSubscription:
    def __init__(self, broker: "InMemoryBroker", user_id: str, max_pending: int):
        self.user_id = user_id
        self._broker = broker
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=max_pending)
        self.closed = False

    def _offer(self, event: Event) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.debug("dropping event for slow subscriber", extra={"user_id": self.user_id})

    def deliver(self, event: Event) -> bool:
        # may be called from a worker thread (sync endpoints run in a threadpool)
        try:
            self._loop.call_soon_threadsafe(self._offer, event)
            return True
        except RuntimeError:
            return False

    async def next(self, timeout: Optional[float] = None) -> Optional[Event]:
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._broker._remove(self)


class InMemoryBroker:
    def __init__(self, max_pending: int = 100):
        self.max_pending = max_pending
        self._clients: Dict[str, Set[_QueueSubscription]] = {}
        self._lock = threading.Lock()

    def subscribe(self, user_id: str) -> _QueueSubscription:
        """Must be called from the event loop that will consume the subscription."""
        sub = _QueueSubscription(self, str(user_id), self.max_pending)
        with self._lock:
            self._clients.setdefault(sub.user_id, set()).add(sub)
        return sub

    def _remove(self, sub: _QueueSubscription) -> None:
        with self._lock:
            subs = self._clients.get(sub.user_id)
            if not subs:
                return
            subs.discard(sub)
            if not subs:
                del self._clients[sub.user_id]

    def subscriber_count(self, user_id: str) -> int:
        with self._lock:
            return len(self._clients.get(str(user_id), ()))

    def publish(self, user_id: str, event: Event) -> int:
        with self._lock:
            subs = list(self._clients.get(str(user_id), ()))
        delivered = 0
        for sub in subs:
            if sub.deliver(event):
                delivered += 1
        return delivered
