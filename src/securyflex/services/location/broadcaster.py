"""
Keyed Broadcaster

In-process publish/subscribe keyed by guard id or organization id.
Each subscriber gets its own bounded queue; a slow subscriber loses
its oldest items instead of blocking publishers.
"""

import asyncio
from typing import AsyncIterator, Generic, Hashable, Optional, TypeVar

from securyflex.config.logging_config import get_logger

logger = get_logger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")

_END = object()


class Subscription(Generic[T]):
    """
    Async iterator over items published for one key.

    Usage:
        subscription = broadcaster.subscribe(guard_id)
        async for record in subscription:
            ...
        subscription.close()
    """

    def __init__(self, broadcaster: "Broadcaster", key: Hashable, maxsize: int) -> None:
        self._broadcaster = broadcaster
        self._key = key
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._unsubscribed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _offer(self, item: object) -> None:
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(item)

    def __aiter__(self) -> AsyncIterator[T]:
        return self

    async def __anext__(self) -> T:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            self._closed = True
            raise StopAsyncIteration
        return item

    async def get(self, timeout: Optional[float] = None) -> T:
        """Next item, waiting at most `timeout` seconds."""
        return await asyncio.wait_for(self.__anext__(), timeout)

    def close(self) -> None:
        """Unsubscribe; pending iteration ends."""
        if self._unsubscribed:
            return
        self._unsubscribed = True
        self._broadcaster._unsubscribe(self._key, self)
        self._offer(_END)


class Broadcaster(Generic[K, T]):
    """Fan-out of published items to per-key subscribers."""

    def __init__(self, name: str, subscriber_buffer: int = 64) -> None:
        self._name = name
        self._buffer = subscriber_buffer
        self._subscribers: dict[K, set[Subscription[T]]] = {}

    def subscribe(self, key: K) -> Subscription[T]:
        subscription: Subscription[T] = Subscription(self, key, self._buffer)
        self._subscribers.setdefault(key, set()).add(subscription)
        return subscription

    def _unsubscribe(self, key: K, subscription: Subscription[T]) -> None:
        subscribers = self._subscribers.get(key)
        if subscribers is None:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._subscribers[key]

    def subscriber_count(self, key: K) -> int:
        return len(self._subscribers.get(key, ()))

    def publish(self, key: K, item: T) -> int:
        """
        Deliver an item to every subscriber of `key`.

        Returns:
            Number of subscribers reached
        """
        subscribers = list(self._subscribers.get(key, ()))
        for subscription in subscribers:
            subscription._offer(item)
        return len(subscribers)

    def close_key(self, key: K) -> None:
        """End every subscription of a key."""
        for subscription in list(self._subscribers.get(key, ())):
            subscription.close()

    def close(self) -> None:
        """End every subscription."""
        for key in list(self._subscribers):
            self.close_key(key)
        logger.debug("Broadcaster closed", broadcaster=self._name)
