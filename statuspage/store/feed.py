"""
Change feed: "this path changed" notifications.

Writers publish the paths they touched after commit; subscribers re-read the
full collection. Notifications carry no payload, so a missed duplicate is
harmless and bursts can be coalesced.

Two backends:
    RedisChangeFeed  Redis pub/sub, fans out across processes.
    LocalChangeFeed  asyncio.Queue fan-out inside one process.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

import redis.asyncio as aioredis

from statuspage.store.paths import feed_channel

logger = logging.getLogger(__name__)


class FeedSubscription(ABC):
    """Async iterator over change notifications for one path."""

    def __init__(self, path: str) -> None:
        self.path = path

    def __aiter__(self) -> FeedSubscription:
        return self

    @abstractmethod
    async def __anext__(self) -> str:
        """Wait for the next change of this path."""

    @abstractmethod
    async def close(self) -> None:
        """Stop receiving notifications. Safe to call more than once."""


class ChangeFeed(ABC):
    """Publish/subscribe channel keyed by store path."""

    @abstractmethod
    async def publish(self, path: str) -> None:
        ...

    @abstractmethod
    async def subscribe(self, path: str) -> FeedSubscription:
        """Register a subscription. Notifications published after this returns are delivered."""

    async def close(self) -> None:
        return None


# ---------------------------------------------------------------------------
# In-process backend
# ---------------------------------------------------------------------------

class _LocalSubscription(FeedSubscription):
    def __init__(self, feed: LocalChangeFeed, path: str) -> None:
        super().__init__(path)
        self._feed = feed
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._closed = False

    def deliver(self, path: str) -> None:
        self._queue.put_nowait(path)

    async def __anext__(self) -> str:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        path = await self._queue.get()
        if path is None:
            raise StopAsyncIteration
        # Coalesce a burst into one reload
        while not self._queue.empty():
            if self._queue.get_nowait() is None:
                self._queue.put_nowait(None)
                break
        return path

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._feed.discard(self)
        self._queue.put_nowait(None)


class LocalChangeFeed(ChangeFeed):
    """
    In-process fan-out: each subscription owns its own queue so a slow
    subscriber never blocks a writer or the other subscribers.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, set[_LocalSubscription]] = {}

    async def publish(self, path: str) -> None:
        for subscription in list(self._subscribers.get(path, ())):
            subscription.deliver(path)

    async def subscribe(self, path: str) -> FeedSubscription:
        subscription = _LocalSubscription(self, path)
        self._subscribers.setdefault(path, set()).add(subscription)
        return subscription

    def discard(self, subscription: _LocalSubscription) -> None:
        subscribers = self._subscribers.get(subscription.path)
        if subscribers is None:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._subscribers[subscription.path]

    def subscriber_count(self, path: str | None = None) -> int:
        """Live subscriptions for one path, or for all paths."""
        if path is not None:
            return len(self._subscribers.get(path, ()))
        return sum(len(s) for s in self._subscribers.values())


# ---------------------------------------------------------------------------
# Redis backend
# ---------------------------------------------------------------------------

class _RedisSubscription(FeedSubscription):
    def __init__(self, path: str, pubsub: aioredis.client.PubSub) -> None:
        super().__init__(path)
        self._pubsub = pubsub
        self._closed = False

    async def __anext__(self) -> str:
        while not self._closed:
            message = await self._pubsub.get_message(
                ignore_subscribe_messages=True, timeout=None
            )
            if message is not None and message["type"] == "message":
                return message["data"]
        raise StopAsyncIteration

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._pubsub.unsubscribe()
        finally:
            await self._pubsub.aclose()


class RedisChangeFeed(ChangeFeed):
    """Redis pub/sub, one channel per path."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    @classmethod
    def from_url(cls, url: str) -> RedisChangeFeed:
        return cls(aioredis.from_url(url, encoding="utf-8", decode_responses=True))

    async def publish(self, path: str) -> None:
        await self._redis.publish(feed_channel(path), path)

    async def subscribe(self, path: str) -> FeedSubscription:
        pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
        await pubsub.subscribe(feed_channel(path))
        return _RedisSubscription(path, pubsub)

    async def close(self) -> None:
        await self._redis.aclose()
        logger.info("Redis change feed closed")
