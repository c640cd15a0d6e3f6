"""
Change notifications for document collections.

Writers call ``publish`` after a successful commit; readers iterate
``changes`` to be woken whenever the collection changed. The first wake-up
happens as soon as the listener is registered, so a reader that re-reads the
collection on every wake-up never misses a change. Notifications are
level-triggered: several publishes that land while a reader is busy are
delivered as a single wake-up.

Two implementations are provided:
- LocalNotifier: in-process, for a single service instance
- RedisNotifier: Redis pub/sub, for several instances sharing one database
"""
import asyncio
import logging
import threading
from typing import AsyncIterator, Dict, Optional, Set, Tuple

import redis
import redis.asyncio as aioredis

from .config import REDIS_URL
from .errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class LocalNotifier:
    """In-process notifier backed by one ``asyncio.Event`` per listener."""

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: Dict[str, Set[Tuple[asyncio.AbstractEventLoop, asyncio.Event]]] = {}

    def publish(self, collection: str) -> None:
        """
        Wake every listener of ``collection``.

        Safe to call from any thread.
        """
        with self._lock:
            listeners = list(self._listeners.get(collection, ()))

        for loop, event in listeners:
            try:
                loop.call_soon_threadsafe(event.set)
            except RuntimeError:
                # Loop already closed; its listener can no longer be woken
                logger.debug(f"Dropping listener on closed loop for '{collection}'")
                self._remove(collection, (loop, event))

    def listener_count(self, collection: str) -> int:
        with self._lock:
            return len(self._listeners.get(collection, ()))

    def _remove(self, collection: str, entry) -> None:
        with self._lock:
            listeners = self._listeners.get(collection)
            if listeners is not None:
                listeners.discard(entry)
                if not listeners:
                    del self._listeners[collection]

    async def changes(self, collection: str) -> AsyncIterator[None]:
        """Yield once per (coalesced) change to ``collection``."""
        event = asyncio.Event()
        event.set()
        entry = (asyncio.get_running_loop(), event)
        with self._lock:
            self._listeners.setdefault(collection, set()).add(entry)
        try:
            while True:
                await event.wait()
                event.clear()
                yield
        finally:
            self._remove(collection, entry)

    async def close(self) -> None:
        with self._lock:
            self._listeners.clear()


class RedisNotifier:
    """Notifier using a Redis pub/sub channel per collection."""

    CHANNEL_PREFIX = "inventory"
    POLL_INTERVAL = 1.0  # seconds

    def __init__(self, url: str):
        self.url = url
        # Publishing happens from store worker threads, so it uses the sync client
        self._client = redis.from_url(url, decode_responses=True)
        self._async_client: Optional[aioredis.Redis] = None

    def channel(self, collection: str) -> str:
        return f"{self.CHANNEL_PREFIX}:{collection}"

    def publish(self, collection: str) -> None:
        """
        Announce a change to ``collection``.

        The write has already been committed when this runs, so a publish
        failure is logged rather than raised.
        """
        try:
            self._client.publish(self.channel(collection), "changed")
        except redis.RedisError as e:
            logger.error(f"Failed to publish change for '{collection}': {e}")

    async def changes(self, collection: str) -> AsyncIterator[None]:
        """Yield once per (coalesced) change to ``collection``."""
        if self._async_client is None:
            self._async_client = aioredis.from_url(self.url, decode_responses=True)

        channel = self.channel(collection)
        pubsub = self._async_client.pubsub(ignore_subscribe_messages=True)
        try:
            await pubsub.subscribe(channel)
        except redis.RedisError as e:
            await pubsub.aclose()
            raise StoreUnavailableError(f"Cannot subscribe to {channel}: {e}") from e

        try:
            yield
            while True:
                try:
                    message = await pubsub.get_message(timeout=self.POLL_INTERVAL)
                    if message is None:
                        continue
                    # Drain anything queued behind it into the same wake-up
                    while await pubsub.get_message(timeout=0) is not None:
                        pass
                except redis.RedisError as e:
                    raise StoreUnavailableError(f"Lost subscription to {channel}: {e}") from e
                yield
        finally:
            try:
                await pubsub.unsubscribe(channel)
            finally:
                await pubsub.aclose()

    async def close(self) -> None:
        self._client.close()
        if self._async_client is not None:
            await self._async_client.aclose()
            self._async_client = None


def build_notifier(url: Optional[str] = REDIS_URL):
    """
    Pick the notifier for the current deployment.

    Args:
        url: Redis URL, or None for in-process notifications

    Returns:
        RedisNotifier when a URL is configured, LocalNotifier otherwise
    """
    if url:
        logger.info(f"Using Redis change notifications at {url}")
        return RedisNotifier(url)
    return LocalNotifier()
