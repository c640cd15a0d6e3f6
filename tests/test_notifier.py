"""
Tests for the Redis change notifier
"""
import asyncio

import pytest
import redis

from inventory_app import notifier as notifier_module
from inventory_app.crud import InventoryGateway
from inventory_app.database import build_session_factory
from inventory_app.errors import StoreUnavailableError
from inventory_app.notifier import LocalNotifier, RedisNotifier, build_notifier
from inventory_app.store import DocumentStore
from tests.factories import make_record


class FakePubSub:
    def __init__(self, broker):
        self.broker = broker
        self.channels = []
        self.messages = []
        self.unsubscribed = []
        self.closed = False

    async def subscribe(self, channel):
        if self.broker.down:
            raise redis.ConnectionError("Connection refused")
        self.channels.append(channel)

    async def get_message(self, timeout=0.0):
        if self.broker.down:
            raise redis.ConnectionError("Connection reset by peer")
        if self.messages:
            return self.messages.pop(0)
        if timeout:
            await asyncio.sleep(0.01)
        return None

    async def unsubscribe(self, *channels):
        self.unsubscribed.extend(channels)

    async def aclose(self):
        self.closed = True


class FakeRedis:
    """In-memory broker answering for both the sync and the asyncio client"""

    def __init__(self):
        self.down = False
        self.pubsubs = []
        self.closed = False
        self.async_closed = False

    def publish(self, channel, message):
        if self.down:
            raise redis.ConnectionError("Connection refused")
        receivers = [pubsub for pubsub in self.pubsubs if channel in pubsub.channels]
        for pubsub in receivers:
            pubsub.messages.append({"type": "message", "channel": channel, "data": message})
        return len(receivers)

    def pubsub(self, ignore_subscribe_messages=False):
        pubsub = FakePubSub(self)
        self.pubsubs.append(pubsub)
        return pubsub

    def close(self):
        self.closed = True

    async def aclose(self):
        self.async_closed = True


@pytest.fixture
def broker(monkeypatch):
    broker = FakeRedis()
    monkeypatch.setattr(notifier_module.redis, "from_url", lambda url, **kwargs: broker)
    monkeypatch.setattr(notifier_module.aioredis, "from_url", lambda url, **kwargs: broker)
    return broker


@pytest.fixture
def redis_notifier(broker):
    return RedisNotifier("redis://cache:6379/0")


def test_channel_per_collection(redis_notifier):
    assert redis_notifier.channel("items") == "inventory:items"
    assert redis_notifier.channel("archive") == "inventory:archive"


def test_changes_wakes_on_subscribe_then_once_per_burst(redis_notifier, broker):
    async def scenario():
        changes = redis_notifier.changes("items")
        try:
            await changes.__anext__()
            for _ in range(3):
                redis_notifier.publish("items")
            await changes.__anext__()
            # The burst was drained into one wake-up, so nothing else is pending
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(changes.__anext__(), timeout=0.05)
        finally:
            await changes.aclose()

    asyncio.run(scenario())

    pubsub = broker.pubsubs[0]
    assert pubsub.channels == ["inventory:items"]
    assert pubsub.messages == []
    assert pubsub.unsubscribed == ["inventory:items"]
    assert pubsub.closed


def test_closing_changes_releases_subscription(redis_notifier, broker):
    async def scenario():
        changes = redis_notifier.changes("items")
        await changes.__anext__()
        await changes.aclose()

    asyncio.run(scenario())

    pubsub = broker.pubsubs[0]
    assert pubsub.unsubscribed == ["inventory:items"]
    assert pubsub.closed


def test_failed_subscribe_raises_store_unavailable(redis_notifier, broker):
    broker.down = True

    async def scenario():
        await redis_notifier.changes("items").__anext__()

    with pytest.raises(StoreUnavailableError):
        asyncio.run(scenario())

    pubsub = broker.pubsubs[0]
    assert pubsub.channels == []
    assert pubsub.closed


def test_lost_connection_raises_store_unavailable(redis_notifier, broker):
    async def scenario():
        changes = redis_notifier.changes("items")
        await changes.__anext__()
        broker.down = True
        await changes.__anext__()

    with pytest.raises(StoreUnavailableError):
        asyncio.run(scenario())

    pubsub = broker.pubsubs[0]
    assert pubsub.unsubscribed == ["inventory:items"]
    assert pubsub.closed


def test_publish_failure_is_logged_not_raised(redis_notifier, broker, caplog):
    broker.down = True

    redis_notifier.publish("items")

    assert "Failed to publish change for 'items'" in caplog.text


def test_close_closes_both_clients(redis_notifier, broker):
    async def scenario():
        changes = redis_notifier.changes("items")
        await changes.__anext__()
        await changes.aclose()
        await redis_notifier.close()

    asyncio.run(scenario())

    assert broker.closed
    assert broker.async_closed


def test_gateway_snapshots_follow_redis_notifications(engine, redis_notifier):
    gateway = InventoryGateway(DocumentStore(build_session_factory(engine), redis_notifier, "items"))

    async def scenario():
        snapshots = gateway.subscribe()
        try:
            first = await snapshots.__anext__()
            await gateway.create(make_record())
            second = await snapshots.__anext__()
        finally:
            await snapshots.aclose()
        return first, second

    first, second = asyncio.run(scenario())

    assert first == []
    assert [record.name for record in second] == ["Pen"]


def test_build_notifier(broker):
    assert isinstance(build_notifier(None), LocalNotifier)
    assert isinstance(build_notifier(""), LocalNotifier)
    assert isinstance(build_notifier("redis://cache:6379/0"), RedisNotifier)
