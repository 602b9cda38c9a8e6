"""Tests for the Redis pub/sub channel transport."""

from __future__ import annotations

import asyncio
import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from apps.realtime.channel import RealtimeChannelError, RedisRealtimeChannel
from apps.realtime.events import ExtendHoldCommand, HoldExpiredEvent, HoldWarningEvent


class FakePubSub:
    def __init__(self, messages=None, fail_subscribe=False):
        self.messages = messages or []
        self.fail_subscribe = fail_subscribe
        self.subscribed: list[str] = []
        self.unsubscribed: list[str] = []
        self.closed = False

    async def subscribe(self, *rooms):
        if self.fail_subscribe:
            raise RedisConnectionError("refused")
        self.subscribed.extend(rooms)

    async def unsubscribe(self, *rooms):
        self.unsubscribed.extend(rooms)

    async def aclose(self):
        self.closed = True

    async def listen(self):
        for message in self.messages:
            yield message
        await asyncio.Event().wait()


class FakeRedis:
    def __init__(self, pubsub):
        self._pubsub = pubsub
        self.published: list[tuple] = []

    def pubsub(self):
        return self._pubsub

    async def publish(self, channel, message):
        self.published.append((channel, message))
        return 1


async def settle():
    for _ in range(20):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_receives_room_and_broadcast_messages():
    pubsub = FakePubSub([
        {"type": "subscribe", "channel": "hold:abc", "data": 1},
        {"type": "message", "channel": "hold:abc", "data": json.dumps({"event": "hold_warning", "data": {"secondsRemaining": 20}})},
        {"type": "message", "channel": "broadcast", "data": json.dumps({"event": "hold_expired", "data": {}})},
    ])
    channel = RedisRealtimeChannel("hold:abc", FakeRedis(pubsub), command_channel="commands", broadcast_room="broadcast")
    received = []
    channel.on(HoldWarningEvent, received.append)
    channel.on(HoldExpiredEvent, received.append)

    async with channel:
        await settle()
        assert channel.is_connected

    assert pubsub.subscribed == ["hold:abc", "broadcast"]
    assert received == [HoldWarningEvent(20), HoldExpiredEvent()]
    assert pubsub.unsubscribed == ["hold:abc", "broadcast"]
    assert pubsub.closed
    assert not channel.is_connected


@pytest.mark.asyncio
async def test_emit_publishes_on_command_channel():
    redis = FakeRedis(FakePubSub())
    channel = RedisRealtimeChannel("hold:abc", redis, command_channel="commands")

    async with channel:
        await channel.emit(ExtendHoldCommand("hold:abc"))

    assert redis.published == [("commands", '{"event": "extend_hold", "data": {"room": "hold:abc"}}')]


@pytest.mark.asyncio
async def test_subscribe_failure():
    pubsub = FakePubSub(fail_subscribe=True)
    channel = RedisRealtimeChannel("hold:abc", FakeRedis(pubsub))

    with pytest.raises(RealtimeChannelError):
        await channel.connect()

    assert pubsub.closed
    assert not channel.is_connected


@pytest.mark.asyncio
async def test_emit_before_connect():
    channel = RedisRealtimeChannel("hold:abc", FakeRedis(FakePubSub()))

    with pytest.raises(RealtimeChannelError):
        await channel.emit(ExtendHoldCommand("hold:abc"))
