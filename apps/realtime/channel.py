"""
Realtime Channel

Push transport scoped to one client room. Inbound messages are parsed into
typed events and delivered to every subscriber of that event type; outbound
commands are published for the reservation backend.

Subscribers are independent: the hold coordinator and the confirmation
listener share one channel and never see each other's failures.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Type, Union

from django.conf import settings
from redis.asyncio import Redis as AsyncRedis
from redis.exceptions import RedisError

from shared.application.message_bus import EventHandler, MessageBus
from apps.realtime.events import ExtendHoldCommand, InvalidChannelMessage, parse_message

logger = logging.getLogger(__name__)


class RealtimeChannelError(Exception):
    """Raised when the channel cannot connect or send"""


class RealtimeChannel(ABC):
    """Room-scoped channel; transports implement connect/close/_send"""

    def __init__(self, room: str):
        if not room:
            raise ValueError("Realtime channel requires a room")
        self.room = room
        self._bus = MessageBus(f"channel:{room}")

    # --- subscribing ---

    def on(self, event_type: Type, handler: EventHandler) -> Callable[[], None]:
        """Subscribe to one event type; returns the unsubscribe callable"""
        return self._bus.register_event_handler(event_type, handler)

    def off(self, event_type: Type, handler: EventHandler):
        self._bus.unregister_event_handler(event_type, handler)

    async def deliver(self, raw: Union[str, bytes, dict]):
        """Parse one raw message and hand it to the subscribers"""
        try:
            event = parse_message(raw)
        except InvalidChannelMessage as e:
            logger.warning(f"[REALTIME] Dropping message on {self.room}: {e}")
            return
        logger.debug(f"[REALTIME] {type(event).__name__} on {self.room}")
        await self._bus.dispatch_events([event])

    # --- sending ---

    async def emit(self, command: ExtendHoldCommand):
        if not self.is_connected:
            raise RealtimeChannelError(f"Cannot send {command.name}: channel {self.room} is not connected")
        await self._send(command.to_message())
        logger.info(f"[REALTIME] Sent {command.name} for room {command.room}")

    # --- lifecycle ---

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether messages can currently be sent and received"""

    @abstractmethod
    async def connect(self):
        """Start receiving messages for the room"""

    @abstractmethod
    async def close(self):
        """Stop receiving and release the transport"""

    @abstractmethod
    async def _send(self, message: str):
        """Publish an encoded command"""

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()


class RedisRealtimeChannel(RealtimeChannel):
    """
    Redis pub/sub transport

    Listens on the client room and the broadcast room; commands go to the
    command channel the reservation backend consumes.

    Usage:
        async with RedisRealtimeChannel.from_settings(room) as channel:
            channel.on(HoldExpiredEvent, handler)
            ...
    """

    def __init__(self, room: str, redis: AsyncRedis, *,
                 command_channel: str = 'realtime:commands',
                 broadcast_room: Optional[str] = None):
        super().__init__(room)
        self._redis = redis
        self.command_channel = command_channel
        self.broadcast_room = broadcast_room
        self._pubsub: Any = None
        self._listener: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, room: str) -> 'RedisRealtimeChannel':
        redis = AsyncRedis.from_url(settings.REDIS_URL, decode_responses=True)
        return cls(
            room,
            redis,
            command_channel=settings.REALTIME_COMMAND_CHANNEL,
            broadcast_room=settings.REALTIME_BROADCAST_ROOM or None,
        )

    @property
    def rooms(self) -> list:
        return [r for r in (self.room, self.broadcast_room) if r]

    @property
    def is_connected(self) -> bool:
        return self._listener is not None and not self._listener.done()

    async def connect(self):
        if self.is_connected:
            return
        pubsub = self._redis.pubsub()
        try:
            await pubsub.subscribe(*self.rooms)
        except RedisError as e:
            await pubsub.aclose()
            raise RealtimeChannelError(f"Failed to subscribe to {self.rooms}: {e}") from e

        self._pubsub = pubsub
        self._listener = asyncio.create_task(self._listen(), name=f"realtime:{self.room}")
        logger.info(f"[REALTIME] Subscribed to rooms: {', '.join(self.rooms)}")

    async def _listen(self):
        try:
            async for message in self._pubsub.listen():
                if message.get("type") != "message":
                    continue
                await self.deliver(message["data"])
        except asyncio.CancelledError:
            raise
        except RedisError as e:
            logger.error(f"[REALTIME] Lost connection for room {self.room}: {e}")

    async def close(self):
        listener, self._listener = self._listener, None
        if listener is not None:
            listener.cancel()
            try:
                await listener
            except asyncio.CancelledError:
                pass

        pubsub, self._pubsub = self._pubsub, None
        if pubsub is not None:
            try:
                await pubsub.unsubscribe(*self.rooms)
            except RedisError as e:
                logger.warning(f"[REALTIME] Unsubscribe failed for {self.room}: {e}")
            await pubsub.aclose()
            logger.info(f"[REALTIME] Unsubscribed from rooms: {', '.join(self.rooms)}")

    async def _send(self, message: str):
        try:
            await self._redis.publish(self.command_channel, message)
        except RedisError as e:
            raise RealtimeChannelError(f"Failed to publish to {self.command_channel}: {e}") from e
