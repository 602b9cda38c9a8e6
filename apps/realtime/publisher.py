"""Server-side publishing of channel events to client rooms."""

from __future__ import annotations

import logging
from typing import Optional

import redis
from django.conf import settings

from apps.realtime.events import encode_message

logger = logging.getLogger(__name__)

_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    global _client
    if _client is None:
        _client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _client


def publish_to_room(room: str, event: str, data: Optional[dict] = None) -> int:
    """
    Publish `{"event": ..., "data": ...}` to a room.

    Fire-and-forget: failures are logged and reported as 0 receivers, the
    verdict is still available through the status endpoint.
    """
    message = encode_message(event, data)
    try:
        receivers = get_redis().publish(room, message)
    except redis.RedisError as e:
        logger.error(f"[REALTIME] Failed to publish {event} to {room}: {e}")
        return 0

    logger.info(f"[REALTIME] Published {event} to {room} (subscribers: {receivers})")
    return receivers
