"""Celery tasks for the realtime channel."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .publisher import publish_to_room

logger = logging.getLogger(__name__)


@shared_task(name="realtime.publish_event")
def publish_event(room: str, event: str, data: dict | None = None) -> int:
    """Publish an event to a client room off the request thread."""
    if not room:
        logger.warning(f"Skipping {event}: no room to publish to")
        return 0
    return publish_to_room(room, event, data)
