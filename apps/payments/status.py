"""Cache-backed bookkeeping of payment intents and verdicts."""

from __future__ import annotations

from typing import Optional

from django.conf import settings
from django.core.cache import cache

INTENT_KEY = "payments:intent:{}"
VERDICT_KEY = "payments:verdict:{}"


def _ttl() -> int:
    return getattr(settings, "PAYMENT_STATUS_TTL", 60 * 60 * 24)


def remember_intent(intent_id: str, booking_id: str, room: str = "") -> None:
    """Map a gateway intent to the booking and room that created it"""
    cache.set(INTENT_KEY.format(intent_id), {"bookingId": booking_id, "room": room}, _ttl())


def lookup_intent(intent_id: Optional[str]) -> dict:
    if not intent_id:
        return {}
    return cache.get(INTENT_KEY.format(intent_id)) or {}


def record_verdict(booking_id: str, verdict: dict) -> None:
    cache.set(VERDICT_KEY.format(booking_id), verdict, _ttl())


def get_verdict(booking_id: str) -> Optional[dict]:
    return cache.get(VERDICT_KEY.format(booking_id))
