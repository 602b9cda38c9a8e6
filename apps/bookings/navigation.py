"""Routes the booking lifecycle navigates to, and their query parameters."""

from __future__ import annotations

from typing import Mapping, Optional
from urllib.parse import urlencode

HOME = "/"
CARS = "/cars"
PAYMENT_WAITING = "/payment/waiting"
PAYMENT_SUCCESS = "/payment/success"
PAYMENT_FAILED = "/payment/failed"
PAYMENT_CANCEL = "/payment/cancel"


def build_location(route: str, params: Optional[Mapping[str, object]] = None) -> str:
    """`/payment/success?booking_id=...`; parameters that are None are left out"""
    query = {k: v for k, v in (params or {}).items() if v is not None}
    if not query:
        return route
    return f"{route}?{urlencode(query)}"


def waiting_url(site_url: str, booking_id: str) -> str:
    """Absolute return URL the payment gateway sends the customer back to"""
    return f"{site_url.rstrip('/')}{build_location(PAYMENT_WAITING, {'bookingId': booking_id})}"
