"""
Realtime channel messages

Wire format, in both directions:

    {"event": "<name>", "data": {...}}

Inbound (server -> client): hold_warning, hold_expired, payment_status_updated.
Outbound (client -> server): extend_hold.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

HOLD_WARNING = "hold_warning"
HOLD_EXPIRED = "hold_expired"
PAYMENT_STATUS_UPDATED = "payment_status_updated"
EXTEND_HOLD = "extend_hold"

DEFAULT_WARNING_SECONDS = 30

PAYMENT_PAID = "paid"
PAYMENT_FAILED = "failed"
PAYMENT_CANCELLED = "cancelled"
PAYMENT_VERDICTS = (PAYMENT_PAID, PAYMENT_FAILED, PAYMENT_CANCELLED)


class InvalidChannelMessage(ValueError):
    """Raised for messages that are not valid JSON or not a known event."""


@dataclass(frozen=True)
class HoldWarningEvent:
    seconds_remaining: int = DEFAULT_WARNING_SECONDS
    expires_at: Optional[datetime] = None


@dataclass(frozen=True)
class HoldExpiredEvent:
    booking_id: Optional[str] = None


@dataclass(frozen=True)
class PaymentStatusUpdatedEvent:
    booking_id: str
    status: str
    payment_id: Optional[str] = None
    amount: Optional[Decimal] = None
    reason: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.status == PAYMENT_PAID


ChannelEvent = Union[HoldWarningEvent, HoldExpiredEvent, PaymentStatusUpdatedEvent]


@dataclass(frozen=True)
class ExtendHoldCommand:
    room: str

    name = EXTEND_HOLD

    def to_message(self) -> str:
        return encode_message(self.name, {"room": self.room})


def encode_message(event: str, data: Optional[dict] = None) -> str:
    return json.dumps({"event": event, "data": data or {}}, default=str)


def parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_hold_warning(data: dict) -> HoldWarningEvent:
    seconds = data.get("secondsRemaining")
    if seconds is None:
        seconds = DEFAULT_WARNING_SECONDS
    try:
        seconds = int(seconds)
    except (TypeError, ValueError) as e:
        raise InvalidChannelMessage(f"secondsRemaining is not a number: {seconds!r}") from e
    if seconds < 0:
        raise InvalidChannelMessage(f"secondsRemaining cannot be negative: {seconds}")

    try:
        expires_at = parse_timestamp(data.get("expiresAt"))
    except ValueError as e:
        raise InvalidChannelMessage(f"expiresAt is not a timestamp: {data.get('expiresAt')!r}") from e
    return HoldWarningEvent(seconds_remaining=seconds, expires_at=expires_at)


def _parse_payment_status(data: dict) -> PaymentStatusUpdatedEvent:
    booking_id = data.get("bookingId")
    status = data.get("status")
    if not booking_id:
        raise InvalidChannelMessage("payment_status_updated without bookingId")
    if status not in PAYMENT_VERDICTS:
        raise InvalidChannelMessage(f"Unknown payment status: {status!r}")

    amount = data.get("amount")
    if amount not in (None, ""):
        try:
            amount = Decimal(str(amount))
        except InvalidOperation as e:
            raise InvalidChannelMessage(f"amount is not a number: {amount!r}") from e
    else:
        amount = None

    return PaymentStatusUpdatedEvent(
        booking_id=str(booking_id),
        status=status,
        payment_id=data.get("paymentId") or None,
        amount=amount,
        reason=data.get("reason") or None,
    )


def parse_message(raw: Union[str, bytes, dict]) -> ChannelEvent:
    """
    Turn a raw channel message into a typed event

    Raises InvalidChannelMessage for anything this client does not handle.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise InvalidChannelMessage("Message is not valid JSON") from e
    if not isinstance(raw, dict):
        raise InvalidChannelMessage("Message must be a JSON object")

    event = raw.get("event")
    data = raw.get("data") or {}
    if not isinstance(data, dict):
        raise InvalidChannelMessage(f"{event}: data must be an object")

    if event == HOLD_WARNING:
        return _parse_hold_warning(data)
    if event == HOLD_EXPIRED:
        return HoldExpiredEvent(booking_id=data.get("bookingId") or None)
    if event == PAYMENT_STATUS_UPDATED:
        return _parse_payment_status(data)
    raise InvalidChannelMessage(f"Unknown event: {event!r}")
