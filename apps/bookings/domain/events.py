"""
Booking Domain Events

Raised by the Hold aggregate and the booking state store. They are published
to store subscribers after the state change has been persisted.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from shared.domain.base import DomainEvent
from shared.domain.value_objects import DateRange


# ===== Hold Events =====

@dataclass
class HoldAcquired(DomainEvent):
    """The reservation service granted a temporary claim on a car"""
    booking_id: str
    car_id: str
    dates: DateRange
    expires_at: Optional[datetime]


@dataclass
class HoldWarned(DomainEvent):
    """
    The server announced the hold is about to expire

    Triggers:
    - Blocking prompt with a live countdown
    """
    booking_id: str
    seconds_remaining: int


@dataclass
class HoldExtensionRequested(DomainEvent):
    """The customer chose to keep the hold; extend_hold was emitted"""
    booking_id: str
    room: str


@dataclass
class HoldRenewed(DomainEvent):
    """The server issued a later expiry for the hold"""
    booking_id: str
    expires_at: datetime


@dataclass
class HoldReleased(DomainEvent):
    """The customer gave up the hold before it expired"""
    booking_id: str
    car_id: str


@dataclass
class HoldExpired(DomainEvent):
    """The server expired the hold (authoritative)"""
    booking_id: str
    car_id: str
    previous_status: str


@dataclass
class HoldConfirmed(DomainEvent):
    """Payment for the held booking was confirmed"""
    booking_id: str
    payment_id: str


# ===== Session Events =====

@dataclass
class CarSelected(DomainEvent):
    car_id: str
    draft_reset: bool


@dataclass
class BookingDraftCleared(DomainEvent):
    reason: str


@dataclass
class RetryPayloadSaved(DomainEvent):
    booking_id: str


@dataclass
class RetryPayloadCleared(DomainEvent):
    booking_id: Optional[str]
