"""
Booking Domain Entities

- Hold: aggregate for a temporary, server-enforced claim on a car
- HoldStatus: FSM states of a hold
- BookingDraft: the customer's in-progress reservation
"""

from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from shared.domain.base import Aggregate, ValueObject
from shared.domain.value_objects import DateRange
from apps.bookings.domain.events import (
    HoldAcquired,
    HoldConfirmed,
    HoldExpired,
    HoldExtensionRequested,
    HoldReleased,
    HoldRenewed,
    HoldWarned,
)


class HoldStatus(Enum):
    """
    Hold Status Finite State Machine

    State transitions:
    - HELD/EXTENDED -> WARNING (server warning, may repeat)
    - WARNING -> EXTENDED (customer continues)
    - HELD/WARNING/EXTENDED -> RELEASED (customer declines)
    - any non-terminal -> EXPIRED (server expiry, always wins)
    - HELD/WARNING/EXTENDED -> CONFIRMED (payment confirmed)
    """
    HELD = 'held'
    WARNING = 'warning'
    EXTENDED = 'extended'
    EXPIRED = 'expired'
    RELEASED = 'released'
    CONFIRMED = 'confirmed'


TERMINAL_STATUSES = frozenset({HoldStatus.EXPIRED, HoldStatus.RELEASED, HoldStatus.CONFIRMED})


@dataclass(eq=False)
class Hold(Aggregate):
    """
    Hold Aggregate Root

    Key invariants:
    - Only the server expires a hold; local countdowns never do
    - A renewal never shortens expires_at
    - Terminal holds (expired, released, confirmed) accept no transitions
    """

    booking_id: str
    car_id: str
    dates: DateRange
    expires_at: Optional[datetime] = None
    room: str = ''
    status: HoldStatus = HoldStatus.HELD
    seconds_remaining: Optional[int] = None

    @classmethod
    def acquire(cls, booking_id: str, car_id: str, dates: DateRange,
                expires_at: Optional[datetime] = None, room: str = '') -> 'Hold':
        if not booking_id:
            raise ValueError("Hold requires a booking id")
        hold = cls(booking_id=booking_id, car_id=car_id, dates=dates,
                   expires_at=expires_at, room=room)
        hold.add_event(HoldAcquired(
            aggregate_id=booking_id,
            booking_id=booking_id,
            car_id=car_id,
            dates=dates,
            expires_at=expires_at,
        ))
        return hold

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def _require_active(self, action: str):
        if self.is_terminal:
            raise ValueError(
                f"Cannot {action} hold {self.booking_id}: status is {self.status.value}"
            )

    def warn(self, seconds_remaining: int, expires_at: Optional[datetime] = None):
        """HELD/EXTENDED/WARNING -> WARNING"""
        self._require_active('warn')
        if seconds_remaining < 0:
            raise ValueError("seconds_remaining cannot be negative")

        self.status = HoldStatus.WARNING
        self.seconds_remaining = seconds_remaining
        if expires_at is not None:
            self.renew(expires_at)
        self.touch()
        self.add_event(HoldWarned(
            aggregate_id=self.booking_id,
            booking_id=self.booking_id,
            seconds_remaining=seconds_remaining,
        ))

    def request_extension(self):
        """WARNING -> EXTENDED"""
        self._require_active('extend')
        if self.status != HoldStatus.WARNING:
            raise ValueError(
                f"Cannot extend hold {self.booking_id} from status {self.status.value}. "
                f"Hold must be in WARNING status."
            )

        self.status = HoldStatus.EXTENDED
        self.seconds_remaining = None
        self.touch()
        self.add_event(HoldExtensionRequested(
            aggregate_id=self.booking_id,
            booking_id=self.booking_id,
            room=self.room,
        ))

    def renew(self, expires_at: datetime) -> bool:
        """
        Accept a server-issued expiry

        Returns False (and changes nothing) when the renewal would shorten
        the hold.
        """
        self._require_active('renew')
        if self.expires_at is not None and expires_at <= self.expires_at:
            return False

        self.expires_at = expires_at
        self.touch()
        self.add_event(HoldRenewed(
            aggregate_id=self.booking_id,
            booking_id=self.booking_id,
            expires_at=expires_at,
        ))
        return True

    def release(self):
        """HELD/WARNING/EXTENDED -> RELEASED"""
        self._require_active('release')

        self.status = HoldStatus.RELEASED
        self.seconds_remaining = None
        self.touch()
        self.add_event(HoldReleased(
            aggregate_id=self.booking_id,
            booking_id=self.booking_id,
            car_id=self.car_id,
        ))

    def expire(self) -> bool:
        """
        Any non-terminal status -> EXPIRED

        Expiring a hold that already reached a terminal status is a no-op
        and returns False.
        """
        if self.is_terminal:
            return False

        previous = self.status
        self.status = HoldStatus.EXPIRED
        self.seconds_remaining = None
        self.touch()
        self.add_event(HoldExpired(
            aggregate_id=self.booking_id,
            booking_id=self.booking_id,
            car_id=self.car_id,
            previous_status=previous.value,
        ))
        return True

    def confirm(self, payment_id: str):
        """HELD/WARNING/EXTENDED -> CONFIRMED"""
        self._require_active('confirm')

        self.status = HoldStatus.CONFIRMED
        self.seconds_remaining = None
        self.touch()
        self.add_event(HoldConfirmed(
            aggregate_id=self.booking_id,
            booking_id=self.booking_id,
            payment_id=payment_id,
        ))

    def __str__(self):
        return f"Hold {self.booking_id} on car {self.car_id} ({self.status.value})"

    def __repr__(self):
        return (
            f"Hold(booking_id={self.booking_id}, car_id={self.car_id}, "
            f"status={self.status.value}, dates={self.dates!r}, expires_at={self.expires_at})"
        )


@dataclass(frozen=True)
class BookingDraft(ValueObject):
    """
    In-progress reservation

    Collected step by step in the booking form; the pricing snapshot is the
    one shown to the customer when they proceeded to payment.
    """
    car_id: str
    start_date: str = ''
    end_date: str = ''
    start_time: str = ''
    end_time: str = ''
    location: str = ''
    fulfillment: str = 'pickup'
    first_name: str = ''
    middle_name: str = ''
    last_name: str = ''
    contact_number: str = ''
    email: str = ''
    license_number: str = ''
    rental_price: Optional[Decimal] = None
    delivery_fee: Optional[Decimal] = None
    total_price: Optional[Decimal] = None
    pricing_type: str = ''

    def __post_init__(self):
        if self.fulfillment not in ('pickup', 'delivery'):
            raise ValueError(f"Unknown fulfillment option: {self.fulfillment}")
        for name in ('rental_price', 'delivery_fee', 'total_price'):
            value = getattr(self, name)
            if value is not None and not isinstance(value, Decimal):
                object.__setattr__(self, name, Decimal(str(value)))

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def dates(self) -> Optional[DateRange]:
        if not (self.start_date and self.end_date):
            return None
        return DateRange.from_iso(self.start_date, self.end_date)

    def update(self, **changes) -> 'BookingDraft':
        unknown = set(changes) - {f.name for f in fields(self)}
        if unknown:
            raise ValueError(f"Unknown draft fields: {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    def to_dict(self) -> dict:
        data = asdict(self)
        for name in ('rental_price', 'delivery_fee', 'total_price'):
            if data[name] is not None:
                data[name] = str(data[name])
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'BookingDraft':
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})
