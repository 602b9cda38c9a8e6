"""
Common Value Objects

Value objects used across the booking and payment contexts:
- Money: Monetary amount with currency (rentals are charged in PHP)
- DateRange: Rental period, pickup date to return date (both inclusive)
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from shared.domain.base import ValueObject

SUPPORTED_CURRENCIES = ('PHP', 'USD')
CENTS = Decimal('0.01')


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Immutable monetary amount. Arithmetic keeps the currency and refuses
    to mix currencies.
    """
    amount: Decimal
    currency: str = 'PHP'

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")

    def __add__(self, other: 'Money') -> 'Money':
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        if not isinstance(other, Money):
            raise TypeError("Can only subtract Money from Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract different currencies: {self.currency} and {other.currency}")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor) -> 'Money':
        if not isinstance(factor, (int, float, Decimal)):
            raise TypeError("Can only multiply Money by number")
        return Money(self.amount * Decimal(str(factor)), self.currency)

    def rounded(self) -> 'Money':
        """Round to whole cents, half up"""
        return Money(self.amount.quantize(CENTS, rounding=ROUND_HALF_UP), self.currency)

    @property
    def cents(self) -> int:
        """Amount in the smallest currency unit, as gateways expect it"""
        return int(self.rounded().amount * 100)

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Rental period

    Both ends are inclusive: a car picked up and returned on the same day
    is a valid one-day rental.
    """
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Start date ({self.start}) must not be after end date ({self.end})")

    @classmethod
    def from_iso(cls, start: str, end: str) -> 'DateRange':
        return cls(date.fromisoformat(start), date.fromisoformat(end))

    def overlaps_with(self, other: 'DateRange') -> bool:
        """
        Inclusive overlap check

        Examples:
            - 01..03 overlaps with 03..05 -> True (shared return/pickup day)
            - 01..03 overlaps with 04..05 -> False
        """
        if not isinstance(other, DateRange):
            raise TypeError("Can only check overlap with another DateRange")
        return self.start <= other.end and other.start <= self.end

    def contains(self, check_date: date) -> bool:
        return self.start <= check_date <= self.end

    def __len__(self) -> int:
        """Number of rental days"""
        return (self.end - self.start).days + 1

    def __str__(self):
        return f"{self.start.isoformat()} to {self.end.isoformat()}"

    def __repr__(self):
        return f"DateRange({self.start}, {self.end})"
