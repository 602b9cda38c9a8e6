"""
Payment Domain Entities

- BillingDetails / BillingAddress: who pays, as the gateway wants it
- RetryPayload: immutable snapshot of the last payment-intent request
- PaymentIntent: transient gateway answer used to hand off to checkout
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from shared.domain.base import ValueObject


@dataclass(frozen=True)
class BillingAddress(ValueObject):
    line1: str = ''
    city: str = ''
    state: str = ''
    postal_code: str = ''
    country: str = 'PH'

    def to_dict(self) -> dict:
        return {
            'line1': self.line1,
            'city': self.city,
            'state': self.state,
            'postal_code': self.postal_code,
            'country': self.country,
        }


@dataclass(frozen=True)
class BillingDetails(ValueObject):
    name: str
    email: str = ''
    phone: str = ''
    address: BillingAddress = field(default_factory=BillingAddress)

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'BillingDetails':
        return cls(
            name=data.get('name', ''),
            email=data.get('email', ''),
            phone=data.get('phone', ''),
            address=BillingAddress(**data.get('address', {})),
        )


@dataclass(frozen=True)
class RetryPayload(ValueObject):
    """
    Snapshot of a payment-intent request

    Saved right before the customer is sent to the gateway so that a
    failed attempt can be retried with exactly the same request.
    `metadata` must carry the booking id.
    """
    amount: Decimal
    billing: BillingDetails
    metadata: dict
    currency: str = 'PHP'
    description: str = 'Car Rental Payment'
    return_url: str = ''

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        if self.amount <= 0:
            raise ValueError("Payment amount must be positive")
        if not self.metadata.get('bookingId'):
            raise ValueError("Payment metadata must include bookingId")
        object.__setattr__(self, 'metadata', dict(self.metadata))

    @property
    def booking_id(self) -> str:
        return self.metadata['bookingId']

    def to_request(self) -> dict:
        """Body for the payment-intent endpoint"""
        return {
            'amount': str(self.amount),
            'currency': self.currency,
            'description': self.description,
            'return_url': self.return_url,
            'billing': self.billing.to_dict(),
            'metadata': dict(self.metadata),
        }

    @classmethod
    def from_request(cls, data: dict) -> 'RetryPayload':
        return cls(
            amount=Decimal(str(data['amount'])),
            currency=data.get('currency', 'PHP'),
            description=data.get('description', 'Car Rental Payment'),
            return_url=data.get('return_url', ''),
            billing=BillingDetails.from_dict(data.get('billing', {})),
            metadata=data.get('metadata', {}),
        )


@dataclass(frozen=True)
class PaymentIntent(ValueObject):
    id: str
    checkout_url: Optional[str]
    status: str = 'awaiting_next_action'
