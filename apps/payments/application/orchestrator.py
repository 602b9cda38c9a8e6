"""
Payment Orchestrator

Turns the booking draft into a payment-intent request, hands the customer
off to the gateway checkout, and retries a failed attempt with exactly the
same request.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from asgiref.sync import sync_to_async
from django.conf import settings

from shared.domain.value_objects import Money
from apps.bookings import navigation
from apps.bookings.application.command_handlers import (
    ClearBooking,
    ClearRetryPayload,
    SaveRetryPayload,
)
from apps.bookings.application.ports import Navigator, Notifier
from apps.bookings.application.state_store import BookingStateStore
from apps.payments.domain.entities import (
    BillingAddress,
    BillingDetails,
    PaymentIntent,
    RetryPayload,
)
from apps.payments.gateway import (
    PaymentGatewayClient,
    PaymentGatewayError,
    PaymentGatewayUnavailable,
)

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Car Rental Payment"


class PaymentOrchestrator:
    """
    Payment initiation for one client session

    The retry payload is written only here (after a successful dispatch)
    and is never cleared on failure: a failed payment can always be retried.
    """

    def __init__(
        self,
        store: BookingStateStore,
        gateway: PaymentGatewayClient,
        navigator: Navigator,
        notifier: Notifier,
        *,
        site_url: Optional[str] = None,
        down_payment_rate: Optional[Decimal] = None,
    ):
        self.store = store
        self.gateway = gateway
        self.navigator = navigator
        self.notifier = notifier
        self.site_url = site_url if site_url is not None else settings.SITE_URL
        self.down_payment_rate = Decimal(str(
            down_payment_rate if down_payment_rate is not None else settings.DOWN_PAYMENT_RATE
        ))
        self._retrying = False

    @property
    def is_retrying(self) -> bool:
        return self._retrying

    @property
    def has_retry_payload(self) -> bool:
        return self.store.retry_payload is not None

    def build_payment_request(self, booking_id: str, *, user_id: str = '', room: str = '',
                              description: str = DEFAULT_DESCRIPTION) -> RetryPayload:
        """Down payment request for the current draft"""
        draft = self.store.draft
        if draft is None:
            raise ValueError("No booking draft to pay for")
        if not draft.total_price:
            raise ValueError(f"Booking draft for car {draft.car_id} has no total price")

        amount = (Money(draft.total_price) * self.down_payment_rate).rounded()
        billing = BillingDetails(
            name=draft.full_name,
            email=draft.email,
            phone=draft.contact_number,
            address=BillingAddress(line1=draft.location),
        )
        metadata = {
            'bookingId': booking_id,
            'userId': user_id,
            'carId': draft.car_id,
            'startDate': draft.start_date,
            'endDate': draft.end_date,
            'startTime': draft.start_time,
            'endTime': draft.end_time,
            'name': draft.full_name,
            'email': draft.email,
            'phone': draft.contact_number,
            'room': room,
        }
        return RetryPayload(
            amount=amount.amount,
            currency=amount.currency,
            description=description,
            return_url=navigation.waiting_url(self.site_url, booking_id),
            billing=billing,
            metadata=metadata,
        )

    async def create_payment_intent(self, amount, billing: BillingDetails, metadata: dict, *,
                                    currency: str = 'PHP', description: str = DEFAULT_DESCRIPTION,
                                    return_url: Optional[str] = None) -> Optional[PaymentIntent]:
        """
        Start a payment and redirect to the gateway checkout

        Returns None (after notifying the customer) when the gateway refused
        or could not be reached.
        """
        payload = RetryPayload(
            amount=amount,
            currency=currency,
            description=description,
            return_url=return_url or navigation.waiting_url(self.site_url, metadata.get('bookingId', '')),
            billing=billing,
            metadata=metadata,
        )
        return await self.submit(payload)

    async def submit(self, payload: RetryPayload, *, save: bool = True) -> Optional[PaymentIntent]:
        try:
            intent = await sync_to_async(self.gateway.create_gcash_intent)(payload)
        except PaymentGatewayUnavailable as e:
            logger.error(f"Payment error for booking {payload.booking_id}: {e}")
            self.notifier.error("Payment Error", str(e))
            return None
        except PaymentGatewayError as e:
            logger.warning(f"Payment failed for booking {payload.booking_id}: {e}")
            self.notifier.error("Payment Failed", str(e))
            return None

        if save:
            self.store.dispatch(SaveRetryPayload(payload))
        logger.info(f"Redirecting booking {payload.booking_id} to checkout for intent {intent.id}")
        self.navigator.redirect(intent.checkout_url)
        return intent

    async def retry_payment(self) -> Optional[PaymentIntent]:
        """Resend the saved request; a no-op while a retry is in flight"""
        payload = self.store.retry_payload
        if self._retrying or payload is None:
            return None

        self._retrying = True
        try:
            logger.info(f"Retrying payment for booking {payload.booking_id}")
            return await self.submit(payload, save=False)
        finally:
            self._retrying = False

    def abandon(self):
        """Customer gives up on the booking"""
        self.store.dispatch(ClearRetryPayload())
        self.store.dispatch(ClearBooking(reason='abandoned'))
        self.navigator.navigate(navigation.CARS)
