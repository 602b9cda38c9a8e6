"""Tests for payment initiation, retry and abandonment."""

from __future__ import annotations

import asyncio
import threading
from decimal import Decimal

import pytest

from apps.bookings import navigation
from apps.bookings.application.command_handlers import SaveRetryPayload
from apps.payments.application.orchestrator import PaymentOrchestrator
from apps.payments.domain.entities import BillingAddress, BillingDetails
from apps.payments.gateway import PaymentGatewayError, PaymentGatewayUnavailable
from shared.tests.fakes import make_payload


@pytest.fixture
def orchestrator(drafted_store, gateway, navigator, notifier):
    return PaymentOrchestrator(drafted_store, gateway, navigator, notifier)


class TestBuildPaymentRequest:
    def test_down_payment_from_draft(self, orchestrator):
        payload = orchestrator.build_payment_request("BK-1", room="hold:test")

        assert payload.amount == Decimal("500.00")
        assert payload.currency == "PHP"
        assert payload.return_url == "https://rentals.test/payment/waiting?bookingId=BK-1"
        assert payload.billing == BillingDetails(
            name="Juan Dela Cruz",
            email="juan@example.com",
            phone="09171234567",
            address=BillingAddress(line1="Cebu City"),
        )
        assert payload.metadata == {
            "bookingId": "BK-1",
            "userId": "",
            "carId": "car-1",
            "startDate": "2026-03-01",
            "endDate": "2026-03-03",
            "startTime": "09:00",
            "endTime": "18:00",
            "name": "Juan Dela Cruz",
            "email": "juan@example.com",
            "phone": "09171234567",
            "room": "hold:test",
        }

    def test_custom_rate_is_rounded(self, drafted_store, gateway, navigator, notifier):
        orchestrator = PaymentOrchestrator(
            drafted_store, gateway, navigator, notifier, down_payment_rate=Decimal("0.333"),
        )

        assert orchestrator.build_payment_request("BK-1").amount == Decimal("832.50")

    def test_requires_draft(self, store, gateway, navigator, notifier):
        orchestrator = PaymentOrchestrator(store, gateway, navigator, notifier)

        with pytest.raises(ValueError):
            orchestrator.build_payment_request("BK-1")


class TestCreatePaymentIntent:
    @pytest.mark.asyncio
    async def test_saves_payload_and_redirects(self, orchestrator, drafted_store, gateway, navigator, notifier):
        payload = orchestrator.build_payment_request("BK-1")

        intent = await orchestrator.create_payment_intent(
            payload.amount, payload.billing, payload.metadata, return_url=payload.return_url,
        )

        assert intent.id == "pi_1"
        assert navigator.redirects == ["https://checkout.test/pi_1"]
        assert drafted_store.retry_payload == payload
        assert gateway.requests == [payload]
        assert notifier.errors == []

    @pytest.mark.asyncio
    async def test_default_return_url_is_waiting_page(self, orchestrator, gateway):
        billing = BillingDetails(name="Juan Dela Cruz")

        await orchestrator.create_payment_intent(Decimal("500"), billing, {"bookingId": "BK-9"})

        assert gateway.requests[0].return_url == "https://rentals.test/payment/waiting?bookingId=BK-9"

    @pytest.mark.asyncio
    async def test_rejection_notifies_payment_failed(self, orchestrator, drafted_store, gateway, navigator, notifier):
        gateway.error = PaymentGatewayError("Card declined")

        result = await orchestrator.submit(make_payload())

        assert result is None
        assert notifier.errors == [("Payment Failed", "Card declined")]
        assert navigator.redirects == []
        assert drafted_store.retry_payload is None

    @pytest.mark.asyncio
    async def test_network_failure_notifies_payment_error(self, orchestrator, gateway, notifier):
        gateway.error = PaymentGatewayUnavailable("Something went wrong. Please try again.")

        assert await orchestrator.submit(make_payload()) is None
        assert notifier.errors == [("Payment Error", "Something went wrong. Please try again.")]

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_payload(self, orchestrator, drafted_store, gateway):
        saved = make_payload()
        drafted_store.dispatch(SaveRetryPayload(saved))
        gateway.error = PaymentGatewayError("declined")

        await orchestrator.submit(make_payload(booking_id="BK-2"))

        assert drafted_store.retry_payload == saved


class TestRetry:
    @pytest.mark.asyncio
    async def test_resends_saved_payload_verbatim(self, orchestrator, drafted_store, gateway, navigator):
        saved = make_payload()
        drafted_store.dispatch(SaveRetryPayload(saved))

        intent = await orchestrator.retry_payment()

        assert intent.checkout_url == "https://checkout.test/pi_1"
        assert gateway.requests == [saved]
        assert gateway.requests[0].to_request() == saved.to_request()
        assert navigator.redirects == ["https://checkout.test/pi_1"]
        assert drafted_store.retry_payload == saved
        assert not orchestrator.is_retrying

    @pytest.mark.asyncio
    async def test_without_payload_is_noop(self, orchestrator, gateway):
        assert not orchestrator.has_retry_payload
        assert await orchestrator.retry_payment() is None
        assert gateway.requests == []

    @pytest.mark.asyncio
    async def test_failed_retry_keeps_payload(self, orchestrator, drafted_store, gateway, notifier):
        saved = make_payload()
        drafted_store.dispatch(SaveRetryPayload(saved))
        gateway.error = PaymentGatewayError("still declined")

        assert await orchestrator.retry_payment() is None
        assert drafted_store.retry_payload == saved
        assert notifier.errors == [("Payment Failed", "still declined")]
        assert not orchestrator.is_retrying

    @pytest.mark.asyncio
    async def test_concurrent_retry_is_ignored(self, orchestrator, drafted_store, gateway):
        drafted_store.dispatch(SaveRetryPayload(make_payload()))
        gateway.gate = threading.Event()

        first = asyncio.ensure_future(orchestrator.retry_payment())
        await asyncio.sleep(0)
        assert orchestrator.is_retrying

        assert await orchestrator.retry_payment() is None

        gateway.gate.set()
        assert (await first).id == "pi_1"
        assert len(gateway.requests) == 1


def test_abandon_clears_session(orchestrator, drafted_store, navigator):
    drafted_store.dispatch(SaveRetryPayload(make_payload()))

    orchestrator.abandon()

    assert drafted_store.retry_payload is None
    assert drafted_store.draft is None
    assert navigator.navigations == [(navigation.CARS, {})]
