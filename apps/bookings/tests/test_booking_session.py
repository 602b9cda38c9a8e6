"""Tests for the per-client wiring of the booking lifecycle."""

from __future__ import annotations

import pytest

from apps.bookings import navigation
from apps.bookings.domain.entities import HoldStatus
from apps.bookings.session import BookingSession
from apps.realtime.events import HOLD_WARNING, PAYMENT_STATUS_UPDATED


@pytest.fixture
def session(drafted_store, channel, prompt, navigator, notifier, reservations, gateway):
    return BookingSession(
        drafted_store, channel, prompt, navigator, notifier,
        reservations=reservations, gateway=gateway,
    )


@pytest.mark.asyncio
async def test_hold_then_payment(session, channel, prompt, navigator, gateway):
    async with session:
        hold = await session.coordinator.acquire_hold()
        await channel.push(HOLD_WARNING, {"secondsRemaining": 30})
        assert prompt.is_open

        await session.coordinator.continue_booking()
        assert channel.sent == [{"event": "extend_hold", "data": {"room": "hold:test"}}]

        payload = session.orchestrator.build_payment_request(hold.booking_id, room=hold.room)
        await session.orchestrator.submit(payload)
        assert navigator.redirects == ["https://checkout.test/pi_1"]

        session.wait_for_payment(hold.booking_id)
        await channel.push(PAYMENT_STATUS_UPDATED, {"bookingId": "BK-1", "status": "paid", "paymentId": "pay_1"})

    assert navigator.navigations == [(navigation.PAYMENT_SUCCESS, {
        "booking_id": "BK-1", "payment_id": "pay_1", "amount": "",
    })]
    assert session.store.retry_payload is None
    assert session.store.hold.status == HoldStatus.CONFIRMED
    assert not channel.connected


@pytest.mark.asyncio
async def test_one_waiting_state_at_a_time(session):
    async with session:
        session.wait_for_payment("BK-1")

        with pytest.raises(RuntimeError):
            session.wait_for_payment("BK-2")


@pytest.mark.asyncio
async def test_close_detaches_hold_handlers(session, channel, prompt):
    await session.open()
    await session.close()

    await channel.push(HOLD_WARNING, {"secondsRemaining": 10})

    assert prompt.opened == []
