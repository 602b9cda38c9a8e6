"""Tests for the Hold aggregate and the booking draft."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from shared.domain.value_objects import DateRange
from apps.bookings.domain.entities import BookingDraft, Hold, HoldStatus
from apps.bookings.domain.events import (
    HoldAcquired,
    HoldConfirmed,
    HoldExpired,
    HoldExtensionRequested,
    HoldRenewed,
    HoldWarned,
)

HOLD_EXPIRES_AT = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
DATES = DateRange.from_iso("2026-03-01", "2026-03-03")


def make_hold(**kwargs) -> Hold:
    hold = Hold.acquire("BK-1", "car-1", DATES, expires_at=HOLD_EXPIRES_AT, room="hold:abc", **kwargs)
    return hold


def event_types(hold: Hold) -> list:
    return [type(e) for e in hold.events]


class TestHoldLifecycle:
    def test_acquire_records_event(self):
        hold = make_hold()

        assert hold.status == HoldStatus.HELD
        assert event_types(hold) == [HoldAcquired]

    def test_booking_id_required(self):
        with pytest.raises(ValueError):
            Hold.acquire("", "car-1", DATES)

    def test_warning_then_extension(self):
        hold = make_hold()
        hold.warn(30)
        hold.request_extension()

        assert hold.status == HoldStatus.EXTENDED
        assert event_types(hold)[1:] == [HoldWarned, HoldExtensionRequested]
        assert hold.events[-1].room == "hold:abc"

    def test_repeated_warnings(self):
        hold = make_hold()
        hold.warn(30)
        hold.warn(10)

        assert hold.status == HoldStatus.WARNING
        assert hold.seconds_remaining == 10

    def test_extension_requires_warning(self):
        with pytest.raises(ValueError):
            make_hold().request_extension()

    def test_renewal_never_shortens(self):
        hold = make_hold()

        assert not hold.renew(HOLD_EXPIRES_AT - timedelta(seconds=1))
        assert not hold.renew(HOLD_EXPIRES_AT)
        assert hold.expires_at == HOLD_EXPIRES_AT

        later = HOLD_EXPIRES_AT + timedelta(minutes=2)
        assert hold.renew(later)
        assert hold.expires_at == later
        assert event_types(hold)[-1] is HoldRenewed

    def test_warning_with_later_expiry_renews(self):
        hold = make_hold()
        later = HOLD_EXPIRES_AT + timedelta(minutes=2)
        hold.warn(30, expires_at=later)

        assert hold.expires_at == later

    @pytest.mark.parametrize("status_change", ["warn", "request_extension"])
    def test_expiry_wins_from_any_active_status(self, status_change):
        hold = make_hold()
        hold.warn(30)
        if status_change == "request_extension":
            hold.request_extension()

        assert hold.expire()
        assert hold.status == HoldStatus.EXPIRED
        assert hold.events[-1].previous_status in ("warning", "extended")
        assert isinstance(hold.events[-1], HoldExpired)

    def test_expiring_a_terminal_hold_is_a_no_op(self):
        hold = make_hold()
        hold.release()
        hold.clear_events()

        assert not hold.expire()
        assert hold.status == HoldStatus.RELEASED
        assert hold.events == []

    def test_terminal_holds_reject_transitions(self):
        hold = make_hold()
        hold.expire()

        for action in (lambda: hold.warn(30), hold.release, lambda: hold.confirm("pay_1")):
            with pytest.raises(ValueError):
                action()

    def test_confirm(self):
        hold = make_hold()
        hold.confirm("pay_1")

        assert hold.status == HoldStatus.CONFIRMED
        assert isinstance(hold.events[-1], HoldConfirmed)

    def test_negative_warning(self):
        with pytest.raises(ValueError):
            make_hold().warn(-1)

    def test_identity_equality(self):
        hold = make_hold()

        assert hold == hold
        assert hold != make_hold()


class TestBookingDraft:
    def test_prices_become_decimals(self):
        draft = BookingDraft(car_id="car-1", total_price="2500.50")

        assert draft.total_price == Decimal("2500.50")

    def test_unknown_fulfillment(self):
        with pytest.raises(ValueError):
            BookingDraft(car_id="car-1", fulfillment="drone")

    def test_update_rejects_unknown_fields(self):
        with pytest.raises(ValueError):
            BookingDraft(car_id="car-1").update(colour="red")

    def test_dict_round_trip_keeps_prices(self):
        draft = BookingDraft(car_id="car-1", first_name="Juan", last_name="Dela Cruz",
                             start_date="2026-03-01", end_date="2026-03-03", total_price=Decimal("99.90"))

        restored = BookingDraft.from_dict({**draft.to_dict(), "legacy_field": "x"})

        assert restored == draft
        assert restored.full_name == "Juan Dela Cruz"
        assert restored.dates == DATES

    def test_no_dates_yet(self):
        assert BookingDraft(car_id="car-1").dates is None
