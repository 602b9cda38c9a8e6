"""Tests for the booking state store."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from shared.domain.value_objects import DateRange
from shared.infrastructure.storage import InMemorySessionStorage
from apps.bookings.application.command_handlers import (
    AcquireHold,
    ClearBooking,
    ClearRetryPayload,
    ConfirmHold,
    ExpireHold,
    ReleaseHold,
    SaveRetryPayload,
    SelectCar,
    UpdateDraft,
    WarnHold,
)
from apps.bookings.application.state_store import RETRY_PAYLOAD_KEY, BookingStateStore
from apps.bookings.domain.entities import HoldStatus
from apps.bookings.domain.events import (
    BookingDraftCleared,
    CarSelected,
    HoldAcquired,
    HoldExpired,
    HoldWarned,
    RetryPayloadCleared,
    RetryPayloadSaved,
)
from shared.tests.fakes import make_payload

DATES = DateRange.from_iso("2026-03-01", "2026-03-03")
EXPIRES_AT = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)


def acquire(store, booking_id="BK-1"):
    return store.dispatch(AcquireHold(booking_id=booking_id, car_id="car-1", dates=DATES, expires_at=EXPIRES_AT))


class TestDraft:
    def test_selecting_a_car_starts_a_draft(self, store):
        events = []
        store.subscribe(events.append)

        draft = store.dispatch(SelectCar("car-1"))

        assert draft.car_id == "car-1"
        assert [type(e) for e in events] == [CarSelected]
        assert events[0].draft_reset is False

    def test_same_car_keeps_the_draft(self, drafted_store):
        before = drafted_store.draft

        assert drafted_store.dispatch(SelectCar("car-1")) == before

    def test_different_car_resets_the_draft(self, drafted_store):
        events = []
        drafted_store.subscribe(events.append, CarSelected)

        draft = drafted_store.dispatch(SelectCar("car-2"))

        assert draft.car_id == "car-2"
        assert draft.first_name == ""
        assert events[0].draft_reset is True

    def test_update_requires_a_draft(self, store):
        with pytest.raises(ValueError):
            store.dispatch(UpdateDraft({"first_name": "Juan"}))

    def test_update_cannot_switch_cars(self, drafted_store):
        with pytest.raises(ValueError):
            drafted_store.dispatch(UpdateDraft({"car_id": "car-2"}))

    def test_clear_booking(self, drafted_store):
        events = []
        drafted_store.subscribe(events.append, BookingDraftCleared)

        drafted_store.dispatch(ClearBooking(reason="expired"))

        assert drafted_store.draft is None
        assert events[0].reason == "expired"

    def test_draft_survives_a_new_store(self, drafted_store, storage):
        restored = BookingStateStore(storage)

        assert restored.draft == drafted_store.draft


class TestHold:
    def test_acquire(self, drafted_store):
        events = []
        drafted_store.subscribe(events.append, HoldAcquired)

        hold = acquire(drafted_store)

        assert hold.status == HoldStatus.HELD
        assert drafted_store.hold.booking_id == "BK-1"
        assert len(events) == 1

    def test_acquire_needs_a_matching_draft(self, store):
        with pytest.raises(ValueError):
            acquire(store)

    def test_one_active_hold_at_a_time(self, drafted_store):
        acquire(drafted_store)

        with pytest.raises(ValueError):
            acquire(drafted_store, booking_id="BK-2")

    def test_new_hold_after_terminal(self, drafted_store):
        acquire(drafted_store)
        drafted_store.dispatch(ReleaseHold())

        assert acquire(drafted_store, booking_id="BK-2").booking_id == "BK-2"

    def test_state_snapshot_is_detached(self, drafted_store):
        acquire(drafted_store)

        snapshot = drafted_store.state.hold
        snapshot.status = HoldStatus.EXPIRED

        assert drafted_store.hold.status == HoldStatus.HELD

    def test_warning_without_hold(self, store):
        assert store.dispatch(WarnHold(30)) is False

    def test_expiry_publishes_event(self, drafted_store):
        acquire(drafted_store)
        drafted_store.dispatch(WarnHold(30))
        events = []
        drafted_store.subscribe(events.append, HoldExpired, HoldWarned)

        assert drafted_store.dispatch(ExpireHold()) is True
        assert [type(e) for e in events] == [HoldExpired]
        assert drafted_store.hold.status == HoldStatus.EXPIRED

    def test_confirm_only_for_the_same_booking(self, drafted_store):
        acquire(drafted_store)

        assert drafted_store.dispatch(ConfirmHold(booking_id="BK-2", payment_id="pay_1")) is False
        assert drafted_store.dispatch(ConfirmHold(booking_id="BK-1", payment_id="pay_1")) is True
        assert drafted_store.hold.status == HoldStatus.CONFIRMED

    def test_hold_is_not_restored(self, drafted_store, storage):
        acquire(drafted_store)

        assert BookingStateStore(storage).hold is None

    def test_unsubscribe(self, drafted_store):
        events = []
        unsubscribe = drafted_store.subscribe(events.append)
        unsubscribe()

        acquire(drafted_store)

        assert events == []


class TestRetryPayload:
    def test_saved_payload_is_encrypted_and_restored(self, store, storage):
        payload = make_payload()
        events = []
        store.subscribe(events.append, RetryPayloadSaved)

        store.dispatch(SaveRetryPayload(payload))

        stored = storage.get(RETRY_PAYLOAD_KEY)
        assert isinstance(stored, str)
        assert "juan@example.com" not in stored
        assert BookingStateStore(storage).retry_payload == payload
        assert events[0].booking_id == "BK-1"

    def test_clear(self, store, storage):
        store.dispatch(SaveRetryPayload(make_payload()))
        events = []
        store.subscribe(events.append, RetryPayloadCleared)

        store.dispatch(ClearRetryPayload())

        assert store.retry_payload is None
        assert storage.get(RETRY_PAYLOAD_KEY) is None
        assert events[0].booking_id == "BK-1"

    def test_unreadable_payload_is_discarded(self):
        storage = InMemorySessionStorage("client-1")
        storage.set(RETRY_PAYLOAD_KEY, "not-a-token")

        assert BookingStateStore(storage).retry_payload is None
