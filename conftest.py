"""Shared fixtures for the booking lifecycle tests."""

from __future__ import annotations

from datetime import timedelta

import pytest

from shared.infrastructure.storage import InMemorySessionStorage
from shared.tests.fakes import (
    HOLD_EXPIRES_AT,
    FakeChannel,
    FakeGateway,
    FakeNavigator,
    FakeNotifier,
    FakePrompt,
    FakeReservations,
)
from apps.bookings.application.command_handlers import SelectCar, UpdateDraft
from apps.bookings.application.state_store import BookingStateStore


@pytest.fixture
def storage():
    return InMemorySessionStorage("client-1")


@pytest.fixture
def store(storage):
    return BookingStateStore(storage)


@pytest.fixture
def drafted_store(store):
    store.dispatch(SelectCar("car-1"))
    store.dispatch(UpdateDraft({
        "start_date": "2026-03-01",
        "end_date": "2026-03-03",
        "start_time": "09:00",
        "end_time": "18:00",
        "first_name": "Juan",
        "last_name": "Dela Cruz",
        "email": "juan@example.com",
        "contact_number": "09171234567",
        "location": "Cebu City",
        "total_price": "2500.00",
    }))
    return store


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def prompt():
    return FakePrompt()


@pytest.fixture
def navigator():
    return FakeNavigator()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def reservations():
    return FakeReservations()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def later():
    return HOLD_EXPIRES_AT + timedelta(minutes=2)
