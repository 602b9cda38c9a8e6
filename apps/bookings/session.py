"""Wiring of the booking lifecycle components for one client."""

from __future__ import annotations

import logging
from typing import Optional

from django.conf import settings

from shared.infrastructure.storage import CacheSessionStorage, SessionStorage
from apps.bookings.application.hold_coordinator import HoldCoordinator
from apps.bookings.application.ports import HoldPrompt, Navigator, Notifier
from apps.bookings.application.state_store import BookingStateStore
from apps.bookings.services import ReservationClient
from apps.payments.application.confirmation_listener import ConfirmationListener
from apps.payments.application.orchestrator import PaymentOrchestrator
from apps.payments.gateway import PaymentGatewayClient
from apps.realtime.channel import RealtimeChannel, RedisRealtimeChannel
from apps.realtime.rooms import room_for_user_agent

logger = logging.getLogger(__name__)


class BookingSession:
    """
    One client's booking lifecycle

    The hold coordinator and the confirmation listener subscribe to the same
    channel independently.

    Usage:
        async with BookingSession.for_user_agent(ua, prompt, navigator, notifier) as session:
            session.store.dispatch(SelectCar("car-1"))
            await session.coordinator.acquire_hold()
    """

    def __init__(
        self,
        store: BookingStateStore,
        channel: RealtimeChannel,
        prompt: HoldPrompt,
        navigator: Navigator,
        notifier: Notifier,
        *,
        reservations: Optional[ReservationClient] = None,
        gateway: Optional[PaymentGatewayClient] = None,
    ):
        self.store = store
        self.channel = channel
        self.navigator = navigator
        self.gateway = gateway or PaymentGatewayClient()
        self.coordinator = HoldCoordinator(
            store,
            channel,
            reservations or ReservationClient(),
            prompt,
            navigator,
            notifier,
        )
        self.orchestrator = PaymentOrchestrator(store, self.gateway, navigator, notifier)
        self._listener: Optional[ConfirmationListener] = None

    @classmethod
    def for_user_agent(cls, user_agent: str, prompt: HoldPrompt, navigator: Navigator,
                       notifier: Notifier, storage: Optional[SessionStorage] = None,
                       **kwargs) -> 'BookingSession':
        room = room_for_user_agent(user_agent)
        store = BookingStateStore(storage or CacheSessionStorage(room))
        return cls(store, RedisRealtimeChannel.from_settings(room), prompt, navigator, notifier, **kwargs)

    @property
    def listener(self) -> Optional[ConfirmationListener]:
        return self._listener

    def wait_for_payment(self, booking_id: str) -> ConfirmationListener:
        """Enter the waiting state for a booking"""
        if self._listener is not None and not self._listener.done:
            raise RuntimeError(f"Already waiting for booking {self._listener.booking_id}")
        self._listener = ConfirmationListener(
            self.store,
            self.channel,
            self.navigator,
            self.gateway,
            timeout=settings.PAYMENT_WAITING_TIMEOUT,
            poll_interval=settings.PAYMENT_STATUS_POLL_INTERVAL,
            on_paid=self.coordinator.confirm_payment,
        ).wait_for(booking_id)
        return self._listener

    async def open(self) -> 'BookingSession':
        await self.channel.connect()
        self.coordinator.attach()
        logger.info(f"Booking session opened for client {self.store.client_id}")
        return self

    async def close(self):
        if self._listener is not None:
            await self._listener.close()
        await self.coordinator.close()
        await self.channel.close()
        logger.info(f"Booking session closed for client {self.store.client_id}")

    async def __aenter__(self):
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
