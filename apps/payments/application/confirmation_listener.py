"""
Confirmation Listener

Waiting state after the customer returned from the gateway checkout. The
verdict arrives on the realtime channel, relayed from the gateway webhook;
optionally the backend status endpoint is polled once a timeout elapsed.
Exactly one terminal navigation happens per listener.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from asgiref.sync import sync_to_async

from apps.bookings import navigation
from apps.bookings.application.command_handlers import ClearRetryPayload
from apps.bookings.application.ports import Navigator
from apps.bookings.application.state_store import BookingStateStore
from apps.payments.gateway import PaymentGatewayClient, PaymentGatewayError
from apps.realtime.channel import RealtimeChannel
from apps.realtime.events import (
    PAYMENT_CANCELLED,
    PAYMENT_FAILED,
    PAYMENT_PAID,
    PAYMENT_STATUS_UPDATED,
    InvalidChannelMessage,
    PaymentStatusUpdatedEvent,
    parse_message,
)

logger = logging.getLogger(__name__)

FAILED_REASON = "Payment was declined or failed"
CANCELLED_REASON = "Payment was cancelled"


class ConfirmationListener:
    """
    Waits for the paid/failed/cancelled verdict of one booking

    Events for other bookings are ignored: other subscribers may share the
    channel. The hold itself is confirmed through `on_paid` (the hold
    coordinator), never written here.
    """

    def __init__(
        self,
        store: BookingStateStore,
        channel: RealtimeChannel,
        navigator: Navigator,
        gateway: Optional[PaymentGatewayClient] = None,
        *,
        timeout: Optional[float] = None,
        poll_interval: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_paid: Optional[Callable[[str, str], Awaitable[Any]]] = None,
    ):
        self.store = store
        self.channel = channel
        self.navigator = navigator
        self.gateway = gateway
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._on_paid = on_paid

        self.booking_id: Optional[str] = None
        self.verdict: Optional[PaymentStatusUpdatedEvent] = None
        self._done = asyncio.Event()
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._poller: Optional[asyncio.Task] = None

    @property
    def done(self) -> bool:
        return self.verdict is not None

    def wait_for(self, booking_id: str) -> 'ConfirmationListener':
        if not booking_id:
            raise ValueError("Waiting for a payment requires a booking id")
        if self.booking_id is not None:
            raise RuntimeError(f"Already waiting for booking {self.booking_id}")

        self.booking_id = booking_id
        self._unsubscribe = self.channel.on(PaymentStatusUpdatedEvent, self.on_payment_status)
        logger.info(f"Waiting for payment verdict of booking {booking_id}")

        if self.timeout is not None and self.gateway is not None:
            self._poller = asyncio.get_running_loop().create_task(self._poll_after_timeout())
        return self

    async def wait(self) -> PaymentStatusUpdatedEvent:
        await self._done.wait()
        return self.verdict

    async def on_payment_status(self, event: PaymentStatusUpdatedEvent):
        if self.done:
            return
        if event.booking_id != self.booking_id:
            logger.debug(f"Ignoring payment status for booking {event.booking_id}, waiting for {self.booking_id}")
            return
        await self._resolve(event)

    async def _resolve(self, event: PaymentStatusUpdatedEvent):
        self.verdict = event
        self._detach()
        logger.info(f"Payment verdict for booking {event.booking_id}: {event.status}")

        if event.status == PAYMENT_PAID:
            self.store.dispatch(ClearRetryPayload())
            if self._on_paid is not None:
                await self._on_paid(event.booking_id, event.payment_id or '')
            self.navigator.navigate(navigation.PAYMENT_SUCCESS, {
                'booking_id': event.booking_id,
                'payment_id': event.payment_id or '',
                'amount': '' if event.amount is None else str(event.amount),
            })
        elif event.status == PAYMENT_FAILED:
            self.navigator.navigate(navigation.PAYMENT_FAILED, {
                'booking_id': event.booking_id,
                'reason': event.reason or FAILED_REASON,
            })
        elif event.status == PAYMENT_CANCELLED:
            self.navigator.navigate(navigation.PAYMENT_CANCEL, {
                'booking_id': event.booking_id,
                'reason': event.reason or CANCELLED_REASON,
            })
        self._done.set()

    async def _poll_after_timeout(self):
        await self._sleep(self.timeout)
        if not self.done:
            logger.warning(
                f"No payment verdict for booking {self.booking_id} after {self.timeout}s, polling status"
            )
        while not self.done:
            status = await self._fetch_status()
            if status is not None and not self.done:
                await self._resolve(status)
                return
            await self._sleep(self.poll_interval)

    async def _fetch_status(self) -> Optional[PaymentStatusUpdatedEvent]:
        try:
            data = await sync_to_async(self.gateway.get_status)(self.booking_id)
        except PaymentGatewayError as e:
            logger.warning(str(e))
            return None

        try:
            event = parse_message({"event": PAYMENT_STATUS_UPDATED, "data": {"bookingId": self.booking_id, **data}})
        except InvalidChannelMessage:
            # still pending
            return None
        if event.booking_id != self.booking_id:
            return None
        return event

    def _detach(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        poller, self._poller = self._poller, None
        if poller is not None and poller is not asyncio.current_task():
            poller.cancel()

    async def close(self):
        poller = self._poller
        self._detach()
        if poller is not None:
            try:
                await poller
            except asyncio.CancelledError:
                pass
