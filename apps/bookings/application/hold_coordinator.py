"""
Hold Coordinator

Reacts to the realtime channel and to the customer's answers while a car is
held:

    HELD -> WARNING -> EXTENDED (continue) -> WARNING ...
                    -> RELEASED (decline)
    any  -> EXPIRED (server expiry, always wins)
    any  -> CONFIRMED (paid verdict from the confirmation listener)

The local countdown only re-renders the prompt; expiry comes from the
server and nothing else.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from asgiref.sync import sync_to_async

from apps.bookings import navigation
from apps.bookings.application.command_handlers import (
    AcquireHold,
    ClearBooking,
    ClearHold,
    ConfirmHold,
    ExpireHold,
    ReleaseHold,
    RequestHoldExtension,
    WarnHold,
)
from apps.bookings.application.countdown import CountdownTimer
from apps.bookings.application.ports import HoldPrompt, Navigator, Notifier
from apps.bookings.application.state_store import BookingStateStore
from apps.bookings.domain.entities import Hold
from apps.bookings.services import ReservationClient, ReservationServiceError
from apps.realtime.channel import RealtimeChannel, RealtimeChannelError
from apps.realtime.events import ExtendHoldCommand, HoldExpiredEvent, HoldWarningEvent

logger = logging.getLogger(__name__)

WARNING_TITLE = "Hold Expiring Soon"
CONTINUE_LABEL = "Continue Booking"
RELEASE_LABEL = "Release Hold"
EXPIRED_TITLE = "Hold Expired"
EXPIRED_MESSAGE = (
    "Your car hold has expired and the dates have been released. "
    "Please select new dates to try again."
)


def warning_message(seconds: int) -> str:
    plural = "" if seconds == 1 else "s"
    return (
        f"Your car hold will expire in {seconds} second{plural}. "
        f"Would you like to continue with the booking?"
    )


class HoldCoordinator:
    """
    Drives the hold lifecycle for one client session

    Only this component changes hold status, and it clears the draft on expiry
    and release.
    """

    def __init__(
        self,
        store: BookingStateStore,
        channel: RealtimeChannel,
        reservations: ReservationClient,
        prompt: HoldPrompt,
        navigator: Navigator,
        notifier: Optional[Notifier] = None,
        *,
        countdown_interval: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.channel = channel
        self.reservations = reservations
        self.prompt = prompt
        self.navigator = navigator
        self.notifier = notifier
        self._countdown_interval = countdown_interval
        self._sleep = sleep

        self._countdown: Optional[CountdownTimer] = None
        self._prompt_open = False
        self._declining = False
        self._unsubscribers: List[Callable[[], None]] = []

    @property
    def countdown(self) -> Optional[CountdownTimer]:
        return self._countdown

    @property
    def prompt_open(self) -> bool:
        return self._prompt_open

    def attach(self) -> 'HoldCoordinator':
        if not self._unsubscribers:
            self._unsubscribers = [
                self.channel.on(HoldWarningEvent, self.on_hold_warning),
                self.channel.on(HoldExpiredEvent, self.on_hold_expired),
            ]
        return self

    async def close(self):
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        await self._stop_countdown()
        self._close_prompt()

    # --- acquiring ---

    async def acquire_hold(self) -> Optional[Hold]:
        """
        Hold the draft's car for the draft's dates

        A hold left over from an earlier car or earlier dates is released
        first: the session tracks one hold at a time.
        """
        draft = self.store.draft
        if draft is None or draft.dates is None:
            raise ValueError("Select a car and dates before holding")

        await self._release_previous_hold()

        try:
            grant = await sync_to_async(self.reservations.hold_dates)(
                draft.car_id,
                start_date=draft.start_date,
                end_date=draft.end_date,
                start_time=draft.start_time,
                end_time=draft.end_time,
            )
        except ReservationServiceError as e:
            logger.warning(f"Could not hold car {draft.car_id}: {e}")
            self._notify('error', "Hold Failed", "Unable to hold the car at this moment. Please try again.")
            return None

        try:
            return self.store.dispatch(AcquireHold(
                booking_id=grant.booking_id,
                car_id=draft.car_id,
                dates=draft.dates,
                expires_at=grant.expires_at,
                room=grant.room or self.channel.room,
            ))
        except ValueError as e:
            # draft or hold changed while the server call was in flight
            logger.warning(f"Dropping hold {grant.booking_id} on car {draft.car_id}: {e}")
            await self._release_remote(draft.car_id, grant.booking_id)
            return None

    async def _release_previous_hold(self):
        hold = self.store.hold
        if hold is None:
            return
        if not hold.is_terminal:
            logger.info(f"Releasing {hold!r} before holding new dates")
            await self._stop_countdown()
            self._close_prompt()
            self.store.dispatch(ReleaseHold())
            await self._release_remote(hold.car_id, hold.booking_id)
        self.store.dispatch(ClearHold())

    # --- channel events ---

    async def on_hold_warning(self, event: HoldWarningEvent):
        if self.store.draft is None:
            logger.info("Ignoring hold warning: no booking in progress")
            return

        await self._stop_countdown()

        if not self.store.dispatch(WarnHold(event.seconds_remaining, event.expires_at)):
            logger.info("Showing hold warning for a hold this session does not track")

        message = warning_message(event.seconds_remaining)
        if self._prompt_open:
            self.prompt.update_message(message)
        else:
            self.prompt.open(WARNING_TITLE, message, CONTINUE_LABEL, RELEASE_LABEL)
            self._prompt_open = True

        self._countdown = CountdownTimer(
            event.seconds_remaining,
            self._render_countdown,
            interval=self._countdown_interval,
            sleep=self._sleep,
        ).start()

    async def on_hold_expired(self, event: HoldExpiredEvent):
        hold = self.store.hold
        logger.info(f"Hold expired by server: {hold!r}")

        await self._stop_countdown()
        self._close_prompt()

        self.store.dispatch(ExpireHold())
        if self._declining:
            # decline clears the session and navigates once its release call returns
            return

        self.store.dispatch(ClearBooking(reason='expired'))
        self.store.dispatch(ClearHold())

        self._notify('error', EXPIRED_TITLE, EXPIRED_MESSAGE)
        self.navigator.navigate(navigation.HOME)

    # --- payment ---

    async def confirm_payment(self, booking_id: str, payment_id: str = '') -> bool:
        """Paid verdict for the held booking; the hold becomes confirmed"""
        confirmed = self.store.dispatch(ConfirmHold(booking_id=booking_id, payment_id=payment_id))
        if not confirmed:
            logger.info(f"No active hold for booking {booking_id} to confirm")
            return False

        await self._stop_countdown()
        self._close_prompt()
        logger.info(f"Hold {booking_id} confirmed by payment {payment_id}")
        return True

    # --- customer answers ---

    async def continue_booking(self) -> bool:
        """Customer keeps the hold; asks the server for more time"""
        if not self._prompt_open:
            return False

        await self._stop_countdown()
        self._close_prompt()

        hold = self.store.hold
        try:
            self.store.dispatch(RequestHoldExtension())
        except ValueError as e:
            logger.warning(f"Hold extension not recorded locally: {e}")

        room = (hold.room if hold is not None else '') or self.channel.room
        try:
            await self.channel.emit(ExtendHoldCommand(room=room))
        except RealtimeChannelError as e:
            logger.error(f"Could not request hold extension for room {room}: {e}")
            self._notify('error', "Extension Failed", "We could not extend your hold. Please try again.")
            return False
        return True

    async def decline(self):
        """Customer lets go of the car; local state is cleared whatever the release call does"""
        await self._stop_countdown()
        self._close_prompt()

        hold = self.store.hold
        draft = self.store.draft
        self._declining = True
        try:
            if hold is not None and not hold.is_terminal:
                self.store.dispatch(ReleaseHold())
                await self._release_remote(hold.car_id, hold.booking_id)
            elif draft is not None and hold is None:
                logger.info(f"No tracked hold for car {draft.car_id}, skipping release call")
        finally:
            self._declining = False
            self.store.dispatch(ClearBooking(reason='released'))
            self.store.dispatch(ClearHold())

        self.navigator.navigate(navigation.HOME)

    # --- helpers ---

    async def _release_remote(self, car_id: str, booking_id: str):
        try:
            await sync_to_async(self.reservations.release_hold)(car_id, booking_id)
        except ReservationServiceError as e:
            logger.warning(f"Release of hold {booking_id} failed, clearing local state anyway: {e}")

    def _render_countdown(self, remaining: int):
        if self._prompt_open:
            self.prompt.update_message(warning_message(remaining))

    async def _stop_countdown(self):
        countdown, self._countdown = self._countdown, None
        if countdown is not None:
            countdown.cancel()
            await countdown.wait()

    def _close_prompt(self):
        if self._prompt_open:
            self._prompt_open = False
            self.prompt.close()

    def _notify(self, level: str, title: str, message: str):
        if self.notifier is not None:
            getattr(self.notifier, level)(title, message)
