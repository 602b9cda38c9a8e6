"""
Booking Session Command Handlers

The only entry points that change a client's booking state. Each command
is handled inside a unit of work so subscribers see events only for changes
that were persisted.

Commands:
- SelectCar / UpdateDraft / ClearBooking: the booking draft
- AcquireHold / WarnHold / RequestHoldExtension / RenewHold /
  ReleaseHold / ExpireHold / ConfirmHold / ClearHold: the hold
- SaveRetryPayload / ClearRetryPayload: the payment retry snapshot
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Optional
import logging

from shared.domain.value_objects import DateRange
from apps.bookings.domain.entities import BookingDraft, Hold
from apps.bookings.domain.events import (
    BookingDraftCleared,
    CarSelected,
    RetryPayloadCleared,
    RetryPayloadSaved,
)
from apps.payments.domain.entities import RetryPayload

if TYPE_CHECKING:  # pragma: no cover
    from shared.application.message_bus import MessageBus
    from apps.bookings.application.state_store import BookingStateStore

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class SelectCar:
    """Start (or keep) a draft for a car; a different car resets the draft"""
    car_id: str


@dataclass
class UpdateDraft:
    changes: dict = field(default_factory=dict)


@dataclass
class ClearBooking:
    reason: str = 'cleared'


@dataclass
class AcquireHold:
    booking_id: str
    car_id: str
    dates: DateRange
    expires_at: Optional[datetime] = None
    room: str = ''


@dataclass
class WarnHold:
    seconds_remaining: int
    expires_at: Optional[datetime] = None


@dataclass
class RequestHoldExtension:
    pass


@dataclass
class RenewHold:
    expires_at: datetime


@dataclass
class ReleaseHold:
    pass


@dataclass
class ExpireHold:
    pass


@dataclass
class ConfirmHold:
    booking_id: str
    payment_id: str


@dataclass
class ClearHold:
    pass


@dataclass
class SaveRetryPayload:
    payload: RetryPayload


@dataclass
class ClearRetryPayload:
    pass


# ===== Command Handlers =====

class SessionCommandHandlers:
    """
    Handlers for all session commands

    Handlers mutate the store's state only after every check passed, so a
    rejected command leaves the state untouched.
    """

    def __init__(self, store: 'BookingStateStore'):
        self.store = store

    def register(self, bus: 'MessageBus'):
        bus.register_command_handler(SelectCar, self.select_car)
        bus.register_command_handler(UpdateDraft, self.update_draft)
        bus.register_command_handler(ClearBooking, self.clear_booking)
        bus.register_command_handler(AcquireHold, self.acquire_hold)
        bus.register_command_handler(WarnHold, self.warn_hold)
        bus.register_command_handler(RequestHoldExtension, self.request_hold_extension)
        bus.register_command_handler(RenewHold, self.renew_hold)
        bus.register_command_handler(ReleaseHold, self.release_hold)
        bus.register_command_handler(ExpireHold, self.expire_hold)
        bus.register_command_handler(ConfirmHold, self.confirm_hold)
        bus.register_command_handler(ClearHold, self.clear_hold)
        bus.register_command_handler(SaveRetryPayload, self.save_retry_payload)
        bus.register_command_handler(ClearRetryPayload, self.clear_retry_payload)

    # --- draft ---

    def select_car(self, command: SelectCar) -> BookingDraft:
        store = self.store
        current = store._draft
        with store.unit_of_work() as uow:
            if current is not None and current.car_id == command.car_id:
                return current

            reset = current is not None
            if reset:
                logger.info(
                    f"Different car selected ({current.car_id} -> {command.car_id}), "
                    f"clearing booking draft"
                )
            store._draft = BookingDraft(car_id=command.car_id)
            uow.add_event(CarSelected(car_id=command.car_id, draft_reset=reset))
        return store._draft

    def update_draft(self, command: UpdateDraft) -> BookingDraft:
        store = self.store
        if store._draft is None:
            raise ValueError("No booking draft: select a car first")
        if 'car_id' in command.changes:
            raise ValueError("Use SelectCar to change the car of a draft")

        updated = store._draft.update(**command.changes)
        with store.unit_of_work():
            store._draft = updated
        return updated

    def clear_booking(self, command: ClearBooking):
        store = self.store
        with store.unit_of_work() as uow:
            had_draft = store._draft is not None
            store._draft = None
            if had_draft:
                uow.add_event(BookingDraftCleared(reason=command.reason))

    # --- hold ---

    def acquire_hold(self, command: AcquireHold) -> Hold:
        store = self.store
        current = store._hold
        if current is not None and not current.is_terminal:
            raise ValueError(
                f"Booking {current.booking_id} already holds car {current.car_id} "
                f"({current.status.value})"
            )
        if store._draft is None or store._draft.car_id != command.car_id:
            raise ValueError(f"No booking draft for car {command.car_id}")

        hold = Hold.acquire(
            booking_id=command.booking_id,
            car_id=command.car_id,
            dates=command.dates,
            expires_at=command.expires_at,
            room=command.room,
        )
        with store.unit_of_work() as uow:
            store._hold = hold
            uow.collect_events(hold)
        logger.info(f"Hold acquired: {hold!r}")
        return hold

    def _active_hold(self) -> Optional[Hold]:
        hold = self.store._hold
        if hold is None or hold.is_terminal:
            return None
        return hold

    def warn_hold(self, command: WarnHold) -> bool:
        hold = self._active_hold()
        if hold is None:
            logger.info("Hold warning received without an active local hold")
            return False
        with self.store.unit_of_work() as uow:
            hold.warn(command.seconds_remaining, command.expires_at)
            uow.collect_events(hold)
        return True

    def request_hold_extension(self, command: RequestHoldExtension) -> bool:
        hold = self._active_hold()
        if hold is None:
            return False
        with self.store.unit_of_work() as uow:
            hold.request_extension()
            uow.collect_events(hold)
        return True

    def renew_hold(self, command: RenewHold) -> bool:
        hold = self._active_hold()
        if hold is None:
            return False
        with self.store.unit_of_work() as uow:
            renewed = hold.renew(command.expires_at)
            uow.collect_events(hold)
        if not renewed:
            logger.warning(
                f"Ignored renewal of hold {hold.booking_id} to {command.expires_at}: "
                f"current expiry is {hold.expires_at}"
            )
        return renewed

    def release_hold(self, command: ReleaseHold) -> bool:
        hold = self._active_hold()
        if hold is None:
            return False
        with self.store.unit_of_work() as uow:
            hold.release()
            uow.collect_events(hold)
        return True

    def expire_hold(self, command: ExpireHold) -> bool:
        hold = self.store._hold
        if hold is None:
            return False
        with self.store.unit_of_work() as uow:
            expired = hold.expire()
            uow.collect_events(hold)
        return expired

    def confirm_hold(self, command: ConfirmHold) -> bool:
        hold = self._active_hold()
        if hold is None or hold.booking_id != command.booking_id:
            return False
        with self.store.unit_of_work() as uow:
            hold.confirm(command.payment_id)
            uow.collect_events(hold)
        return True

    def clear_hold(self, command: ClearHold):
        with self.store.unit_of_work():
            self.store._hold = None

    # --- retry payload ---

    def save_retry_payload(self, command: SaveRetryPayload):
        store = self.store
        with store.unit_of_work() as uow:
            store._retry_payload = command.payload
            uow.add_event(RetryPayloadSaved(booking_id=command.payload.booking_id))

    def clear_retry_payload(self, command: ClearRetryPayload):
        store = self.store
        previous = store._retry_payload
        with store.unit_of_work() as uow:
            store._retry_payload = None
            if previous is not None:
                uow.add_event(RetryPayloadCleared(booking_id=previous.booking_id))
