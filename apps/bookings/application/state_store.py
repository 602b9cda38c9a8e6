"""
Booking State Store

Single owner of a client's booking state: the draft, the active hold and
the persisted payment retry payload. State changes only through
`dispatch(command)`; readers get immutable snapshots.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from decimal import InvalidOperation
from typing import Any, Callable, Optional

from shared.application.message_bus import MessageBus
from shared.application.uow import SessionUnitOfWork
from shared.infrastructure.encryption import DecryptionError, decrypt_json, encrypt_json
from shared.infrastructure.storage import SessionStorage
from apps.bookings.application.command_handlers import SessionCommandHandlers
from apps.bookings.domain import events as booking_events
from apps.bookings.domain.entities import BookingDraft, Hold
from apps.payments.domain.entities import RetryPayload

logger = logging.getLogger(__name__)

DRAFT_KEY = "draft"
RETRY_PAYLOAD_KEY = "retry_payload"

ALL_EVENT_TYPES = (
    booking_events.HoldAcquired,
    booking_events.HoldWarned,
    booking_events.HoldExtensionRequested,
    booking_events.HoldRenewed,
    booking_events.HoldReleased,
    booking_events.HoldExpired,
    booking_events.HoldConfirmed,
    booking_events.CarSelected,
    booking_events.BookingDraftCleared,
    booking_events.RetryPayloadSaved,
    booking_events.RetryPayloadCleared,
)


@dataclass(frozen=True)
class BookingState:
    draft: Optional[BookingDraft] = None
    hold: Optional[Hold] = None
    retry_payload: Optional[RetryPayload] = None


class BookingStateStore:
    """
    Booking state for one client session

    The draft and the retry payload survive navigation through the session
    storage (the retry payload encrypted, it carries billing details). The
    hold is never restored: after a reload the server's channel events are
    the only source of truth about it.
    """

    def __init__(self, storage: SessionStorage):
        self._storage = storage
        self._draft: Optional[BookingDraft] = self._restore_draft()
        self._hold: Optional[Hold] = None
        self._retry_payload: Optional[RetryPayload] = self._restore_retry_payload()

        self._commands = MessageBus("booking-store")
        self._events = MessageBus("booking-store-events")
        SessionCommandHandlers(self).register(self._commands)

    @property
    def client_id(self) -> str:
        return self._storage.client_id

    # --- reading ---

    @property
    def state(self) -> BookingState:
        return BookingState(
            draft=self._draft,
            hold=copy.deepcopy(self._hold),
            retry_payload=self._retry_payload,
        )

    @property
    def draft(self) -> Optional[BookingDraft]:
        return self._draft

    @property
    def hold(self) -> Optional[Hold]:
        return copy.deepcopy(self._hold)

    @property
    def retry_payload(self) -> Optional[RetryPayload]:
        return self._retry_payload

    # --- writing ---

    def dispatch(self, command: Any) -> Any:
        return self._commands.handle_command(command)

    def subscribe(self, listener: Callable[[Any], None], *event_types) -> Callable[[], None]:
        """
        Listen to domain events; all session events when no type is given

        Returns a callable that removes the listener.
        """
        removers = [
            self._events.register_event_handler(event_type, listener)
            for event_type in (event_types or ALL_EVENT_TYPES)
        ]

        def unsubscribe():
            for remove in removers:
                remove()

        return unsubscribe

    def unit_of_work(self) -> SessionUnitOfWork:
        return SessionUnitOfWork(self._events, persist=self._save)

    # --- persistence ---

    def _save(self):
        if self._draft is None:
            self._storage.delete(DRAFT_KEY)
        else:
            self._storage.set(DRAFT_KEY, self._draft.to_dict())

        if self._retry_payload is None:
            self._storage.delete(RETRY_PAYLOAD_KEY)
        else:
            self._storage.set(RETRY_PAYLOAD_KEY, encrypt_json(self._retry_payload.to_request()))

    def _restore_draft(self) -> Optional[BookingDraft]:
        data = self._storage.get(DRAFT_KEY)
        if not data:
            return None
        try:
            return BookingDraft.from_dict(data)
        except (TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable booking draft for client {self.client_id}: {e}")
            return None

    def _restore_retry_payload(self) -> Optional[RetryPayload]:
        stored = self._storage.get(RETRY_PAYLOAD_KEY)
        if not stored:
            return None
        try:
            return RetryPayload.from_request(decrypt_json(stored))
        except (DecryptionError, InvalidOperation, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable retry payload for client {self.client_id}: {e}")
            return None
