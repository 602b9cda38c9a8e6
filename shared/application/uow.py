"""
Unit of Work Pattern

Wraps one state change of a booking session: domain events raised while
the change runs are only published after the new state has been persisted.
"""

from abc import ABC, abstractmethod
from typing import Callable, List
import logging

from shared.application.message_bus import MessageBus
from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):
    """Abstract Unit of Work pattern"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        """Make the change durable"""

    @abstractmethod
    def rollback(self):
        """Discard the change"""

    @abstractmethod
    def collect_events(self, aggregate):
        """Collect events from aggregate root"""


class SessionUnitOfWork(AbstractUnitOfWork):
    """
    Unit of Work for a client booking session

    Usage:
        with SessionUnitOfWork(bus, persist=store.save) as uow:
            hold.warn(30)
            uow.collect_events(hold)
        # state persisted, then HoldWarned published
    """

    def __init__(self, bus: MessageBus, persist: Callable[[], None]):
        self._bus = bus
        self._persist = persist
        self._events: List[DomainEvent] = []

    def add_event(self, event: DomainEvent):
        """Record an event that is not owned by an aggregate"""
        self._events.append(event)

    def commit(self):
        """
        Persist, then publish

        If persisting fails the events are dropped and the error propagates.
        """
        events = self._events.copy()
        self._events.clear()

        self._persist()
        logger.debug(f"Committed session change with {len(events)} events")

        if events:
            self._publish_events(events)

    def rollback(self):
        if self._events:
            logger.warning(f"Rolling back session change, discarding {len(self._events)} events")
        self._events.clear()

    def collect_events(self, aggregate):
        """
        Move events from the aggregate into this unit of work
        """
        if aggregate is None or not hasattr(aggregate, 'events'):
            return
        new_events = aggregate.events
        if new_events:
            self._events.extend(new_events)
            aggregate.clear_events()
            logger.debug(
                f"Collected {len(new_events)} events from "
                f"{aggregate.__class__.__name__} (ID: {aggregate.id})"
            )

    def _publish_events(self, events: List[DomainEvent]):
        logger.debug(f"Publishing {len(events)} domain events after commit")
        self._bus.publish_events(events)
