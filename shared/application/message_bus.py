"""
Message Bus

Routes commands and events to their handlers.

- Commands: one handler per command type (1:1), result returned to caller
- Events: any number of handlers per event type (1:N), failures isolated

Each booking session owns its own buses (store commands, channel events);
there is no process-wide instance.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Type, Union

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Union[None, Awaitable[None]]]


def _handler_name(handler) -> str:
    return getattr(handler, '__qualname__', None) or repr(handler)


class MessageBus:
    """
    Message bus for commands and events

    Event handlers may be plain callables or coroutine functions. The sync
    `publish_events` only accepts plain callables; `dispatch_events` awaits
    coroutine handlers in registration order.
    """

    def __init__(self, name: str = 'bus'):
        self.name = name
        self._event_handlers: Dict[Type, List[EventHandler]] = {}
        self._command_handlers: Dict[Type, Callable[[Any], Any]] = {}

    def register_event_handler(self, event_type: Type, handler: EventHandler) -> Callable[[], None]:
        """
        Register an event handler

        Returns a callable that removes the registration again.
        """
        self._event_handlers.setdefault(event_type, []).append(handler)
        logger.debug(f"[{self.name}] Registered event handler for {event_type.__name__}")

        def unregister():
            self.unregister_event_handler(event_type, handler)

        return unregister

    def unregister_event_handler(self, event_type: Type, handler: EventHandler):
        handlers = self._event_handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            logger.debug(f"[{self.name}] Unregistered event handler for {event_type.__name__}")

    def has_handlers(self, event_type: Type) -> bool:
        return bool(self._event_handlers.get(event_type))

    def register_command_handler(self, command_type: Type, handler: Callable[[Any], Any]):
        """
        Register a command handler

        Only one handler can be registered per command type.
        """
        if command_type in self._command_handlers:
            raise ValueError(
                f"Handler for {command_type.__name__} is already registered. "
                "Commands can have only one handler."
            )
        self._command_handlers[command_type] = handler
        logger.debug(f"[{self.name}] Registered command handler for {command_type.__name__}")

    def handle_command(self, command: Any) -> Any:
        """
        Handle a command

        Returns the result of the command handler. Errors are logged and
        re-raised to the caller.
        """
        command_type = type(command)
        handler = self._command_handlers.get(command_type)

        if not handler:
            raise ValueError(f"No handler registered for command {command_type.__name__}")

        logger.debug(f"[{self.name}] Handling command: {command_type.__name__}")
        try:
            return handler(command)
        except Exception as e:
            logger.error(f"[{self.name}] Error handling command {command_type.__name__}: {e}")
            raise

    def _handlers_for(self, event) -> List[EventHandler]:
        # Copy: handlers may unregister themselves while being called
        return list(self._event_handlers.get(type(event), []))

    def publish_events(self, events: Iterable[Any]):
        """
        Publish events to synchronous handlers

        Errors in handlers are logged but don't stop other handlers.
        """
        for event in events:
            event_type = type(event)
            for handler in self._handlers_for(event):
                try:
                    result = handler(event)
                    if inspect.isawaitable(result):
                        result.close()
                        raise TypeError("coroutine handlers need dispatch_events()")
                except Exception as e:
                    logger.error(
                        f"[{self.name}] Error in event handler {_handler_name(handler)} "
                        f"for event {event_type.__name__}: {e}",
                        exc_info=True
                    )

    async def dispatch_events(self, events: Iterable[Any]):
        """
        Deliver events to handlers, awaiting coroutine handlers

        Errors in handlers are logged but don't stop other handlers.
        """
        for event in events:
            event_type = type(event)
            handlers = self._handlers_for(event)
            if not handlers:
                logger.debug(f"[{self.name}] No handlers registered for event {event_type.__name__}")
                continue

            for handler in handlers:
                try:
                    result = handler(event)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    logger.error(
                        f"[{self.name}] Error in event handler {_handler_name(handler)} "
                        f"for event {event_type.__name__}: {e}",
                        exc_info=True
                    )
