"""
Central domain event bus (Mediator Pattern).
"""
import asyncio
import logging
from collections import defaultdict
from typing import Awaitable, Callable, List, Type, Dict

from sshmount.core.events.domain_event import DomainEvent

# An event handler is an async function that takes a DomainEvent and returns None
EventHandler = Callable[[DomainEvent], Awaitable[None]]


class DomainEventBus:
    """
    An asynchronous event bus for domain event propagation.

    Handlers subscribed to a base class receive every subclass of it, so the
    presentation layer can subscribe once to `MountEvent` and get the whole
    tagged union. If one handler fails, the error is logged and the other
    handlers still run.

    `publish` returns only when every handler has finished. Publishers that
    await it therefore deliver their events strictly in order.
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        """
        Subscribes a handler to an event type and all of its subclasses.

        Args:
            event_type: The class of the domain event to subscribe to.
            handler: The asynchronous function to call when the event is published.
        """
        self._handlers[event_type].append(handler)
        logging.debug(f"Handler {_handler_name(handler)} subscribed to {event_type.__name__}")

    def unsubscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> bool:
        """Remove a handler. Returns False if it was not subscribed."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def handlers_for(self, event_type: Type[DomainEvent]) -> List[EventHandler]:
        """All handlers that should receive an event of `event_type`, most specific first."""
        result: List[EventHandler] = []
        for cls in event_type.__mro__:
            for handler in self._handlers.get(cls, []):
                if handler not in result:
                    result.append(handler)
        return result

    async def publish(self, event: DomainEvent) -> None:
        """
        Publishes a domain event, calling all subscribed handlers.

        Executes all handlers concurrently and waits for all of them. If a
        handler raises an exception, it is logged, and other handlers
        continue to execute.

        Args:
            event: The domain event instance to publish.
        """
        event_type = type(event)
        handlers = self.handlers_for(event_type)

        if not handlers:
            logging.debug(f"No handlers for event {event_type.__name__}")
            return

        logging.debug(f"Publishing {event_type.__name__} to {len(handlers)} handler(s)")

        await asyncio.gather(*(self._safe_execute(handler, event) for handler in handlers))

    async def _safe_execute(self, handler: EventHandler, event: DomainEvent) -> None:
        """
        Executes a single event handler safely, catching and logging any exceptions.
        """
        try:
            await handler(event)
        except Exception as e:
            logging.error(
                f"Unhandled exception in handler '{_handler_name(handler)}' for event "
                f"'{type(event).__name__}': {e}",
                exc_info=True  # Include stack trace in the log
            )


def _handler_name(handler: EventHandler) -> str:
    return getattr(handler, "__name__", repr(handler))
