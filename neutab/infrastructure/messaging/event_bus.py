"""In-memory event bus connecting storage and preference writers to the sync agent.

Publishers (storage adapters, the settings UI bridge) announce ``StorageChanged``
and ``SyncPreferencesChanged``; the agent subscribes. Handlers run in
subscription order on the publishing task.
"""

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from neutab.domain.events.sync_events import DomainEvent

logger = logging.getLogger(__name__)

TEvent = TypeVar("TEvent", bound=DomainEvent)

EventHandler = Callable[[TEvent], Awaitable[None]]


class EventBus:
    """Simple in-memory event bus for domain events.

    Example:
        ```python
        bus = EventBus()

        async def on_change(event: StorageChanged) -> None:
            ...

        bus.subscribe(StorageChanged, on_change)
        await bus.publish(StorageChanged(area="local", changed_keys={"icon_42"}))
        ```

    """

    def __init__(self) -> None:
        self._handlers: dict[type, list[EventHandler[Any]]] = defaultdict(list)

    def subscribe(self, event_type: type[TEvent], handler: EventHandler[TEvent]) -> None:
        """Subscribe a handler to a specific event type.

        Args:
            event_type: The type of event to subscribe to (e.g., StorageChanged).
            handler: Async function to call when event is published.

        """
        self._handlers[event_type].append(handler)
        logger.debug(
            "event_handler_subscribed",
            extra={
                "event_type": event_type.__name__,
                "handler": _handler_name(handler),
                "total_handlers": len(self._handlers[event_type]),
            },
        )

    def unsubscribe(self, event_type: type[TEvent], handler: EventHandler[TEvent]) -> None:
        """Unsubscribe a handler from an event type."""
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                logger.debug(
                    "event_handler_unsubscribed",
                    extra={"event_type": event_type.__name__, "handler": _handler_name(handler)},
                )
            except ValueError:
                logger.warning(
                    "event_handler_not_found",
                    extra={"event_type": event_type.__name__, "handler": _handler_name(handler)},
                )

    async def publish(self, event: DomainEvent) -> None:
        """Publish an event to all subscribed handlers.

        If a handler fails, the error is logged and the remaining handlers still run.

        Args:
            event: The domain event to publish.

        """
        event_type = type(event)
        handlers = list(self._handlers.get(event_type, []))

        if not handlers:
            logger.debug("event_published_no_handlers", extra={"event_type": event_type.__name__})
            return

        logger.debug(
            "event_published",
            extra={"event_type": event_type.__name__, "handler_count": len(handlers)},
        )

        for handler in handlers:
            try:
                await handler(event)
            except Exception as exc:
                logger.exception(
                    "event_handler_failed",
                    extra={
                        "event_type": event_type.__name__,
                        "handler": _handler_name(handler),
                        "error": str(exc),
                    },
                )

    def clear_handlers(self, event_type: type[TEvent] | None = None) -> None:
        """Clear handlers for a specific event type or all handlers."""
        if event_type is not None:
            self._handlers.pop(event_type, None)
        else:
            self._handlers.clear()

    def get_handler_count(self, event_type: type[TEvent]) -> int:
        """Get the number of handlers subscribed to an event type."""
        return len(self._handlers.get(event_type, []))


def _handler_name(handler: Callable[..., Any]) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)
