"""In-process event bus for domain events."""

import inspect
import logging
from typing import Any, Awaitable, Callable, List

from workflow_engine.rule_engine.models import SystemEvent

logger = logging.getLogger(__name__)

WILDCARD = "*"

Listener = Callable[[SystemEvent], Any | Awaitable[Any]]
Predicate = Callable[[SystemEvent], bool]


def event_filter(event_type: str = WILDCARD, entity_type: str | None = None) -> Predicate:
    """Build a predicate selecting events by type and, optionally, entity type.

    An event type of "*" selects every event type.
    """

    def predicate(event: SystemEvent) -> bool:
        if event_type != WILDCARD and event.type != event_type:
            return False
        return entity_type is None or event.entity_type == entity_type

    return predicate


class EventBus:
    """Publish/subscribe hub for SystemEvent notifications.

    Listeners may be plain functions or coroutine functions. ``publish``
    awaits every selected listener in subscription order, so a caller that
    awaits ``publish`` has seen all of its handlers finish.
    """

    def __init__(self) -> None:
        self._listeners: List[tuple[Listener, Predicate | None]] = []

    def subscribe(self, listener: Listener, predicate: Predicate | None = None) -> None:
        """Subscribe a listener.

        Args:
            listener: Callable receiving the event.
            predicate: Optional filter; the listener only sees events for
                which it returns True. None means every event.

        Raises:
            ValueError: If the listener is already subscribed.
        """
        if any(existing == listener for existing, _ in self._listeners):
            raise ValueError("Listener is already subscribed")
        self._listeners.append((listener, predicate))

    def on(
        self, event_type: str, listener: Listener, entity_type: str | None = None
    ) -> None:
        """Subscribe a listener to one event type ("*" for all)."""
        self.subscribe(listener, event_filter(event_type, entity_type))

    def unsubscribe(self, listener: Listener) -> None:
        """Unsubscribe a listener.

        Raises:
            ValueError: If the listener is not subscribed.
        """
        for index, (existing, _) in enumerate(self._listeners):
            if existing == listener:
                del self._listeners[index]
                return
        raise ValueError("Listener is not subscribed")

    def clear(self) -> None:
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)

    async def publish(self, event: SystemEvent) -> None:
        """Deliver an event to every listener whose predicate accepts it."""
        logger.debug(
            f"EventBus.publish: {event.type} on {event.entity_type}:{event.entity_id}"
        )

        for listener, predicate in list(self._listeners):
            if predicate is not None and not predicate(event):
                continue
            result = listener(event)
            if inspect.isawaitable(result):
                await result
