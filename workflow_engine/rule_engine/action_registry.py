"""Action registry mapping action type tags to handlers."""

from typing import Any, Awaitable, Callable

from workflow_engine.rule_engine.models import SystemEvent

# handler(params, event); failure is signalled by raising
ActionHandler = Callable[[dict[str, Any], SystemEvent], Awaitable[None] | None]


class ActionRegistry:
    """Registry of action handlers.

    Each rule action is a ``{"type": ..., "params": {...}}`` descriptor;
    the type tag selects the handler registered here.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._handlers: dict[str, ActionHandler] = {}

    def register(self, action_type: str, handler: ActionHandler) -> None:
        """Register a handler for an action type.

        Args:
            action_type: Tag used in rule action descriptors (e.g. "send_email")
            handler: Sync or async callable taking (params, event)

        Note:
            Registering the same type again replaces the previous handler.
        """
        if not action_type:
            raise ValueError("Action type must be a non-empty string")
        self._handlers[action_type] = handler

    def unregister(self, action_type: str) -> None:
        self._handlers.pop(action_type, None)

    def lookup(self, action_type: str) -> ActionHandler | None:
        """Look up the handler for an action type.

        Returns:
            The handler, or None if the type is unknown
        """
        return self._handlers.get(action_type)

    def list_types(self) -> list[str]:
        return sorted(self._handlers)

    def __contains__(self, action_type: str) -> bool:
        return action_type in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)
