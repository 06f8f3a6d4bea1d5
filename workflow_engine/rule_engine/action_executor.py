"""Action executor dispatching action descriptors to registered handlers."""

import asyncio
import inspect
import logging
from typing import Any

from workflow_engine.rule_engine.action_registry import ActionRegistry
from workflow_engine.rule_engine.models import SystemEvent

logger = logging.getLogger(__name__)


class UnknownActionError(LookupError):
    """Raised when no handler is registered for an action type."""

    def __init__(self, action_type: str):
        super().__init__(f"Unknown action type: {action_type}")
        self.action_type = action_type


class ActionTimeoutError(TimeoutError):
    """Raised when an action handler exceeds the configured time bound."""

    def __init__(self, action_type: str, timeout: float):
        super().__init__(f"Action {action_type} timed out after {timeout:g}s")
        self.action_type = action_type
        self.timeout = timeout


class ActionExecutor:
    """Executes one action at a time on behalf of the rule engine.

    ``execute`` returns on success and raises on failure. The optional
    per-action time bound is enforced here.
    """

    def __init__(self, registry: ActionRegistry, timeout: float | None = None):
        """Initialize the executor.

        Args:
            registry: ActionRegistry containing the action handlers
            timeout: Seconds allowed per action; None disables the bound
        """
        self.registry = registry
        self.timeout = timeout

    async def execute(
        self, action_type: str, params: dict[str, Any], event: SystemEvent
    ) -> None:
        """Execute a single action.

        Args:
            action_type: Registered action type tag
            params: Action parameters from the rule
            event: The event that triggered the rule

        Raises:
            UnknownActionError: If the action type is not registered
            ActionTimeoutError: If the handler exceeds the time bound
            Exception: Whatever the handler raises
        """
        handler = self.registry.lookup(action_type)
        if handler is None:
            logger.warning(f"No handler registered for action type '{action_type}'")
            raise UnknownActionError(action_type)

        call = self._invoke(handler, params, event)

        if self.timeout is None:
            await call
            return

        try:
            await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise ActionTimeoutError(action_type, self.timeout) from None

    @staticmethod
    async def _invoke(handler: Any, params: dict[str, Any], event: SystemEvent) -> None:
        result = handler(params, event)
        if inspect.isawaitable(result):
            await result
