"""Built-in action handlers.

Domain actions (emails, notifications, document status changes, ...) are
registered by the host application; the handlers here only depend on the
engine itself and on HTTP.
"""

import logging
from typing import TYPE_CHECKING, Any, Callable

import httpx

from workflow_engine.rule_engine.conditions import ConditionEvaluator, evaluate_conditions
from workflow_engine.rule_engine.models import SystemEvent, parse_actions

if TYPE_CHECKING:
    from workflow_engine.rule_engine.action_executor import ActionExecutor
    from workflow_engine.rule_engine.action_registry import ActionRegistry

logger = logging.getLogger(__name__)


class ConditionalBranchAction:
    """Run one of two nested action lists depending on a condition.

    Params::

        {
            "condition": {"field": "payload.to", "op": "eq", "value": "approved"},
            "true_actions": [{"type": ..., "params": {...}}, ...],
            "false_actions": [...]
        }

    Nested actions run in order; the first failure propagates and fails the
    branch action as a whole.
    """

    def __init__(
        self,
        executor: "ActionExecutor",
        evaluator: ConditionEvaluator = evaluate_conditions,
    ):
        self.executor = executor
        self.evaluator = evaluator

    async def __call__(self, params: dict[str, Any], event: SystemEvent) -> None:
        condition = params.get("condition")
        if not condition:
            raise ValueError("conditional_branch requires a condition")

        result = self.evaluator(condition, event)
        key = "true_actions" if result else "false_actions"
        actions = parse_actions(params.get(key))

        logger.info(
            f"[Action:conditional_branch] condition -> {result} ({len(actions)} actions)"
        )

        for action in actions:
            await self.executor.execute(action.type, action.params, event)


class WebhookAction:
    """POST the event (or ``params.body``) to ``params.url``.

    Params: ``{"url": str, "headers": {...}?, "body": Any?}``. Non-2xx
    responses raise.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ):
        self.timeout = timeout
        self.client_factory = client_factory or (
            lambda: httpx.AsyncClient(timeout=self.timeout)
        )

    async def __call__(self, params: dict[str, Any], event: SystemEvent) -> None:
        url = params.get("url")
        if not url:
            raise ValueError("webhook requires url")

        headers = {"Content-Type": "application/json", **(params.get("headers") or {})}
        body = params.get("body") or event.to_dict()

        async with self.client_factory() as client:
            response = await client.post(url, json=body, headers=headers)

        if not response.is_success:
            raise RuntimeError(
                f"Webhook failed: {response.status_code} {response.reason_phrase}"
            )

        logger.info(f"[Action:webhook] POST {url} -> {response.status_code}")


def register_builtin_actions(
    registry: "ActionRegistry",
    executor: "ActionExecutor",
    evaluator: ConditionEvaluator = evaluate_conditions,
    webhook_timeout: float = 10.0,
) -> None:
    """Register the built-in handlers under their type tags."""
    registry.register("conditional_branch", ConditionalBranchAction(executor, evaluator))
    registry.register("webhook", WebhookAction(timeout=webhook_timeout))
