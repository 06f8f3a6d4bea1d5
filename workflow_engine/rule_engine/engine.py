"""Workflow engine facade wiring store, bus, actions, matcher and scheduler."""

import logging
from typing import Any

from workflow_engine.rule_engine.action_executor import ActionExecutor
from workflow_engine.rule_engine.action_registry import ActionRegistry
from workflow_engine.rule_engine.actions import register_builtin_actions
from workflow_engine.rule_engine.conditions import ConditionEvaluator, evaluate_conditions
from workflow_engine.rule_engine.event_bus import EventBus
from workflow_engine.rule_engine.execution_logger import (
    DatabaseExecutionLogger,
    ExecutionLogger,
)
from workflow_engine.rule_engine.pipeline import ExecutionPipeline
from workflow_engine.rule_engine.rule_matcher import RuleMatcher
from workflow_engine.rule_engine.rule_store import DatabaseRuleStore, RuleStore
from workflow_engine.rule_engine.scheduler import (
    DEFAULT_INTERVAL_SECONDS,
    Clock,
    Scheduler,
    TickResult,
    utcnow,
)

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """Owns one instance of every engine component.

    Both the scheduler and the event matcher share the same executor and
    execution logger.
    """

    def __init__(
        self,
        rule_store: RuleStore,
        execution_logger: ExecutionLogger,
        event_bus: EventBus | None = None,
        action_registry: ActionRegistry | None = None,
        condition_evaluator: ConditionEvaluator = evaluate_conditions,
        action_timeout: float | None = None,
        webhook_timeout: float = 10.0,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        clock: Clock = utcnow,
    ):
        self.rule_store = rule_store
        self.execution_logger = execution_logger
        self.event_bus = event_bus or EventBus()
        self.action_registry = action_registry or ActionRegistry()
        self.executor = ActionExecutor(self.action_registry, timeout=action_timeout)

        # host-registered handlers win over built-ins of the same name
        builtins = ActionRegistry()
        register_builtin_actions(
            builtins, self.executor, condition_evaluator, webhook_timeout=webhook_timeout
        )
        for action_type in builtins.list_types():
            if action_type not in self.action_registry:
                self.action_registry.register(action_type, builtins.lookup(action_type))

        self.pipeline = ExecutionPipeline(self.executor, self.execution_logger)
        self.matcher = RuleMatcher(self.rule_store, self.pipeline, condition_evaluator)
        self.scheduler = Scheduler(
            self.rule_store, self.pipeline, interval_seconds=interval_seconds, clock=clock
        )
        self._attached = False

    @classmethod
    def from_session_provider(cls, session_provider: Any, **kwargs) -> "WorkflowEngine":
        """Build an engine whose store and audit log live in the database."""
        return cls(
            rule_store=DatabaseRuleStore(session_provider),
            execution_logger=DatabaseExecutionLogger(session_provider),
            **kwargs,
        )

    def attach(self) -> None:
        """Subscribe the rule matcher to every event on the bus."""
        if not self._attached:
            self.event_bus.subscribe(self.matcher.on_event)
            self._attached = True

    def detach(self) -> None:
        if self._attached:
            self.event_bus.unsubscribe(self.matcher.on_event)
            self._attached = False

    async def start(self, run_scheduler: bool = True) -> None:
        """Attach the matcher and, optionally, start the scheduler loop."""
        self.attach()
        if run_scheduler:
            await self.scheduler.start()
        logger.info(
            f"Workflow engine started with actions: {', '.join(self.action_registry.list_types())}"
        )

    async def stop(self) -> None:
        await self.scheduler.stop()
        self.detach()
        logger.info("Workflow engine stopped")

    async def initialize_scheduled_rules(self) -> int:
        return await self.scheduler.initialize_scheduled_rules()

    async def process_scheduled_rules(self) -> TickResult:
        return await self.scheduler.process_scheduled_rules()
