"""Rule store: the engine's view of persisted workflow rules."""

import inspect
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Protocol

from workflow_engine.repositories.workflow_repository import WorkflowRuleRepository
from workflow_engine.rule_engine.models import RuleDef


class RuleStore(Protocol):
    async def find_due_scheduled_rules(self, now: datetime) -> list[RuleDef]:
        """Active cron rules with next_run_at <= now, workflow flag included."""
        ...

    async def find_uninitialized_scheduled_rules(self) -> list[RuleDef]:
        """Active cron rules that have no next_run_at yet."""
        ...

    async def set_next_run_at(self, rule_id: str, next_run_at: datetime) -> None:
        ...

    async def find_event_rules(self, entity_type: str, trigger_event: str) -> list[RuleDef]:
        """Active event rules for an entity type and event, priority descending."""
        ...


@asynccontextmanager
async def session_scope(session_provider: Any):
    """Open a session from a factory or an async generator dependency."""
    if inspect.isasyncgenfunction(session_provider):
        async for session in session_provider():
            yield session
    else:
        async with session_provider() as session:
            yield session


class DatabaseRuleStore:
    """RuleStore backed by WorkflowRuleRepository.

    Every call opens its own short-lived session, so the store can be used
    concurrently from the scheduler task and from request handlers.
    """

    def __init__(self, session_provider: Any):
        """Initialize the store.

        Args:
            session_provider: Callable returning an AsyncSession context
                manager (e.g. an async_sessionmaker), or an async generator
                function yielding a session
        """
        self.session_provider = session_provider

    async def find_due_scheduled_rules(self, now: datetime) -> list[RuleDef]:
        async with session_scope(self.session_provider) as session:
            rules = await WorkflowRuleRepository(session).list_due_scheduled(now)
            return [RuleDef.from_orm(rule) for rule in rules]

    async def find_uninitialized_scheduled_rules(self) -> list[RuleDef]:
        async with session_scope(self.session_provider) as session:
            rules = await WorkflowRuleRepository(session).list_uninitialized_scheduled()
            return [RuleDef.from_orm(rule) for rule in rules]

    async def set_next_run_at(self, rule_id: str, next_run_at: datetime) -> None:
        """Persist next_run_at.

        Raises:
            LookupError: If the rule no longer exists
        """
        async with session_scope(self.session_provider) as session:
            updated = await WorkflowRuleRepository(session).set_next_run_at(
                rule_id, next_run_at
            )
        if not updated:
            raise LookupError(f"Rule {rule_id} not found")

    async def find_event_rules(self, entity_type: str, trigger_event: str) -> list[RuleDef]:
        async with session_scope(self.session_provider) as session:
            rules = await WorkflowRuleRepository(session).list_for_event(
                entity_type, trigger_event
            )
            return [RuleDef.from_orm(rule) for rule in rules]
