"""Repository classes for workflow and workflow rule database operations."""

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from workflow_engine.models.workflow import Workflow, WorkflowRule

WILDCARD_ENTITY_TYPE = "*"


class WorkflowRepository:
    """Repository for Workflow database operations."""

    def __init__(self, session: AsyncSession):
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def create(
        self,
        name: str,
        entity_type: str,
        description: Optional[str] = None,
        priority: int = 0,
        is_active: bool = True
    ) -> Workflow:
        """Create a new workflow.

        Args:
            name: Workflow name
            entity_type: Entity type the workflow's rules bind to ("*" for any)
            description: Optional description
            priority: Workflow priority (default 0)
            is_active: Whether the workflow is active

        Returns:
            Created Workflow instance
        """
        workflow = Workflow(
            name=name,
            entity_type=entity_type,
            description=description,
            priority=priority,
            is_active=is_active
        )
        self.session.add(workflow)
        await self.session.commit()
        await self.session.refresh(workflow)
        return workflow

    async def get_by_id(self, workflow_id: str) -> Optional[Workflow]:
        result = await self.session.execute(
            select(Workflow).where(Workflow.id == workflow_id)
        )
        return result.scalar_one_or_none()

    async def set_active(self, workflow_id: str, is_active: bool) -> Optional[Workflow]:
        """Activate or deactivate a workflow without touching its rules.

        Returns:
            Updated Workflow or None if not found
        """
        workflow = await self.get_by_id(workflow_id)
        if workflow is None:
            return None
        workflow.is_active = is_active
        await self.session.commit()
        await self.session.refresh(workflow)
        return workflow


class WorkflowRuleRepository:
    """Repository for WorkflowRule database operations.

    Besides plain creation and lookup it provides the three queries the
    scheduler needs (due rules, uninitialised rules, next-run update) and
    the candidate lookup used by the event matcher.
    """

    def __init__(self, session: AsyncSession):
        """Initialize the repository with a database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def create(
        self,
        workflow_id: str,
        name: str,
        actions: list[dict[str, Any]],
        trigger_event: Optional[str] = None,
        conditions: Any = None,
        cron_expression: Optional[str] = None,
        priority: int = 0,
        stop_on_match: bool = False,
        is_active: bool = True,
        next_run_at: Optional[datetime] = None
    ) -> WorkflowRule:
        """Create a new rule.

        A rule is either schedule-driven (cron_expression) or event-driven
        (trigger_event), never both.

        Raises:
            ValueError: If neither or both triggers are given
        """
        if (cron_expression is None) == (trigger_event is None):
            raise ValueError(
                "A rule needs exactly one of cron_expression or trigger_event"
            )

        rule = WorkflowRule(
            workflow_id=workflow_id,
            name=name,
            actions=actions,
            trigger_event=trigger_event,
            conditions=conditions,
            cron_expression=cron_expression,
            priority=priority,
            stop_on_match=stop_on_match,
            is_active=is_active,
            next_run_at=next_run_at
        )
        self.session.add(rule)
        await self.session.commit()
        await self.session.refresh(rule)
        return rule

    async def get_by_id(self, rule_id: str) -> Optional[WorkflowRule]:
        """Get a rule by ID, with its workflow loaded.

        Args:
            rule_id: Rule ID

        Returns:
            WorkflowRule instance or None
        """
        result = await self.session.execute(
            select(WorkflowRule)
            .options(selectinload(WorkflowRule.workflow))
            .where(WorkflowRule.id == rule_id)
        )
        return result.scalar_one_or_none()

    async def list_due_scheduled(self, now: datetime) -> List[WorkflowRule]:
        """List active scheduled rules whose next run has arrived.

        The parent workflow is loaded but not filtered on: callers decide
        what an inactive workflow means.

        Args:
            now: Reference instant

        Returns:
            Due rules ordered by next_run_at ascending
        """
        result = await self.session.execute(
            select(WorkflowRule)
            .options(selectinload(WorkflowRule.workflow))
            .where(
                WorkflowRule.is_active == True,
                WorkflowRule.cron_expression.is_not(None),
                WorkflowRule.next_run_at <= now,
            )
            .order_by(WorkflowRule.next_run_at.asc(), WorkflowRule.id.asc())
        )
        return list(result.scalars().all())

    async def list_uninitialized_scheduled(self) -> List[WorkflowRule]:
        """List active scheduled rules that have never been given a next run."""
        result = await self.session.execute(
            select(WorkflowRule)
            .options(selectinload(WorkflowRule.workflow))
            .where(
                WorkflowRule.is_active == True,
                WorkflowRule.cron_expression.is_not(None),
                WorkflowRule.next_run_at.is_(None),
            )
        )
        return list(result.scalars().all())

    async def list_for_event(
        self, entity_type: str, trigger_event: str
    ) -> List[WorkflowRule]:
        """List active event-driven rules bound to an entity type and event.

        Only rules of active workflows are returned. Workflows with entity
        type "*" match every entity type.

        Returns:
            Candidate rules ordered by priority descending
        """
        result = await self.session.execute(
            select(WorkflowRule)
            .join(WorkflowRule.workflow)
            .options(selectinload(WorkflowRule.workflow))
            .where(
                WorkflowRule.is_active == True,
                WorkflowRule.trigger_event == trigger_event,
                Workflow.is_active == True,
                or_(
                    Workflow.entity_type == entity_type,
                    Workflow.entity_type == WILDCARD_ENTITY_TYPE,
                ),
            )
            .order_by(
                WorkflowRule.priority.desc(),
                Workflow.priority.desc(),
                WorkflowRule.created_at.asc(),
            )
        )
        return list(result.scalars().all())

    async def set_next_run_at(self, rule_id: str, next_run_at: datetime) -> bool:
        """Persist a rule's next run time.

        Returns:
            True if a row was updated, False if the rule does not exist
        """
        result = await self.session.execute(
            update(WorkflowRule)
            .where(WorkflowRule.id == rule_id)
            .values(next_run_at=next_run_at)
        )
        await self.session.commit()
        return result.rowcount > 0
