"""Repository for the append-only workflow execution audit log."""

from typing import Any, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workflow_engine.models.workflow import WorkflowExecutionLog


class ExecutionLogRepository:
    """Append-only access to WorkflowExecutionLog rows.

    No update or delete operation is provided.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        rule_id: str,
        event_type: str,
        entity_type: str,
        entity_id: str,
        success: bool,
        event_data: dict[str, Any],
        actions_run: Optional[list[dict[str, Any]]] = None,
        error: Optional[str] = None,
        matched: bool = True
    ) -> WorkflowExecutionLog:
        """Insert one execution log row.

        Returns:
            Created WorkflowExecutionLog instance
        """
        entry = WorkflowExecutionLog(
            rule_id=rule_id,
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            matched=matched,
            success=success,
            error=error,
            event_data=event_data,
            actions_run=actions_run
        )
        self.session.add(entry)
        await self.session.commit()
        await self.session.refresh(entry)
        return entry

    async def list_by_rule(self, rule_id: str) -> List[WorkflowExecutionLog]:
        """List execution logs of a rule, oldest first."""
        result = await self.session.execute(
            select(WorkflowExecutionLog)
            .where(WorkflowExecutionLog.rule_id == rule_id)
            .order_by(WorkflowExecutionLog.id.asc())
        )
        return list(result.scalars().all())

    async def list_all(self) -> List[WorkflowExecutionLog]:
        result = await self.session.execute(
            select(WorkflowExecutionLog).order_by(WorkflowExecutionLog.id.asc())
        )
        return list(result.scalars().all())
