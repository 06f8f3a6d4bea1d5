"""Best-effort audit trail of rule executions."""

import logging
from typing import Any, Protocol

from workflow_engine.repositories.execution_log_repository import ExecutionLogRepository
from workflow_engine.rule_engine.models import ExecutionRecord
from workflow_engine.rule_engine.rule_store import session_scope

logger = logging.getLogger(__name__)


class ExecutionLogger(Protocol):
    async def record(self, record: ExecutionRecord) -> None:
        """Persist one execution attempt. Must never raise."""
        ...


class DatabaseExecutionLogger:
    """Writes one WorkflowExecutionLog row per execution attempt.

    Write failures are logged and dropped: the audit row is not
    transactional with the side effects of the rule's actions.
    """

    def __init__(self, session_provider: Any):
        self.session_provider = session_provider

    async def record(self, record: ExecutionRecord) -> None:
        try:
            async with session_scope(self.session_provider) as session:
                await ExecutionLogRepository(session).create(
                    rule_id=record.rule_id,
                    event_type=record.event.type,
                    entity_type=record.event.entity_type,
                    entity_id=record.event.entity_id,
                    matched=record.matched,
                    success=record.success,
                    error=record.error,
                    event_data=record.event.to_dict(),
                    actions_run=record.actions_run_dicts() or None,
                )
        except Exception:
            logger.exception(f"Failed to log execution of rule {record.rule_id}")
