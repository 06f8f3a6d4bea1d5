"""Repository layer for database operations.

This module provides repository classes for managing workflows, their
rules and the execution audit log.
"""

from workflow_engine.repositories.execution_log_repository import (
    ExecutionLogRepository,
)
from workflow_engine.repositories.workflow_repository import (
    WorkflowRepository,
    WorkflowRuleRepository,
)

__all__ = [
    "ExecutionLogRepository",
    "WorkflowRepository",
    "WorkflowRuleRepository",
]
