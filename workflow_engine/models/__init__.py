# Database models
from workflow_engine.models.workflow import (
    Workflow,
    WorkflowExecutionLog,
    WorkflowRule,
)

__all__ = [
    "Workflow",
    "WorkflowRule",
    "WorkflowExecutionLog",
]
