"""Workflow automation engine.

Evaluates workflow rules, either on a cron schedule or in response to
domain events, and runs their actions with per-action failure isolation
and an execution audit log:

- Cron expression matching and next-run computation
- In-process event bus
- Action registry, executor and built-in actions
- Shared execution pipeline used by both trigger kinds
- Event-driven rule matcher and scheduler loop
"""

# Cron evaluation
from workflow_engine.rule_engine.cron import cron_matches, next_cron_run

# Event bus
from workflow_engine.rule_engine.event_bus import EventBus, event_filter

# Action registry and executor
from workflow_engine.rule_engine.action_registry import ActionHandler, ActionRegistry
from workflow_engine.rule_engine.action_executor import (
    ActionExecutor,
    ActionTimeoutError,
    UnknownActionError,
)
from workflow_engine.rule_engine.actions import (
    ConditionalBranchAction,
    WebhookAction,
    register_builtin_actions,
)

# Conditions
from workflow_engine.rule_engine.conditions import evaluate_conditions

# Store, audit log, pipeline
from workflow_engine.rule_engine.rule_store import DatabaseRuleStore, RuleStore
from workflow_engine.rule_engine.execution_logger import (
    DatabaseExecutionLogger,
    ExecutionLogger,
)
from workflow_engine.rule_engine.pipeline import ExecutionPipeline

# Matcher, scheduler, facade
from workflow_engine.rule_engine.rule_matcher import RuleMatcher
from workflow_engine.rule_engine.scheduler import Scheduler, TickResult
from workflow_engine.rule_engine.engine import WorkflowEngine

# Data models
from workflow_engine.rule_engine.models import (
    ActionDef,
    ActionOutcome,
    ActionStatus,
    EventSource,
    ExecutionRecord,
    RuleDef,
    SystemEvent,
)

__all__ = [
    "cron_matches",
    "next_cron_run",
    "EventBus",
    "event_filter",
    "ActionHandler",
    "ActionRegistry",
    "ActionExecutor",
    "ActionTimeoutError",
    "UnknownActionError",
    "ConditionalBranchAction",
    "WebhookAction",
    "register_builtin_actions",
    "evaluate_conditions",
    "DatabaseRuleStore",
    "RuleStore",
    "DatabaseExecutionLogger",
    "ExecutionLogger",
    "ExecutionPipeline",
    "RuleMatcher",
    "Scheduler",
    "TickResult",
    "WorkflowEngine",
    "ActionDef",
    "ActionOutcome",
    "ActionStatus",
    "EventSource",
    "ExecutionRecord",
    "RuleDef",
    "SystemEvent",
]
