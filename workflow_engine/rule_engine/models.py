"""Shared data models for the workflow rule engine."""

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from workflow_engine.models.workflow import WorkflowRule

SCHEDULED_EVENT_TYPE = "scheduled:rule_triggered"
SCHEDULED_EVENT_ACTION = "scheduled_execution"


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


class EventSource(Enum):
    DOMAIN = "domain"
    SCHEDULED = "scheduled"


class ActionStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class SystemEvent:
    """A domain event, or one synthesized by the scheduler for a cron rule."""

    type: str
    entity_type: str
    entity_id: str
    action: str
    timestamp: datetime
    payload: dict[str, Any] = field(default_factory=dict)
    performed_by_id: str | None = None
    source: EventSource = EventSource.DOMAIN

    @classmethod
    def scheduled(cls, rule: "RuleDef", now: datetime) -> "SystemEvent":
        """Build the synthetic event that drives a scheduled rule."""
        return cls(
            type=SCHEDULED_EVENT_TYPE,
            entity_type=rule.entity_type,
            entity_id=rule.id,
            action=SCHEDULED_EVENT_ACTION,
            timestamp=now,
            payload={
                "rule_name": rule.name,
                "cron_expression": rule.cron_expression,
            },
            source=EventSource.SCHEDULED,
        )

    @property
    def is_scheduled(self) -> bool:
        return self.source is EventSource.SCHEDULED

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe snapshot, stored as the execution log's event_data."""
        data = {
            "type": self.type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "timestamp": self.timestamp.isoformat(),
            "payload": self.payload,
            "source": self.source.value,
        }
        if self.performed_by_id is not None:
            data["performed_by_id"] = self.performed_by_id
        # payload values such as datetime, Decimal or UUID become strings
        return json.loads(json.dumps(data, default=_json_default))


@dataclass(frozen=True)
class ActionDef:
    type: str
    params: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "ActionDef":
        """Parse one stored action descriptor.

        Raises:
            ValueError: If the descriptor is not {"type": str, "params": dict?}
        """
        if not isinstance(data, dict):
            raise ValueError(f"Action descriptor must be an object, got {type(data).__name__}")
        action_type = data.get("type")
        if not isinstance(action_type, str) or not action_type:
            raise ValueError("Action descriptor is missing its type")
        params = data.get("params") or {}
        if not isinstance(params, dict):
            raise ValueError(f"Params of action '{action_type}' must be an object")
        return cls(type=action_type, params=params)


def parse_actions(raw: Any) -> list[ActionDef]:
    """Parse a stored action list.

    Raises:
        ValueError: If the list or any descriptor in it is malformed
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError(f"Rule actions must be a list, got {type(raw).__name__}")
    return [ActionDef.from_dict(item) for item in raw]


@dataclass
class RuleDef:
    """Detached view of a stored rule, joined with its workflow's flags.

    `actions` holds the raw stored descriptors; they are parsed at
    execution time so that a malformed list fails that one execution.
    """

    id: str
    name: str
    entity_type: str
    actions: Any
    workflow_id: str | None = None
    workflow_is_active: bool = True
    trigger_event: str | None = None
    conditions: Any = None
    cron_expression: str | None = None
    next_run_at: datetime | None = None
    is_active: bool = True
    priority: int = 0
    stop_on_match: bool = False

    @property
    def is_scheduled(self) -> bool:
        return self.cron_expression is not None

    @classmethod
    def from_orm(cls, rule: "WorkflowRule") -> "RuleDef":
        workflow = rule.workflow
        return cls(
            id=rule.id,
            name=rule.name,
            entity_type=workflow.entity_type,
            actions=rule.actions,
            workflow_id=rule.workflow_id,
            workflow_is_active=workflow.is_active,
            trigger_event=rule.trigger_event,
            conditions=rule.conditions,
            cron_expression=rule.cron_expression,
            next_run_at=rule.next_run_at,
            is_active=rule.is_active,
            priority=rule.priority,
            stop_on_match=rule.stop_on_match,
        )


@dataclass(frozen=True)
class ActionOutcome:
    type: str
    status: ActionStatus
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is ActionStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        data = {"type": self.type, "status": self.status.value}
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class ExecutionRecord:
    """Outcome of running one rule against one event."""

    rule_id: str
    event: SystemEvent
    actions_run: list[ActionOutcome] = field(default_factory=list)
    success: bool = False
    error: str | None = None
    matched: bool = True

    def actions_run_dicts(self) -> list[dict[str, Any]]:
        return [outcome.to_dict() for outcome in self.actions_run]
