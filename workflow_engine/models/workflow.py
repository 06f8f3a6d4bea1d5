# workflow_engine/models/workflow.py
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workflow_engine.core.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Workflow(Base):
    """Groups rules bound to one entity type; can disable them all at once."""
    __tablename__ = "workflows"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False)  # e.g. "mrrv", or "*"
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)

    rules: Mapped[list["WorkflowRule"]] = relationship(
        back_populates="workflow", cascade="all, delete-orphan"
    )

    def __init__(self, **kwargs):
        kwargs.setdefault("id", _new_id())
        kwargs.setdefault("is_active", True)
        kwargs.setdefault("priority", 0)
        super().__init__(**kwargs)


class WorkflowRule(Base):
    """A trigger (cron schedule or domain event) plus an ordered action list."""
    __tablename__ = "workflow_rules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    workflow_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    trigger_event: Mapped[str | None] = mapped_column(String(100), nullable=True)  # e.g. "document:status_changed"
    conditions: Mapped[Any | None] = mapped_column(JSON, nullable=True)
    actions: Mapped[Any] = mapped_column(JSON, nullable=False)  # [{"type": ..., "params": {...}}]
    cron_expression: Mapped[str | None] = mapped_column(String(120), nullable=True)
    next_run_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    stop_on_match: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)

    workflow: Mapped[Workflow] = relationship(back_populates="rules")

    def __init__(self, **kwargs):
        kwargs.setdefault("id", _new_id())
        kwargs.setdefault("is_active", True)
        kwargs.setdefault("priority", 0)
        kwargs.setdefault("stop_on_match", False)
        kwargs.setdefault("actions", [])
        super().__init__(**kwargs)

    @property
    def is_scheduled(self) -> bool:
        return self.cron_expression is not None


class WorkflowExecutionLog(Base):
    """Append-only audit row for one execution attempt of a rule."""
    __tablename__ = "workflow_execution_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    rule_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(100), nullable=False)
    matched: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    event_data: Mapped[Any] = mapped_column(JSON, nullable=False)
    actions_run: Mapped[Any | None] = mapped_column(JSON, nullable=True)
    executed_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
