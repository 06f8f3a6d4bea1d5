"""Tests for the shared execution pipeline."""

import pytest

from workflow_engine.rule_engine.action_executor import ActionExecutor
from workflow_engine.rule_engine.action_registry import ActionRegistry
from workflow_engine.rule_engine.models import ActionStatus
from workflow_engine.rule_engine.pipeline import ExecutionPipeline
from tests.rule_engine.fakes import RecordingHandler, RecordingLogger, make_event, make_rule


@pytest.fixture
def registry():
    registry = ActionRegistry()
    registry.register("send_notification", RecordingHandler())
    registry.register("send_email", RecordingHandler())
    registry.register("failing", RecordingHandler(RuntimeError("SMTP down")))
    return registry


@pytest.fixture
def audit():
    return RecordingLogger()


@pytest.fixture
def pipeline(registry, audit):
    return ExecutionPipeline(ActionExecutor(registry), audit)


@pytest.mark.asyncio
class TestExecutionPipeline:
    """Test ExecutionPipeline.run."""

    async def test_all_actions_succeed(self, pipeline, audit, registry):
        rule = make_rule(actions=[
            {"type": "send_notification", "params": {"message": "hello"}},
            {"type": "send_email", "params": {"to": "test@example.com"}},
        ])
        event = make_event()

        record = await pipeline.run(rule, event)

        assert record.success is True
        assert record.error is None
        assert record.matched is True
        assert record.actions_run_dicts() == [
            {"type": "send_notification", "status": "success"},
            {"type": "send_email", "status": "success"},
        ]
        assert audit.records == [record]
        assert registry.lookup("send_notification").calls == [({"message": "hello"}, event)]

    async def test_failure_does_not_stop_later_actions(self, pipeline, audit, registry):
        rule = make_rule(actions=[
            {"type": "failing", "params": {}},
            {"type": "send_email", "params": {}},
        ])

        record = await pipeline.run(rule, make_event())

        assert record.success is False
        assert [o.status for o in record.actions_run] == [ActionStatus.FAILED, ActionStatus.SUCCESS]
        assert record.actions_run_dicts() == [
            {"type": "failing", "status": "failed", "error": "SMTP down"},
            {"type": "send_email", "status": "success"},
        ]
        assert len(registry.lookup("send_email").calls) == 1
        assert len(audit.records) == 1

    async def test_unknown_action_is_recorded_failure(self, pipeline):
        rule = make_rule(actions=[{"type": "teleport", "params": {}}])

        record = await pipeline.run(rule, make_event())

        assert record.success is False
        assert record.actions_run[0].error == "Unknown action type: teleport"

    async def test_exception_without_message_uses_type_name(self, registry, audit):
        registry.register("silent", RecordingHandler(KeyError()))
        pipeline = ExecutionPipeline(ActionExecutor(registry), audit)

        record = await pipeline.run(make_rule(actions=[{"type": "silent"}]), make_event())

        assert record.actions_run[0].error == "KeyError"

    async def test_empty_action_list_is_vacuously_successful(self, pipeline, audit):
        record = await pipeline.run(make_rule(actions=[]), make_event())

        assert record.success is True
        assert record.actions_run == []
        assert len(audit.records) == 1

    async def test_malformed_actions_is_rule_level_failure(self, pipeline, audit):
        record = await pipeline.run(make_rule(actions={"type": "send_email"}), make_event())

        assert record.success is False
        assert "must be a list" in record.error
        assert record.actions_run == []
        assert audit.records == [record]

    async def test_malformed_descriptor_fails_before_any_action(self, pipeline, audit, registry):
        rule = make_rule(actions=[{"type": "send_email"}, {"params": {}}])

        record = await pipeline.run(rule, make_event())

        assert record.success is False
        assert "missing its type" in record.error
        assert registry.lookup("send_email").calls == []
        assert len(audit.records) == 1

    async def test_audit_failure_is_swallowed(self, registry):
        pipeline = ExecutionPipeline(ActionExecutor(registry), RecordingLogger(fail=True))

        record = await pipeline.run(make_rule(), make_event())

        assert record.success is True
