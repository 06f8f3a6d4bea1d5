"""End-to-end tests of the engine against an in-memory database."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

import pytest

from workflow_engine.repositories import (
    ExecutionLogRepository,
    WorkflowRepository,
    WorkflowRuleRepository,
)
from workflow_engine.rule_engine import ActionRegistry, SystemEvent, WorkflowEngine
from tests.rule_engine.fakes import RecordingHandler, make_event

NOW = datetime(2026, 2, 15, 10, 0)


@pytest.fixture
def notify():
    return RecordingHandler()


@pytest.fixture
def engine(session_factory, notify):
    registry = ActionRegistry()
    registry.register("send_notification", notify)
    return WorkflowEngine.from_session_provider(
        session_factory, action_registry=registry, clock=lambda: NOW
    )


async def create_rule(session_factory, workflow_active=True, entity_type="mrrv", **rule_kwargs):
    async with session_factory() as session:
        workflow = await WorkflowRepository(session).create(
            name="Receiving", entity_type=entity_type, is_active=workflow_active
        )
        rule = await WorkflowRuleRepository(session).create(workflow_id=workflow.id, **rule_kwargs)
        return rule.id


async def load_rule(session_factory, rule_id):
    async with session_factory() as session:
        return await WorkflowRuleRepository(session).get_by_id(rule_id)


async def load_logs(session_factory):
    async with session_factory() as session:
        return await ExecutionLogRepository(session).list_all()


@pytest.mark.asyncio
class TestScheduledExecution:

    async def test_initialize_then_tick(self, engine, session_factory, notify):
        rule_id = await create_rule(
            session_factory, name="Every 5", cron_expression="*/5 * * * *",
            actions=[{"type": "send_notification", "params": {"message": "count"}}],
        )

        assert await engine.initialize_scheduled_rules() == 1
        rule = await load_rule(session_factory, rule_id)
        assert rule.next_run_at == datetime(2026, 2, 15, 10, 5)

        # not due yet
        result = await engine.process_scheduled_rules()
        assert result.due == 0
        assert notify.calls == []

    async def test_due_rule_runs_logs_and_advances(self, engine, session_factory, notify):
        rule_id = await create_rule(
            session_factory, name="Every 5", cron_expression="*/5 * * * *",
            next_run_at=datetime(2026, 2, 15, 9, 55),
            actions=[
                {"type": "send_notification", "params": {"message": "count"}},
                {"type": "no_such_action", "params": {}},
            ],
        )

        result = await engine.process_scheduled_rules()

        assert (result.executed, result.advanced) == (1, 1)
        params, event = notify.calls[0]
        assert params == {"message": "count"}
        assert event.entity_id == rule_id

        logs = await load_logs(session_factory)
        assert len(logs) == 1
        assert logs[0].rule_id == rule_id
        assert logs[0].event_type == "scheduled:rule_triggered"
        assert logs[0].success is False
        assert logs[0].actions_run == [
            {"type": "send_notification", "status": "success"},
            {"type": "no_such_action", "status": "failed", "error": "Unknown action type: no_such_action"},
        ]
        assert logs[0].event_data["payload"] == {"rule_name": "Every 5", "cron_expression": "*/5 * * * *"}

        rule = await load_rule(session_factory, rule_id)
        assert rule.next_run_at == datetime(2026, 2, 15, 10, 5)

    async def test_inactive_workflow_stays_frozen(self, engine, session_factory, notify):
        due_at = datetime(2026, 2, 15, 9, 55)
        rule_id = await create_rule(
            session_factory, workflow_active=False, name="Frozen",
            cron_expression="*/5 * * * *", next_run_at=due_at,
            actions=[{"type": "send_notification", "params": {}}],
        )

        result = await engine.process_scheduled_rules()

        assert result.skipped == 1
        assert notify.calls == []
        assert await load_logs(session_factory) == []
        assert (await load_rule(session_factory, rule_id)).next_run_at == due_at

    async def test_set_next_run_at_for_missing_rule_raises(self, engine):
        with pytest.raises(LookupError):
            await engine.rule_store.set_next_run_at("missing", NOW)


@pytest.mark.asyncio
class TestEventExecution:

    async def test_published_event_runs_matching_rules(self, engine, session_factory, notify):
        rule_id = await create_rule(
            session_factory, name="On store", trigger_event="document:status_changed",
            conditions={"operator": "AND", "conditions": [
                {"field": "payload.to", "op": "eq", "value": "stored"},
            ]},
            actions=[{"type": "send_notification", "params": {"message": "stored"}}],
        )
        engine.attach()

        await engine.event_bus.publish(make_event(payload={"to": "stored"}))
        await engine.event_bus.publish(make_event(payload={"to": "draft"}))

        assert len(notify.calls) == 1
        logs = await load_logs(session_factory)
        assert [log.rule_id for log in logs] == [rule_id]
        assert logs[0].entity_id == "mrrv-1"
        assert logs[0].success is True

    async def test_payload_with_non_json_values_is_audited(self, engine, session_factory, notify):
        rule_id = await create_rule(
            session_factory, name="On create", trigger_event="document:created",
            actions=[{"type": "send_notification", "params": {}}],
        )
        engine.attach()

        await engine.event_bus.publish(make_event(
            type="document:created",
            payload={
                "received_at": datetime(2026, 2, 15, 9, 30),
                "qty": Decimal("2.5"),
                "supplier_id": UUID("12345678-1234-5678-1234-567812345678"),
            },
        ))

        assert len(notify.calls) == 1
        logs = await load_logs(session_factory)
        assert [log.rule_id for log in logs] == [rule_id]
        assert logs[0].event_data["payload"] == {
            "received_at": "2026-02-15T09:30:00",
            "qty": "2.5",
            "supplier_id": "12345678-1234-5678-1234-567812345678",
        }

    async def test_detached_engine_ignores_events(self, engine, session_factory, notify):
        await create_rule(
            session_factory, name="On store", trigger_event="document:status_changed",
            actions=[{"type": "send_notification", "params": {}}],
        )
        engine.attach()
        engine.detach()

        await engine.event_bus.publish(make_event())

        assert notify.calls == []

    async def test_conditional_branch_builtin(self, engine, session_factory, notify):
        await create_rule(
            session_factory, entity_type="*", name="Branch",
            trigger_event="document:status_changed",
            actions=[{"type": "conditional_branch", "params": {
                "condition": {"field": "payload.to", "op": "in", "value": ["stored", "issued"]},
                "true_actions": [{"type": "send_notification", "params": {"branch": "yes"}}],
                "false_actions": [{"type": "send_notification", "params": {"branch": "no"}}],
            }}],
        )
        engine.attach()

        await engine.event_bus.publish(make_event(entity_type="mirv", payload={"to": "issued"}))

        assert [params for params, _ in notify.calls] == [{"branch": "yes"}]

    async def test_scheduled_events_on_the_bus_are_not_matched(self, engine, session_factory, notify):
        rule_id = await create_rule(
            session_factory, name="Cron", cron_expression="* * * * *",
            next_run_at=NOW, actions=[{"type": "send_notification", "params": {}}],
        )
        rule = (await engine.rule_store.find_due_scheduled_rules(NOW))[0]
        engine.attach()

        await engine.event_bus.publish(SystemEvent.scheduled(rule, NOW))

        assert rule.id == rule_id
        assert notify.calls == []


@pytest.mark.asyncio
async def test_engine_start_and_stop(engine):
    await engine.start(run_scheduler=True)
    assert engine.scheduler.is_running
    assert len(engine.event_bus) == 1

    await engine.stop()
    assert not engine.scheduler.is_running
    assert len(engine.event_bus) == 0
