"""Tests for the action registry and executor."""

import asyncio

import pytest

from workflow_engine.rule_engine.action_executor import (
    ActionExecutor,
    ActionTimeoutError,
    UnknownActionError,
)
from workflow_engine.rule_engine.action_registry import ActionRegistry
from tests.rule_engine.fakes import RecordingHandler, make_event


class TestActionRegistry:
    """Test ActionRegistry."""

    def test_register_and_lookup(self):
        registry = ActionRegistry()
        handler = RecordingHandler()
        registry.register("send_email", handler)

        assert registry.lookup("send_email") is handler
        assert "send_email" in registry
        assert len(registry) == 1

    def test_lookup_unknown(self):
        assert ActionRegistry().lookup("missing") is None

    def test_register_overwrites(self):
        registry = ActionRegistry()
        first, second = RecordingHandler(), RecordingHandler()
        registry.register("webhook", first)
        registry.register("webhook", second)

        assert registry.lookup("webhook") is second

    def test_register_empty_type_raises(self):
        with pytest.raises(ValueError):
            ActionRegistry().register("", RecordingHandler())

    def test_list_types_sorted(self):
        registry = ActionRegistry()
        registry.register("webhook", RecordingHandler())
        registry.register("assign_task", RecordingHandler())
        assert registry.list_types() == ["assign_task", "webhook"]

    def test_unregister(self):
        registry = ActionRegistry()
        registry.register("webhook", RecordingHandler())
        registry.unregister("webhook")
        registry.unregister("webhook")
        assert "webhook" not in registry


@pytest.mark.asyncio
class TestActionExecutor:
    """Test ActionExecutor dispatch."""

    async def test_execute_async_handler(self):
        registry = ActionRegistry()
        handler = RecordingHandler()
        registry.register("create_notification", handler)
        event = make_event()

        await ActionExecutor(registry).execute("create_notification", {"title": "Hi"}, event)

        assert handler.calls == [({"title": "Hi"}, event)]

    async def test_execute_sync_handler(self):
        registry = ActionRegistry()
        calls = []
        registry.register("assign_task", lambda params, event: calls.append(params))

        await ActionExecutor(registry).execute("assign_task", {"title": "Check"}, make_event())

        assert calls == [{"title": "Check"}]

    async def test_unknown_action_raises(self):
        executor = ActionExecutor(ActionRegistry())
        with pytest.raises(UnknownActionError, match="Unknown action type: teleport"):
            await executor.execute("teleport", {}, make_event())

    async def test_handler_error_propagates(self):
        registry = ActionRegistry()
        registry.register("send_email", RecordingHandler(ValueError("send_email requires to")))

        with pytest.raises(ValueError, match="requires to"):
            await ActionExecutor(registry).execute("send_email", {}, make_event())

    async def test_timeout(self):
        registry = ActionRegistry()

        async def slow(params, event):
            await asyncio.sleep(5)

        registry.register("slow", slow)
        executor = ActionExecutor(registry, timeout=0.05)

        with pytest.raises(ActionTimeoutError, match="timed out"):
            await executor.execute("slow", {}, make_event())

    async def test_fast_handler_within_timeout(self):
        registry = ActionRegistry()
        handler = RecordingHandler()
        registry.register("fast", handler)

        await ActionExecutor(registry, timeout=1.0).execute("fast", {}, make_event())

        assert len(handler.calls) == 1
