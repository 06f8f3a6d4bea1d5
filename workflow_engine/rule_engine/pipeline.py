"""Execution pipeline shared by scheduled and event-driven rules."""

import logging

from workflow_engine.rule_engine.action_executor import ActionExecutor
from workflow_engine.rule_engine.execution_logger import ExecutionLogger
from workflow_engine.rule_engine.models import (
    ActionOutcome,
    ActionStatus,
    ExecutionRecord,
    RuleDef,
    SystemEvent,
    parse_actions,
)

logger = logging.getLogger(__name__)


def error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class ExecutionPipeline:
    """Runs a rule's actions for one event and writes the audit record.

    Actions run strictly in list order. A failing action is recorded and
    the remaining actions still run. The rule succeeds only if every
    action succeeded. Exactly one audit record is written per call.
    """

    def __init__(self, executor: ActionExecutor, execution_logger: ExecutionLogger):
        self.executor = executor
        self.execution_logger = execution_logger

    async def run(self, rule: RuleDef, event: SystemEvent) -> ExecutionRecord:
        """Execute a rule against an event.

        Never raises for action, rule-level or audit-write failures.

        Returns:
            The execution record that was handed to the execution logger
        """
        record = ExecutionRecord(rule_id=rule.id, event=event)

        try:
            actions = parse_actions(rule.actions)
            for action in actions:
                outcome = await self._run_action(rule, action.type, action.params, event)
                record.actions_run.append(outcome)
            record.success = all(outcome.succeeded for outcome in record.actions_run)
        except Exception as e:
            record.success = False
            record.error = error_message(e)
            logger.error(f"Rule {rule.id} ({rule.name}) failed: {e}")

        if record.success:
            logger.info(f"Rule {rule.id} ({rule.name}) executed {len(record.actions_run)} action(s)")

        try:
            await self.execution_logger.record(record)
        except Exception:
            logger.exception(f"Failed to log execution of rule {rule.id}")
        return record

    async def _run_action(self, rule: RuleDef, action_type: str, params: dict, event: SystemEvent) -> ActionOutcome:
        try:
            await self.executor.execute(action_type, params, event)
        except Exception as e:
            logger.error(f"Action {action_type} failed for rule {rule.id}: {e}")
            return ActionOutcome(type=action_type, status=ActionStatus.FAILED, error=error_message(e))
        return ActionOutcome(type=action_type, status=ActionStatus.SUCCESS)
