"""Event-driven rule matching."""

import logging

from workflow_engine.rule_engine.conditions import ConditionEvaluator, evaluate_conditions
from workflow_engine.rule_engine.models import ExecutionRecord, RuleDef, SystemEvent
from workflow_engine.rule_engine.pipeline import ExecutionPipeline
from workflow_engine.rule_engine.rule_store import RuleStore

logger = logging.getLogger(__name__)


class RuleMatcher:
    """Runs event-driven rules in response to published events.

    Candidates are the active rules bound to the event's entity type and
    event type, evaluated in descending priority. Every candidate whose
    conditions hold goes through the execution pipeline with the event,
    unless a higher-priority match has ``stop_on_match`` set.
    """

    def __init__(
        self,
        rule_store: RuleStore,
        pipeline: ExecutionPipeline,
        condition_evaluator: ConditionEvaluator = evaluate_conditions,
    ):
        self.rule_store = rule_store
        self.pipeline = pipeline
        self.condition_evaluator = condition_evaluator

    async def on_event(self, event: SystemEvent) -> list[ExecutionRecord]:
        """Handle one published event. Never raises.

        Returns:
            Execution records of the rules that matched, in execution order
        """
        if event.is_scheduled:
            return []

        try:
            candidates = await self.rule_store.find_event_rules(event.entity_type, event.type)
        except Exception:
            logger.exception(
                f"Failed to load rules for event {event.type} on {event.entity_type}"
            )
            return []

        if not candidates:
            logger.debug(f"No rules bound to {event.type} on {event.entity_type}")
            return []

        records = []
        for rule in self._order(candidates):
            if not self._matches(rule, event):
                continue

            logger.info(f"Rule {rule.id} ({rule.name}) matched {event.type} on {event.entity_type}:{event.entity_id}")
            records.append(await self.pipeline.run(rule, event))

            if rule.stop_on_match:
                logger.debug(f"Rule {rule.id} stops further matching")
                break

        return records

    @staticmethod
    def _order(rules: list[RuleDef]) -> list[RuleDef]:
        # stable: ties keep the store's order
        return sorted(rules, key=lambda r: r.priority, reverse=True)

    def _matches(self, rule: RuleDef, event: SystemEvent) -> bool:
        try:
            return bool(self.condition_evaluator(rule.conditions, event))
        except Exception as e:
            logger.warning(f"Conditions of rule {rule.id} could not be evaluated: {e}")
            return False
