"""Scheduler loop for cron-driven workflow rules.

Every tick the scheduler loads the active cron rules whose ``next_run_at``
has arrived, runs each through the execution pipeline with a synthetic
``scheduled:rule_triggered`` event and moves ``next_run_at`` to the next
matching minute. A tick never raises: failures are logged per rule and
sibling rules still run.

Rules whose workflow is inactive are selected as due but neither run nor
advanced, so they stay due until the workflow is reactivated.

There is no cross-process claim on a due rule. Two schedulers sharing one
store can both run a rule inside the same window, and a crash between
execution and the ``next_run_at`` update re-runs the rule on the next
tick (at-least-once).
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from workflow_engine.rule_engine.cron import next_cron_run
from workflow_engine.rule_engine.models import RuleDef, SystemEvent
from workflow_engine.rule_engine.pipeline import ExecutionPipeline
from workflow_engine.rule_engine.rule_store import RuleStore

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 60.0

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Naive UTC wall clock, the representation stored in next_run_at."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass
class TickResult:
    """What one scheduler tick did."""

    due: int = 0
    executed: int = 0
    skipped: int = 0
    advanced: int = 0
    advance_failures: int = 0


class Scheduler:
    """Drives cron rules from a periodic asyncio task.

    Each instance owns its own task handle, so several independent
    schedulers can coexist (e.g. in tests).
    """

    def __init__(
        self,
        rule_store: RuleStore,
        pipeline: ExecutionPipeline,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        clock: Clock = utcnow,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.rule_store = rule_store
        self.pipeline = pipeline
        self.interval_seconds = interval_seconds
        self.clock = clock
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Initialise missing next runs, then start ticking.

        Raises:
            RuntimeError: If the scheduler is already running
        """
        if self.is_running:
            raise RuntimeError("Scheduler is already running")
        await self.initialize_scheduled_rules()
        self._task = asyncio.create_task(self._run_loop(), name="workflow-scheduler")
        logger.info(f"Scheduler started (interval={self.interval_seconds:g}s)")

    async def stop(self) -> None:
        """Stop ticking and wait for the loop to finish. Idempotent."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Scheduler stopped")

    async def _run_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.process_scheduled_rules()

    async def initialize_scheduled_rules(self) -> int:
        """Give every active cron rule without a next run its first one.

        Idempotent once every rule has a next run. Never raises.

        Returns:
            Number of rules initialised
        """
        try:
            rules = await self.rule_store.find_uninitialized_scheduled_rules()
        except Exception:
            logger.exception("Failed to load uninitialised scheduled rules")
            return 0

        now = self.clock()
        initialized = 0
        for rule in rules:
            if not rule.cron_expression:
                continue
            if await self._advance(rule, now):
                initialized += 1

        if initialized:
            logger.info(f"Initialized next_run_at for {initialized} rule(s)")
        return initialized

    async def process_scheduled_rules(self) -> TickResult:
        """Run one tick. Never raises.

        Returns:
            Counters describing the tick
        """
        result = TickResult()
        now = self.clock()

        try:
            due_rules = await self.rule_store.find_due_scheduled_rules(now)
        except Exception:
            logger.exception("Failed to load due scheduled rules")
            return result

        if not due_rules:
            return result

        result.due = len(due_rules)
        logger.debug(f"{result.due} scheduled rule(s) due for execution")

        for rule in due_rules:
            if not rule.workflow_is_active:
                logger.debug(f"Rule {rule.id} is due but its workflow is inactive, skipping")
                result.skipped += 1
                continue

            await self.pipeline.run(rule, SystemEvent.scheduled(rule, now))
            result.executed += 1

            if await self._advance(rule, now):
                result.advanced += 1
            else:
                result.advance_failures += 1

        return result

    async def _advance(self, rule: RuleDef, now: datetime) -> bool:
        try:
            next_run = next_cron_run(rule.cron_expression, now)
            await self.rule_store.set_next_run_at(rule.id, next_run)
        except Exception as e:
            logger.error(f"Failed to update next_run_at for rule {rule.id}: {e}")
            return False
        return True
