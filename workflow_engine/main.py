# workflow_engine/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from workflow_engine.core.config import settings
from workflow_engine.core.database import async_session
from workflow_engine.core.init_db import init_db
from workflow_engine.rule_engine.engine import WorkflowEngine

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def build_engine() -> WorkflowEngine:
    """Create the process-wide engine from settings."""
    return WorkflowEngine.from_session_provider(
        async_session,
        action_timeout=settings.ACTION_TIMEOUT_SECONDS,
        webhook_timeout=settings.WEBHOOK_TIMEOUT_SECONDS,
        interval_seconds=settings.SCHEDULER_INTERVAL_SECONDS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()

    engine = build_engine()
    await engine.start(run_scheduler=settings.SCHEDULER_ENABLED)
    if not settings.SCHEDULER_ENABLED:
        logger.warning("Scheduler disabled, cron rules will not run in this process")

    # Domain services publish through app.state.event_bus
    app.state.workflow_engine = engine
    app.state.event_bus = engine.event_bus
    try:
        yield
    finally:
        await engine.stop()


app = FastAPI(title="Workflow Automation Engine", lifespan=lifespan)


@app.get("/health")
async def health():
    engine = getattr(app.state, "workflow_engine", None)
    return {
        "status": "ok",
        "scheduler_running": bool(engine and engine.scheduler.is_running),
    }
