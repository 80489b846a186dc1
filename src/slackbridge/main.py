"""FastAPI entrypoint."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from slackbridge import __version__
from slackbridge.bridge.wiring import build_bridge
from slackbridge.config import get_settings, validate_settings_for_env
from slackbridge.db.migrations.runner import run_migrations
from slackbridge.logging import configure_logging
from slackbridge.routes.health import router as health_router
from slackbridge.routes.slack_events import router as slack_events_router
from slackbridge.tasks import get_task_runner

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    validate_settings_for_env(settings)
    configure_logging(settings.log_level)
    applied = run_migrations()
    if applied:
        logger.info("Applied migrations: %s", ", ".join(applied))
    bridge = build_bridge(settings)
    app.state.event_handler = bridge.handler
    app.state.room_registry = bridge.registry
    app.state.metrics_sink = bridge.sink
    task_runner = get_task_runner()
    yield
    await task_runner.shutdown(timeout_s=float(settings.task_runner_shutdown_timeout_seconds))
    app.state.event_handler = None


app = FastAPI(title="Slack Bridge", version=__version__, lifespan=lifespan)
app.include_router(health_router)
app.include_router(slack_events_router)
