"""Lifespan hooks wiring background tasks for FastAPI startup."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .scheduler.publish_scheduler import PublishScheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start the publish scheduler with the app and stop it on shutdown."""
    config = getattr(app.state, "config", None)
    scheduler: PublishScheduler | None = getattr(app.state, "publish_scheduler", None)
    enabled = bool(config and config.scheduler.enabled)
    if scheduler is not None and enabled:
        scheduler.start()
    else:
        logger.info("scheduler.startup_skipped", extra={"enabled": enabled})
    try:
        yield
    finally:
        if scheduler is not None and scheduler.running:
            await scheduler.stop()


__all__ = ["lifespan"]
