"""APScheduler job definitions and scheduler management.

Initializes a BackgroundScheduler that periodically purges expired image
proxy cache entries, and provides start/shutdown/status helpers for the
FastAPI lifespan.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.services.image_cache import get_image_cache

logger = logging.getLogger(__name__)

CACHE_SWEEP_JOB_ID = "image_cache_sweep"

# Module-level scheduler instance (singleton)
scheduler = BackgroundScheduler()


def sweep_image_cache() -> int:
    """Wrapper that APScheduler calls on each interval tick."""
    removed = get_image_cache().purge_expired()
    logger.debug("image_cache_sweep_finished", extra={"removed": removed})
    return removed


def start_scheduler() -> None:
    """Register the cache sweep job and start the background scheduler."""
    scheduler.add_job(
        sweep_image_cache,
        IntervalTrigger(minutes=settings.CACHE_SWEEP_INTERVAL_MINUTES),
        id=CACHE_SWEEP_JOB_ID,
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        "scheduler_started",
        extra={
            "interval_minutes": settings.CACHE_SWEEP_INTERVAL_MINUTES,
        },
    )


def shutdown_scheduler() -> None:
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")


def is_scheduler_running() -> bool:
    """Check if the scheduler is currently running."""
    return scheduler.running
