"""
Background scheduler for periodic attendance jobs (heartbeat timeout sweep).
"""
import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from app.core.config import settings

logger = logging.getLogger(__name__)

HEARTBEAT_SWEEP_JOB_ID = "heartbeat_timeout_sweep"

_scheduler: Optional[BackgroundScheduler] = None


def _register_jobs(scheduler: BackgroundScheduler) -> None:
    from app.services.heartbeat_sweeper import run_heartbeat_sweep

    scheduler.add_job(
        run_heartbeat_sweep,
        "interval",
        minutes=settings.HEARTBEAT_SWEEP_INTERVAL_MINUTES,
        id=HEARTBEAT_SWEEP_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )


def start_scheduler() -> Optional[BackgroundScheduler]:
    """Start the background scheduler once; no-op when disabled in settings."""
    global _scheduler
    if not settings.HEARTBEAT_SWEEP_ENABLED:
        logger.info("Heartbeat sweep disabled (HEARTBEAT_SWEEP_ENABLED=false)")
        return None
    if _scheduler is not None and _scheduler.running:
        return _scheduler

    _scheduler = BackgroundScheduler(timezone="UTC")
    _register_jobs(_scheduler)
    _scheduler.start()
    logger.info(
        "Scheduler started: heartbeat sweep every %s min (timeout %s min)",
        settings.HEARTBEAT_SWEEP_INTERVAL_MINUTES,
        settings.HEARTBEAT_TIMEOUT_MINUTES,
    )
    return _scheduler


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    _scheduler = None
