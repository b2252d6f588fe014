"""Ads Hub — Scheduler Jobs.

One cron job: store a blended snapshot plus one per provider every day at
``settings.snapshot_hour`` UTC. Disabled with ``SCHEDULER_ENABLED=false``
and never started on serverless deployments.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlmodel import Session

from adshub.config import settings
from adshub.database import engine
from adshub.analyzer.pipeline import run_snapshots
from adshub.core.logging import get_logger

logger = get_logger("scheduler")

SNAPSHOT_JOB_ID = "daily_snapshot"

scheduler = AsyncIOScheduler()


async def daily_snapshot_job() -> int:
    """Store today's snapshots. Returns how many were written (0 on failure)."""
    logger.info("Scheduled snapshot run starting")
    try:
        with Session(engine) as session:
            stored = len(run_snapshots(session))
    except Exception as e:
        logger.error(f"Scheduled snapshot run failed: {e}")
        return 0

    logger.info(f"Scheduled snapshot run stored {stored} snapshots")
    return stored


def start_scheduler():
    """Register the snapshot job and start the scheduler if enabled."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return

    scheduler.add_job(
        daily_snapshot_job,
        "cron",
        hour=settings.snapshot_hour,
        minute=0,
        id=SNAPSHOT_JOB_ID,
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.start()
    logger.info(f"Snapshot job scheduled daily at {settings.snapshot_hour:02d}:00 UTC")


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
