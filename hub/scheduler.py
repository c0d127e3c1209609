"""Shared in-process scheduler for background jobs.

Health checks and verification reminders register cron jobs on the same
``AsyncIOScheduler``; the FastAPI lifespan starts and stops it.
"""
from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .config import settings

logger = logging.getLogger(__name__)

_scheduler: AsyncIOScheduler | None = None


def get_scheduler() -> AsyncIOScheduler:
    """Process-wide scheduler, created on first use."""
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(timezone=settings.scheduler.timezone)
    return _scheduler


def cron_trigger(**fields) -> CronTrigger:
    return CronTrigger(timezone=settings.scheduler.timezone, **fields)


def start_scheduler() -> None:
    scheduler = get_scheduler()
    if scheduler.running:
        return
    scheduler.start()
    jobs = ", ".join(job.id for job in scheduler.get_jobs()) or "none"
    logger.info(f"Scheduler started (jobs: {jobs})")


def stop_scheduler() -> None:
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    _scheduler = None
