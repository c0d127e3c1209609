"""Periodic verification reminders for unverified participants."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hub import models
from hub.config import settings
from hub.db import AsyncSessionMaker
from hub.scheduler import cron_trigger, get_scheduler

logger = logging.getLogger(__name__)

REMINDER_JOB_ID = "verification_reminders"
UNVERIFIED_STATUSES = ("unverified", "pending")
FIRST_REMINDER_DAY = 7
LAST_REMINDER_DAY = 30
REMINDER_INTERVAL_DAYS = 7


@dataclass
class ReminderPlan:
    days_since_joined: int
    reminder_number: int
    priority: str
    message: str


def plan_reminder(days_since_joined: int) -> ReminderPlan | None:
    """Weekly reminders from day 7 through day 30, escalating in priority."""
    if not FIRST_REMINDER_DAY <= days_since_joined <= LAST_REMINDER_DAY:
        return None
    if days_since_joined % REMINDER_INTERVAL_DAYS:
        return None

    if days_since_joined <= 14:
        priority = "normal"
        message = (
            f"You've been with us for {days_since_joined} days. Complete your verification "
            "to access premium campaigns and earn up to 3x more!"
        )
    elif days_since_joined <= 21:
        priority = "high"
        message = (
            f"Don't miss out! You've been with us for {days_since_joined} days. Complete "
            "verification now to unlock premium features and higher earnings."
        )
    else:
        priority = "urgent"
        message = (
            "Final reminder: Complete your verification within the next few days to maintain "
            "access to premium campaigns and exclusive opportunities."
        )

    return ReminderPlan(
        days_since_joined=days_since_joined,
        reminder_number=days_since_joined // REMINDER_INTERVAL_DAYS,
        priority=priority,
        message=message,
    )


async def load_unverified_participants(session: AsyncSession) -> list[models.User]:
    result = await session.execute(
        select(models.User).where(
            models.User.role == "participant",
            models.User.verification_status.in_(UNVERIFIED_STATUSES),
        )
    )
    return list(result.scalars().all())


async def send_verification_reminders(
    session: AsyncSession,
    now: datetime | None = None,
) -> dict[str, int]:
    """Create due reminder notifications.

    Returns:
        ``reminders_sent`` and ``total_unverified`` counts
    """
    now = now or datetime.utcnow()
    try:
        users = await load_unverified_participants(session)
        sent = 0
        for user in users:
            joined = user.created_at or now
            plan = plan_reminder((now - joined).days)
            if plan is None:
                continue

            session.add(models.Notification(
                user_id=user.id,
                type="verification_reminder",
                title=f"Verification Reminder #{plan.reminder_number}",
                message=plan.message,
                data={
                    "days_since_joined": plan.days_since_joined,
                    "reminder_number": plan.reminder_number,
                    "priority": plan.priority,
                    "reminder_type": "periodic",
                },
            ))
            sent += 1
            logger.debug(f"Reminder #{plan.reminder_number} queued for user {user.id}")

        await session.commit()
    except Exception:
        logger.error("Failed to send verification reminders", exc_info=True)
        await session.rollback()
        raise

    logger.info(f"Verification reminders: sent {sent} to {len(users)} unverified participants")
    return {"reminders_sent": sent, "total_unverified": len(users)}


async def run_scheduled_reminders() -> None:
    async with AsyncSessionMaker() as session:
        await send_verification_reminders(session)


def schedule_reminders() -> None:
    get_scheduler().add_job(
        run_scheduled_reminders,
        cron_trigger(hour=settings.scheduler.reminder_hour, minute=0),
        id=REMINDER_JOB_ID,
        name="Verification reminders",
        replace_existing=True,
    )
    logger.info(f"Verification reminders scheduled daily at {settings.scheduler.reminder_hour:02d}:00")
