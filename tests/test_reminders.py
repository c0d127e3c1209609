from datetime import datetime, timedelta

import pytest

from hub import models
from hub.pipelines import reminders
from hub.pipelines.reminders import plan_reminder

NOW = datetime(2024, 6, 1, 10, 0)


@pytest.mark.parametrize("days", [0, 6, 8, 13, 29, 30, 35])
def test_no_reminder_off_cadence(days):
    assert plan_reminder(days) is None


@pytest.mark.parametrize("days, number, priority", [
    (7, 1, "normal"),
    (14, 2, "normal"),
    (21, 3, "high"),
    (28, 4, "urgent"),
])
def test_weekly_reminders_escalate(days, number, priority):
    plan = plan_reminder(days)

    assert plan.reminder_number == number
    assert plan.priority == priority


def test_final_reminder_message():
    assert plan_reminder(28).message.startswith("Final reminder")
    assert "14 days" in plan_reminder(14).message


async def test_send_creates_notifications_for_due_users(session, monkeypatch):
    users = [
        models.User(id=1, email="a@example.com", created_at=NOW - timedelta(days=7, hours=3)),
        models.User(id=2, email="b@example.com", created_at=NOW - timedelta(days=9)),
        models.User(id=3, email="c@example.com", created_at=NOW - timedelta(days=21)),
    ]

    async def fake_load(_session):
        return users

    monkeypatch.setattr(reminders, "load_unverified_participants", fake_load)

    result = await reminders.send_verification_reminders(session, now=NOW)

    assert result == {"reminders_sent": 2, "total_unverified": 3}
    notifications = [call.args[0] for call in session.add.call_args_list]
    assert [n.user_id for n in notifications] == [1, 3]
    assert notifications[1].type == "verification_reminder"
    assert notifications[1].title == "Verification Reminder #3"
    assert notifications[1].data["priority"] == "high"
    session.commit.assert_awaited_once()


def test_schedule_registers_daily_job():
    from hub.scheduler import get_scheduler

    reminders.schedule_reminders()

    job = get_scheduler().get_job(reminders.REMINDER_JOB_ID)
    assert job is not None
    assert "hour='10'" in str(job.trigger)
