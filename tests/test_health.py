import json

import pytest

from hub import models
from hub.config import HealthCheckFrequency
from hub.pipelines.health import (
    ERROR,
    HEALTH_JOB_ID,
    HEALTHY,
    LAST_RESULTS_SETTING,
    WARNING,
    HealthCheckResult,
    HealthCheckService,
    check_legal_documents,
    parse_frequency,
    summarize,
)
from hub.scheduler import get_scheduler


async def healthy_check(session):
    return HEALTHY, "fine", {}


async def warning_check(session):
    return WARNING, "needs attention", {"hint": "configure"}


async def broken_check(session):
    raise RuntimeError("connection refused")


@pytest.fixture
def service(session_factory):
    return HealthCheckService(
        session_factory=session_factory,
        checks=[
            ("Database Connection", healthy_check, "Database connection failed"),
            ("Email System", warning_check, "Email system check failed"),
            ("Legal Documents", broken_check, "Legal documents check failed"),
        ],
    )


def test_parse_frequency_defaults_to_twice_daily():
    assert parse_frequency("hourly") is HealthCheckFrequency.HOURLY
    assert parse_frequency("weekly") is HealthCheckFrequency.TWICE_DAILY
    assert parse_frequency(None) is HealthCheckFrequency.TWICE_DAILY


def test_summary_counts():
    results = [
        HealthCheckResult("a", HEALTHY, ""),
        HealthCheckResult("b", WARNING, ""),
        HealthCheckResult("c", ERROR, ""),
        HealthCheckResult("d", HEALTHY, ""),
    ]

    assert summarize(results) == {"healthy": 2, "warnings": 1, "errors": 1, "total": 4}


async def test_failing_check_becomes_error_entry(service, session):
    session.result.scalars.return_value.all.return_value = [42]

    results = await service.run()

    assert [r.status for r in results] == [HEALTHY, WARNING, ERROR]
    failed = results[2]
    assert failed.message == "Legal documents check failed"
    assert failed.details == {"error": "connection refused"}
    assert len({r.timestamp for r in results}) == 1
    assert service.is_running is False


async def test_results_are_stored_with_summary(service, session):
    await service.run()

    stored = [c.args[0] for c in session.add.call_args_list if isinstance(c.args[0], models.SystemSetting)]
    assert stored[0].setting == LAST_RESULTS_SETTING
    payload = json.loads(stored[0].value)
    assert payload["summary"] == {"healthy": 1, "warnings": 1, "errors": 1, "total": 3}
    assert len(payload["results"]) == 3
    session.commit.assert_awaited()


async def test_admins_notified_on_issues(service, session):
    session.result.scalars.return_value.all.return_value = [1, 2]

    await service.run()

    notes = [c.args[0] for c in session.add.call_args_list if isinstance(c.args[0], models.Notification)]
    assert [n.user_id for n in notes] == [1, 2]
    assert notes[0].type == "system_health_alert"
    assert "1 Errors, 1 Warnings" in notes[0].title


async def test_no_notifications_when_all_healthy(session_factory, session):
    service = HealthCheckService(session_factory, checks=[("Database Connection", healthy_check, "failed")])
    session.result.scalars.return_value.all.return_value = [1]

    await service.run()

    assert not any(isinstance(c.args[0], models.Notification) for c in session.add.call_args_list)


async def test_concurrent_run_is_skipped(service):
    service.is_running = True

    assert await service.run() == []


async def test_legal_documents_need_three(session):
    session.result.scalars.return_value.all.return_value = ["privacy", "terms"]
    status, _, details = await check_legal_documents(session)
    assert status == WARNING
    assert details["document_count"] == 2

    session.result.scalars.return_value.all.return_value = ["privacy", "terms", "cookies"]
    status, message, _ = await check_legal_documents(session)
    assert status == HEALTHY
    assert message.startswith("3 legal documents")


async def test_update_schedule_registers_and_removes_job(service, session):
    result = await service.update_schedule(session, "daily", True)

    assert result == {"enabled": True, "frequency": "daily"}
    job = get_scheduler().get_job(HEALTH_JOB_ID)
    assert "hour='9'" in str(job.trigger)

    service.start_scheduled_checks("twice-daily")
    assert "hour='8,20'" in str(get_scheduler().get_job(HEALTH_JOB_ID).trigger)

    await service.update_schedule(session, "hourly", False)
    assert get_scheduler().get_job(HEALTH_JOB_ID) is None
