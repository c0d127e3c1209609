import pytest
from fastapi.testclient import TestClient

from ai.matching import CriteriaRecommendation
from hub import api
from hub.db import get_session
from hub.pipelines.matching import CampaignNotFound, MatchingError, MatchingRun
from hub.pipelines.pricing import PricingCalculation, PricingValidation
from hub.pipelines.sentiment import SentimentSummary
from hub.selection import build_analytics


@pytest.fixture
def client(session):
    async def override_session():
        yield session

    api.app.dependency_overrides[get_session] = override_session
    yield TestClient(api.app)
    api.app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_find_matches(client, monkeypatch, make_match):
    selected = [make_match(1, "a"), make_match(2, "b")]

    async def fake_find(session, campaign_id, criteria, target_count):
        assert (campaign_id, target_count) == (5, 2)
        return MatchingRun(
            campaign_id=campaign_id,
            matches=selected,
            analytics=build_analytics(selected, selected, target_count),
            algorithm_version="v2.1",
            processing_time_ms=12,
        )

    monkeypatch.setattr(api, "find_optimal_matches", fake_find)

    response = client.post("/ai-matching/find-matches", json={"campaign_id": 5, "target_count": 2})

    assert response.status_code == 200
    body = response.json()
    assert [m["participant_id"] for m in body["matches"]] == [1, 2]
    assert body["analytics"]["diversity_score"] == 40.0
    assert body["algorithm_version"] == "v2.1"


def test_missing_campaign_maps_to_404(client, monkeypatch):
    async def fake_find(*args):
        raise CampaignNotFound("Campaign 9 not found")

    monkeypatch.setattr(api, "find_optimal_matches", fake_find)

    response = client.post("/ai-matching/find-matches", json={"campaign_id": 9})

    assert response.status_code == 404
    assert response.json() == {"error": "not_found", "detail": "Campaign 9 not found"}


def test_matching_failure_maps_to_500(client, monkeypatch):
    async def fake_batch(*args):
        raise MatchingError("Batch scoring failed: timeout")

    monkeypatch.setattr(api, "batch_score", fake_batch)

    response = client.post("/ai-matching/batch-score", json={"campaign_id": 1, "participant_ids": [1]})

    assert response.status_code == 500
    assert response.json()["error"] == "matching_error"


def test_invalid_body_maps_to_400(client):
    response = client.post("/ai-matching/batch-score", json={"campaign_id": 1, "participant_ids": []})

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_generate_criteria(client, monkeypatch):
    async def fake_generate(session, requirements, audience, industry):
        assert industry == "fintech"
        return CriteriaRecommendation(recommended_criteria={"ageRange": [20, 35]})

    monkeypatch.setattr(api, "generate_criteria", fake_generate)

    response = client.post(
        "/ai-matching/generate-criteria",
        json={"campaign_requirements": {"goal": "onboarding"}, "target_audience": "students", "industry": "fintech"},
    )

    assert response.status_code == 200
    assert response.json()["recommended_criteria"] == {"ageRange": [20, 35]}


def test_campaign_sentiment_summary(client, monkeypatch):
    async def fake_summary(session, campaign_id):
        return SentimentSummary(average_sentiment=0.5, total_responses=2, recommendations=["x"])

    monkeypatch.setattr(api, "campaign_sentiment_summary", fake_summary)

    body = client.get("/sentiment/campaign/3").json()

    assert body["average_sentiment"] == 0.5
    assert body["total_responses"] == 2


def test_pricing_calculate_and_validate(client, monkeypatch):
    async def fake_calculate(session, campaign_type, content_type, count):
        return PricingCalculation(299.0, 15.0, count, 10, 2, 30.0, 329.0, campaign_type, content_type)

    async def fake_validate(session, campaign_type, content_type, count):
        return PricingValidation(valid=False, error="Participant count exceeds maximum of 100 for standard video")

    monkeypatch.setattr(api, "calculate_campaign_cost", fake_calculate)
    monkeypatch.setattr(api, "validate_pricing", fake_validate)
    payload = {"campaign_type": "standard", "content_type": "video", "participant_count": 12}

    assert client.post("/pricing/calculate", json=payload).json()["total_cost"] == 329.0
    assert client.post("/pricing/validate", json=payload).json()["valid"] is False


def test_manual_health_run_reports_skip(client, monkeypatch):
    async def fake_run():
        return []

    monkeypatch.setattr(api.health_service, "run", fake_run)

    assert client.post("/system-health/run").json() == {"results": [], "skipped": True}


def test_health_schedule_rejects_unknown_frequency(client):
    response = client.put("/system-health/schedule", json={"frequency": "weekly", "enabled": True})

    assert response.status_code == 400


def test_manual_reminders(client, monkeypatch):
    async def fake_send(session):
        return {"reminders_sent": 1, "total_unverified": 4}

    monkeypatch.setattr(api, "send_verification_reminders", fake_send)

    assert client.post("/verification-reminders/send").json() == {"reminders_sent": 1, "total_unverified": 4}


def test_batch_score_route(client, monkeypatch, make_match):
    seen = {}

    async def fake_batch(session, campaign_id, participant_ids, criteria):
        seen.update(participant_ids=participant_ids, criteria=criteria)
        return [make_match(pid, "a") for pid in participant_ids if pid != 2]

    monkeypatch.setattr(api, "batch_score", fake_batch)

    response = client.post(
        "/ai-matching/batch-score",
        json={
            "campaign_id": 1,
            "participant_ids": [3, 2, 1],
            "criteria": {"quality_requirements": {"min_feedback_quality": 60}},
        },
    )

    assert response.status_code == 200
    assert [s["participant_id"] for s in response.json()["scores"]] == [3, 1]
    assert seen["participant_ids"] == [3, 2, 1]
    assert seen["criteria"] == {"quality_requirements": {"min_feedback_quality": 60}}
