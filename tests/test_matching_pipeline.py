import pytest

from hub import models
from hub.pipelines import matching
from hub.pipelines.matching import (
    CampaignNotFound,
    MatchingError,
    ParticipantNotFound,
    quality_requirements_from,
)


@pytest.fixture
def campaign():
    return models.Campaign(id=5, client_id=1, title="Snack packaging", participant_count=3)


@pytest.fixture
def stub_loaders(monkeypatch, campaign, make_match):
    scored = [
        make_match(1, "a", match_score=90, match_reasons=["snacker"]),
        make_match(2, "a", match_score=80, feedback_quality=20),
        make_match(3, "b", match_score=70, match_reasons=["snacker"]),
        make_match(4, "b", match_score=60),
    ]

    async def load_campaign(session, campaign_id):
        return campaign

    async def load_participants(session):
        return [models.User(id=m.participant_id, email=f"p{m.participant_id}@example.com") for m in scored]

    async def score_participants(session, scorer, ids, criteria, campaign):
        assert ids == [1, 2, 3, 4]
        return scored

    monkeypatch.setattr(matching, "load_campaign", load_campaign)
    monkeypatch.setattr(matching, "load_eligible_participants", load_participants)
    monkeypatch.setattr(matching, "score_participants", score_participants)
    return scored


def test_quality_requirements_from_criteria():
    assert quality_requirements_from({}) is None
    requirements = quality_requirements_from({"quality_requirements": {"min_feedback_quality": 50}})
    assert requirements.min_feedback_quality == 50
    assert requirements.min_engagement_level is None


async def test_find_optimal_matches_selects_and_persists(session, stub_loaders):
    criteria = {"quality_requirements": {"min_feedback_quality": 50}}

    run = await matching.find_optimal_matches(session, 5, criteria, target_count=2, scorer=object())

    assert [m.participant_id for m in run.matches] == [1, 3]
    assert run.analytics.total_participants == 4
    assert run.analytics.segment_distribution == {"a": 1, "b": 1}
    assert run.analytics.top_matching_factors == ["snacker"]

    added = [c.args[0] for c in session.add.call_args_list]
    history = [row for row in added if isinstance(row, models.MatchingHistory)]
    assert len(history) == 4
    assert [row.participant_id for row in history if row.is_selected] == [1, 3]
    summary = [row for row in added if isinstance(row, models.CampaignMatching)]
    assert summary[0].matched_participants == 2
    assert summary[0].matching_criteria == criteria
    session.commit.assert_awaited_once()


async def test_missing_campaign_is_not_wrapped(session):
    with pytest.raises(CampaignNotFound):
        await matching.find_optimal_matches(session, 99, {}, scorer=object())
    session.rollback.assert_awaited_once()


async def test_unexpected_errors_become_matching_errors(session, monkeypatch, campaign):
    async def load_campaign(session, campaign_id):
        return campaign

    async def explode(session):
        raise RuntimeError("db gone")

    monkeypatch.setattr(matching, "load_campaign", load_campaign)
    monkeypatch.setattr(matching, "load_eligible_participants", explode)

    with pytest.raises(MatchingError, match="db gone"):
        await matching.find_optimal_matches(session, 5, {}, scorer=object())


async def test_analyze_participant_requires_profile(session):
    with pytest.raises(ParticipantNotFound):
        await matching.analyze_participant(session, 12, scorer=object())


async def test_cached_analysis_is_reused(session, fake_llm):
    cached = models.BehavioralAnalysis(participant_id=8, analysis_type="full_profile", feedback_quality=77)
    session.result.scalar_one_or_none.return_value = cached
    profile = models.ParticipantProfile(user_id=8, demographics={"age": 40})
    client = fake_llm()

    analysis = await matching.get_or_create_analysis(session, matching.MatchScorer(client=client), profile)

    assert analysis["feedback_quality"] == 77
    assert client.calls == []


async def test_learn_from_results_stores_insights(session, monkeypatch, campaign, fake_llm):
    async def load_campaign(session, campaign_id):
        return campaign

    monkeypatch.setattr(matching, "load_campaign", load_campaign)
    client = fake_llm({"successFactors": ["clear brief"], "improvementSuggestions": ["recruit older"]})

    record = await matching.learn_from_results(
        session, 5, [{"participant_id": 1, "rating": 4}], scorer=matching.MatchScorer(client=client),
    )

    assert record.feedback_type == "campaign_results"
    assert record.improvement_suggestions == ["recruit older"]
    assert record.human_feedback == {"participant_feedback": [{"participant_id": 1, "rating": 4}]}
    session.commit.assert_awaited_once()


@pytest.fixture
def stub_batch_loaders(monkeypatch, campaign):
    profiles = {
        1: models.ParticipantProfile(user_id=1, demographics={"age": 22}),
        3: models.ParticipantProfile(user_id=3, demographics={"age": 47}),
        4: models.ParticipantProfile(user_id=4, demographics={"age": 35}),
    }

    async def load_campaign(session, campaign_id):
        return campaign

    async def load_profile(session, user_id):
        return profiles.get(user_id)

    async def get_or_create_analysis(session, scorer, profile):
        return {"participant_id": profile.user_id}

    monkeypatch.setattr(matching, "load_campaign", load_campaign)
    monkeypatch.setattr(matching, "load_profile", load_profile)
    monkeypatch.setattr(matching, "get_or_create_analysis", get_or_create_analysis)


async def test_explicit_zero_target_selects_nobody(session, stub_loaders):
    run = await matching.find_optimal_matches(session, 5, {}, target_count=0, scorer=object())

    assert run.matches == []
    assert run.analytics.total_participants == 4
    assert run.analytics.recommended_sample_size == 0


async def test_batch_score_skips_missing_profiles_and_keeps_order(session, stub_batch_loaders, fake_llm):
    client = fake_llm(
        {"matchScore": 91, "confidence": 80, "segmentClassification": "retirees"},
        {"matchScore": 55, "confidence": 70, "segmentClassification": "students"},
    )

    scored = await matching.batch_score(
        session, 5, [3, 2, 1], {"demographics": {"region": "north"}}, scorer=matching.MatchScorer(client=client),
    )

    assert [m.participant_id for m in scored] == [3, 1]
    assert [m.segment for m in scored] == ["retirees", "students"]
    assert len(client.calls) == 2
    assert '"region": "north"' in client.calls[0]["messages"][-1]["content"]
    session.commit.assert_awaited_once()


async def test_batch_score_llm_failure_rolls_back(session, stub_batch_loaders, fake_llm):
    client = fake_llm({"matchScore": 91, "confidence": 80}, "not json")

    with pytest.raises(MatchingError, match="Batch scoring failed"):
        await matching.batch_score(session, 5, [1, 3, 4], {}, scorer=matching.MatchScorer(client=client))

    session.rollback.assert_awaited_once()
    session.commit.assert_not_awaited()
