from unittest.mock import AsyncMock

import pytest

from ai.sentiment import SentimentAnalyzer, SentimentResult
from hub import models
from hub.pipelines.sentiment import (
    FeedbackItem,
    SentimentError,
    analyze_feedback,
    batch_analyze,
    sentiment_recommendations,
    summarize,
)


def make_row(score, primary=None, suggestions=None):
    return models.SentimentAnalysis(
        campaign_id=1,
        participant_id=2,
        sentiment_score=score,
        emotions={"primary": primary} if primary else {},
        suggestions=suggestions or {},
        confidence=0.9,
    )


def test_result_from_llm_clamps_and_defaults():
    result = SentimentResult.from_llm({
        "sentimentScore": 3,
        "confidence": -1,
        "emotions": {"secondary": "joy"},
        "keywords": {"positive": ["fast"], "negative": "slow"},
    })

    assert result.sentiment_score == 1.0
    assert result.confidence == 0.0
    assert result.emotions["primary"] == "neutral"
    assert result.emotions["secondary"] == []
    assert result.keywords == {"positive": ["fast"], "negative": [], "neutral": []}
    assert result.suggestions == {"improvements": [], "concerns": [], "opportunities": []}


def test_summary_of_no_analyses():
    summary = summarize([])

    assert summary.total_responses == 0
    assert summary.average_sentiment == 0.0
    assert summary.recommendations == []


def test_summary_aggregates_campaign():
    rows = [
        make_row(0.8, "joy", {"improvements": ["shorter intro"], "concerns": []}),
        make_row(0.4, "joy", {"improvements": ["shorter intro", "louder audio"]}),
        make_row(0.0, "surprise"),
    ]

    summary = summarize(rows)

    assert summary.total_responses == 3
    assert summary.average_sentiment == pytest.approx(0.4)
    assert summary.emotion_distribution == {"joy": 2, "surprise": 1}
    assert summary.key_insights["improvements"] == ["shorter intro", "louder audio"]
    assert summary.key_insights["opportunities"] == []
    assert summary.recommendations[0] == "Leverage positive feedback in marketing materials"
    assert summary.recommendations[-1].startswith('Primary emotion "joy"')


def test_insights_are_capped_at_five():
    rows = [make_row(0.1, suggestions={"concerns": [f"concern {i}"]}) for i in range(8)]

    assert len(summarize(rows).key_insights["concerns"]) == 5


@pytest.mark.parametrize("average, expected", [
    (-0.5, 2),
    (-0.3, 0),
    (0.3, 0),
    (0.31, 2),
])
def test_recommendation_thresholds(average, expected):
    assert len(sentiment_recommendations(average, {})) == expected


async def test_analyze_feedback_stores_row(session, fake_llm):
    analyzer = SentimentAnalyzer(client=fake_llm({
        "sentimentScore": -0.6,
        "emotions": {"primary": "frustration", "confidence": 0.8},
        "confidence": 0.7,
    }))

    result = await analyze_feedback(session, FeedbackItem("Too slow", 4, 9), analyzer=analyzer)

    assert result.sentiment_score == -0.6
    row = session.add.call_args.args[0]
    assert isinstance(row, models.SentimentAnalysis)
    assert row.campaign_id == 4
    assert row.analysis_type == "realtime"
    session.commit.assert_awaited_once()


async def test_analyze_feedback_wraps_failures(session):
    analyzer = SentimentAnalyzer()
    analyzer.analyze = AsyncMock(side_effect=RuntimeError("boom"))

    with pytest.raises(SentimentError):
        await analyze_feedback(session, FeedbackItem("text", 1, 1), analyzer=analyzer)
    session.rollback.assert_awaited_once()


async def test_batch_analyze_keeps_input_order(session, fake_llm):
    analyzer = SentimentAnalyzer(client=fake_llm(
        {"sentimentScore": 0.7, "emotions": {"primary": "joy"}, "confidence": 0.9},
        {"sentimentScore": -0.4, "emotions": {"primary": "anger"}, "confidence": 0.8},
    ))
    items = [FeedbackItem("Loved it", 4, 1), FeedbackItem("Too long", 4, 2)]

    results = await batch_analyze(session, items, analyzer=analyzer)

    assert [r.emotions["primary"] for r in results] == ["joy", "anger"]
    rows = [call.args[0] for call in session.add.call_args_list]
    assert [row.participant_id for row in rows] == [1, 2]
    assert {row.analysis_type for row in rows} == {"batch"}


async def test_batch_analyze_stops_on_llm_failure(session, fake_llm):
    analyzer = SentimentAnalyzer(client=fake_llm({"sentimentScore": 0.2, "confidence": 0.5}, "not json"))
    items = [FeedbackItem("ok", 4, 1), FeedbackItem("broken", 4, 2), FeedbackItem("never", 4, 3)]

    with pytest.raises(SentimentError):
        await batch_analyze(session, items, analyzer=analyzer)

    assert session.commit.await_count == 1
    session.rollback.assert_awaited_once()
    assert len(analyzer.client.calls) == 2
