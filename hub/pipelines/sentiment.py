"""Sentiment pipeline: analyze participant feedback and summarize per campaign."""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ai.sentiment import SentimentAnalyzer, SentimentResult
from hub import models

logger = logging.getLogger(__name__)

NEGATIVE_THRESHOLD = -0.3
POSITIVE_THRESHOLD = 0.3
INSIGHTS_LIMIT = 5


class SentimentError(Exception):
    """Raised when sentiment analysis fails."""
    pass


@dataclass
class FeedbackItem:
    text: str
    campaign_id: int
    participant_id: int
    response_id: int | None = None


@dataclass
class SentimentSummary:
    average_sentiment: float = 0.0
    total_responses: int = 0
    emotion_distribution: dict[str, int] = field(default_factory=dict)
    key_insights: dict[str, list[str]] = field(default_factory=dict)
    recommendations: list[str] = field(default_factory=list)


def _unique(values: Iterable[str], limit: int) -> list[str]:
    """First ``limit`` distinct values, in order of appearance."""
    return list(dict.fromkeys(values))[:limit]


def sentiment_recommendations(average: float, emotions: dict[str, int]) -> list[str]:
    recommendations = []

    if average < NEGATIVE_THRESHOLD:
        recommendations.append("Consider revising campaign content based on negative feedback patterns")
        recommendations.append("Implement immediate follow-up with dissatisfied participants")
    elif average > POSITIVE_THRESHOLD:
        recommendations.append("Leverage positive feedback in marketing materials")
        recommendations.append("Identify successful elements for future campaigns")

    if emotions:
        top_emotion = max(emotions.items(), key=lambda item: item[1])[0]
        recommendations.append(f'Primary emotion "{top_emotion}" suggests specific engagement strategies')

    return recommendations


def summarize(analyses: list[models.SentimentAnalysis]) -> SentimentSummary:
    """Aggregate stored analyses of one campaign."""
    if not analyses:
        return SentimentSummary()

    average = sum(a.sentiment_score or 0.0 for a in analyses) / len(analyses)
    emotions = dict(Counter(
        a.emotions["primary"]
        for a in analyses
        if a.emotions and a.emotions.get("primary")
    ))

    def collect(key: str) -> list[str]:
        return _unique(
            (s for a in analyses for s in (a.suggestions or {}).get(key) or []),
            INSIGHTS_LIMIT,
        )

    return SentimentSummary(
        average_sentiment=average,
        total_responses=len(analyses),
        emotion_distribution=emotions,
        key_insights={
            "improvements": collect("improvements"),
            "concerns": collect("concerns"),
            "opportunities": collect("opportunities"),
        },
        recommendations=sentiment_recommendations(average, emotions),
    )


async def analyze_feedback(
    session: AsyncSession,
    item: FeedbackItem,
    *,
    analyzer: SentimentAnalyzer | None = None,
    analysis_type: str = "realtime",
) -> SentimentResult:
    """Analyze one feedback text and store the result.

    Raises:
        SentimentError: If the LLM call or the insert fails
    """
    analyzer = analyzer or SentimentAnalyzer()
    try:
        result = await analyzer.analyze(item.text)
        session.add(models.SentimentAnalysis(
            campaign_id=item.campaign_id,
            participant_id=item.participant_id,
            response_id=item.response_id,
            sentiment_score=result.sentiment_score,
            emotions=result.emotions,
            keywords=result.keywords,
            suggestions=result.suggestions,
            confidence=result.confidence,
            analysis_type=analysis_type,
        ))
        await session.commit()
        return result
    except Exception as e:
        logger.error(f"Sentiment analysis failed for campaign {item.campaign_id}: {e}", exc_info=True)
        await session.rollback()
        raise SentimentError("Failed to analyze sentiment") from e


async def batch_analyze(
    session: AsyncSession,
    items: list[FeedbackItem],
    *,
    analyzer: SentimentAnalyzer | None = None,
) -> list[SentimentResult]:
    """Analyze items one after another on the same session."""
    analyzer = analyzer or SentimentAnalyzer()
    results = []
    for item in items:
        results.append(await analyze_feedback(session, item, analyzer=analyzer, analysis_type="batch"))
    return results


async def list_campaign_analyses(session: AsyncSession, campaign_id: int) -> list[models.SentimentAnalysis]:
    result = await session.execute(
        select(models.SentimentAnalysis)
        .where(models.SentimentAnalysis.campaign_id == campaign_id)
        .order_by(models.SentimentAnalysis.created_at.desc())
    )
    return list(result.scalars().all())


async def campaign_sentiment_summary(session: AsyncSession, campaign_id: int) -> SentimentSummary:
    analyses = await list_campaign_analyses(session, campaign_id)
    return summarize(analyses)


def analysis_to_dict(row: models.SentimentAnalysis) -> dict[str, Any]:
    return {
        "id": row.id,
        "campaign_id": row.campaign_id,
        "participant_id": row.participant_id,
        "response_id": row.response_id,
        "sentiment_score": row.sentiment_score,
        "emotions": row.emotions or {},
        "keywords": row.keywords or {},
        "suggestions": row.suggestions or {},
        "confidence": row.confidence,
        "analysis_type": row.analysis_type,
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }
