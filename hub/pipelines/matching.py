"""Matching pipeline: Campaign → Participants with LLM scoring and diversified selection.

Workflow for a matching run:
1. Load the campaign and every eligible participant
2. Reuse or create a behavioral analysis per participant
3. Score each participant against the criteria (one LLM call each)
4. Qualify, rank and diversify the pool (see ``hub.selection``)
5. Persist per-participant history and run analytics
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ai.matching import CriteriaRecommendation, MatchScorer, ProfileAnalysis
from hub import models
from hub.config import settings
from hub.selection import (
    MatchingAnalytics,
    QualityRequirements,
    ScoredMatch,
    build_analytics,
    select_matches,
)

logger = logging.getLogger(__name__)


@dataclass
class MatchingRun:
    """Result of a matching run."""
    campaign_id: int
    matches: list[ScoredMatch]
    analytics: MatchingAnalytics
    algorithm_version: str
    processing_time_ms: int


class MatchingError(Exception):
    """Raised when the matching pipeline fails."""
    pass


class CampaignNotFound(MatchingError):
    """Raised when a campaign id does not exist."""
    pass


class ParticipantNotFound(MatchingError):
    """Raised when a participant has no profile."""
    pass


def columns_as_dict(row: models.Base, exclude: tuple[str, ...] = ()) -> dict[str, Any]:
    """Plain dict of a row's mapped columns, for prompts and responses."""
    return {
        column.key: getattr(row, column.key)
        for column in row.__table__.columns
        if column.key not in exclude
    }


def quality_requirements_from(criteria: dict[str, Any] | None) -> QualityRequirements | None:
    """Extract optional thresholds from a criteria mapping."""
    quality = (criteria or {}).get("quality_requirements")
    if not quality:
        return None
    return QualityRequirements(
        min_feedback_quality=quality.get("min_feedback_quality"),
        min_response_reliability=quality.get("min_response_reliability"),
        min_engagement_level=quality.get("min_engagement_level"),
    )


async def load_campaign(session: AsyncSession, campaign_id: int) -> models.Campaign:
    result = await session.execute(select(models.Campaign).where(models.Campaign.id == campaign_id))
    campaign = result.scalar_one_or_none()
    if campaign is None:
        raise CampaignNotFound(f"Campaign {campaign_id} not found")
    return campaign


async def load_eligible_participants(session: AsyncSession) -> list[models.User]:
    """Active, non-banned participants."""
    query = select(models.User).where(
        models.User.role == "participant",
        models.User.is_active.is_(True),
        models.User.is_banned.is_(False),
    ).order_by(models.User.id)
    result = await session.execute(query)
    return list(result.scalars().all())


async def load_profile(session: AsyncSession, user_id: int) -> models.ParticipantProfile | None:
    result = await session.execute(
        select(models.ParticipantProfile).where(models.ParticipantProfile.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def load_responses(session: AsyncSession, user_id: int) -> list[dict[str, Any]]:
    result = await session.execute(
        select(models.ParticipantResponse)
        .where(models.ParticipantResponse.user_id == user_id)
        .order_by(models.ParticipantResponse.responded_at)
    )
    return [
        {"question_id": r.question_id, "response": r.response}
        for r in result.scalars().all()
    ]


async def get_latest_analysis(
    session: AsyncSession,
    participant_id: int,
) -> models.BehavioralAnalysis | None:
    result = await session.execute(
        select(models.BehavioralAnalysis)
        .where(models.BehavioralAnalysis.participant_id == participant_id)
        .order_by(models.BehavioralAnalysis.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def store_analysis(
    session: AsyncSession,
    participant_id: int,
    analysis: ProfileAnalysis,
    analysis_type: str = "full_profile",
) -> models.BehavioralAnalysis:
    record = models.BehavioralAnalysis(
        participant_id=participant_id,
        analysis_type=analysis_type,
        **analysis.to_dict(),
    )
    session.add(record)
    await session.flush()
    return record


async def get_or_create_analysis(
    session: AsyncSession,
    scorer: MatchScorer,
    profile: models.ParticipantProfile,
) -> dict[str, Any]:
    """Cached behavioral analysis for a participant, analysing on a miss."""
    cached = await get_latest_analysis(session, profile.user_id)
    if cached is not None:
        return columns_as_dict(cached, exclude=("id",))

    logger.info(f"No cached analysis for participant {profile.user_id}, analysing")
    responses = await load_responses(session, profile.user_id)
    analysis = await scorer.analyze_profile(columns_as_dict(profile), responses)
    stored = await store_analysis(session, profile.user_id, analysis)
    return columns_as_dict(stored, exclude=("id",))


async def score_participants(
    session: AsyncSession,
    scorer: MatchScorer,
    participant_ids: list[int],
    criteria: dict[str, Any],
    campaign: models.Campaign,
) -> list[ScoredMatch]:
    """Score each participant that has a profile; others are skipped."""
    campaign_data = columns_as_dict(campaign)
    scored: list[ScoredMatch] = []

    for participant_id in participant_ids:
        profile = await load_profile(session, participant_id)
        if profile is None:
            logger.debug(f"Participant {participant_id} has no profile, skipping")
            continue

        analysis = await get_or_create_analysis(session, scorer, profile)
        match = await scorer.score_participant(
            participant_id,
            columns_as_dict(profile),
            analysis,
            criteria,
            campaign_data,
        )
        scored.append(match)

    logger.info(f"Scored {len(scored)} of {len(participant_ids)} participants")
    return scored


async def persist_matching_run(
    session: AsyncSession,
    run: MatchingRun,
    scored: list[ScoredMatch],
    criteria: dict[str, Any],
) -> None:
    """Store one history row per scored participant and the run analytics."""
    selected_ids = {id(m) for m in run.matches}

    for match in scored:
        perf = match.predicted_performance
        is_selected = id(match) in selected_ids
        session.add(models.MatchingHistory(
            campaign_id=run.campaign_id,
            participant_id=match.participant_id,
            match_score=match.match_score,
            confidence=match.confidence,
            match_reasons=match.match_reasons,
            behavioral_insights=match.to_dict()["behavioral_insights"],
            segment_classification=match.segment[:100],
            engagement_prediction=match.engagement_prediction,
            feedback_quality=perf.feedback_quality,
            completion_rate=perf.completion_rate,
            response_time=perf.response_time,
            matching_algorithm_version=run.algorithm_version,
            is_selected=is_selected,
            selection_reason="selected" if is_selected else "not selected",
        ))

    analytics = run.analytics
    session.add(models.CampaignMatching(
        campaign_id=run.campaign_id,
        matching_criteria=criteria,
        total_participants=analytics.total_participants,
        matched_participants=analytics.matched_participants,
        average_match_score=analytics.average_match_score,
        top_matching_factors=analytics.top_matching_factors,
        segment_distribution=analytics.segment_distribution,
        diversity_score=analytics.diversity_score,
        quality_score=analytics.quality_score,
        algorithm_version=run.algorithm_version,
        processing_time_ms=run.processing_time_ms,
    ))

    await session.commit()
    logger.info(f"Persisted {len(scored)} history rows for campaign {run.campaign_id}")


async def find_optimal_matches(
    session: AsyncSession,
    campaign_id: int,
    criteria: dict[str, Any],
    target_count: int | None = None,
    *,
    scorer: MatchScorer | None = None,
) -> MatchingRun:
    """Execute a complete matching run for a campaign.

    Args:
        session: Database session
        campaign_id: Campaign to match
        criteria: Matching criteria; only ``quality_requirements`` is used locally
        target_count: Desired selection size (default from config)
        scorer: LLM scorer override

    Returns:
        MatchingRun with the selection and its analytics

    Raises:
        CampaignNotFound: If the campaign does not exist
        MatchingError: If scoring or persistence fails
    """
    if target_count is None:
        target_count = settings.matching.default_target_count
    scorer = scorer or MatchScorer()
    started = time.perf_counter()

    try:
        campaign = await load_campaign(session, campaign_id)
        logger.info(f"Starting matching for campaign {campaign_id} (target={target_count})")

        participants = await load_eligible_participants(session)
        scored = await score_participants(
            session,
            scorer,
            [p.id for p in participants],
            criteria,
            campaign,
        )

        selected = select_matches(scored, target_count, quality_requirements_from(criteria))
        analytics = build_analytics(
            scored,
            selected,
            target_count,
            sample_ratio=settings.matching.recommended_sample_ratio,
        )

        run = MatchingRun(
            campaign_id=campaign_id,
            matches=selected,
            analytics=analytics,
            algorithm_version=settings.matching.algorithm_version,
            processing_time_ms=int((time.perf_counter() - started) * 1000),
        )
        await persist_matching_run(session, run, scored, criteria)

        logger.info(f"Successfully completed matching for campaign {campaign_id}")
        return run

    except MatchingError:
        await session.rollback()
        raise
    except Exception as e:
        logger.error(f"Matching failed for campaign {campaign_id}: {e}", exc_info=True)
        await session.rollback()
        raise MatchingError(f"Matching pipeline failed: {e}") from e


async def batch_score(
    session: AsyncSession,
    campaign_id: int,
    participant_ids: list[int],
    criteria: dict[str, Any],
    *,
    scorer: MatchScorer | None = None,
) -> list[ScoredMatch]:
    """Score specific participants without running selection."""
    scorer = scorer or MatchScorer()
    try:
        campaign = await load_campaign(session, campaign_id)
        scored = await score_participants(session, scorer, participant_ids, criteria, campaign)
        await session.commit()
        return scored
    except MatchingError:
        await session.rollback()
        raise
    except Exception as e:
        logger.error(f"Batch scoring failed for campaign {campaign_id}: {e}", exc_info=True)
        await session.rollback()
        raise MatchingError(f"Batch scoring failed: {e}") from e


async def analyze_participant(
    session: AsyncSession,
    participant_id: int,
    *,
    scorer: MatchScorer | None = None,
) -> ProfileAnalysis:
    """Run a fresh behavioral analysis for one participant (not cached)."""
    scorer = scorer or MatchScorer()
    profile = await load_profile(session, participant_id)
    if profile is None:
        raise ParticipantNotFound(f"Participant profile {participant_id} not found")

    try:
        responses = await load_responses(session, participant_id)
        return await scorer.analyze_profile(columns_as_dict(profile), responses)
    except Exception as e:
        logger.error(f"Profile analysis failed for participant {participant_id}: {e}", exc_info=True)
        raise MatchingError(f"Profile analysis failed: {e}") from e


async def load_matching_history_sample(session: AsyncSession, limit: int) -> list[dict[str, Any]]:
    """Most recent run analytics, newest first."""
    if limit <= 0:
        return []
    result = await session.execute(
        select(models.CampaignMatching)
        .order_by(models.CampaignMatching.created_at.desc())
        .limit(limit)
    )
    return [
        columns_as_dict(row, exclude=("id", "matching_criteria"))
        for row in result.scalars().all()
    ]


async def generate_criteria(
    session: AsyncSession,
    requirements: Any,
    target_audience: Any,
    industry: str,
    *,
    scorer: MatchScorer | None = None,
) -> CriteriaRecommendation:
    """Recommend matching criteria using recent run history as context."""
    scorer = scorer or MatchScorer()
    try:
        history = await load_matching_history_sample(session, settings.matching.history_sample_size)
        return await scorer.recommend_criteria(requirements, target_audience, industry, history)
    except Exception as e:
        logger.error(f"Criteria recommendation failed: {e}", exc_info=True)
        raise MatchingError(f"Criteria recommendation failed: {e}") from e


async def learn_from_results(
    session: AsyncSession,
    campaign_id: int,
    participant_feedback: Any,
    *,
    scorer: MatchScorer | None = None,
) -> models.AILearningFeedback:
    """Analyze campaign feedback and store the resulting insights."""
    scorer = scorer or MatchScorer()
    try:
        campaign = await load_campaign(session, campaign_id)
        insights = await scorer.learn_from_results(columns_as_dict(campaign), participant_feedback)

        suggestions = insights.get("improvementSuggestions")
        record = models.AILearningFeedback(
            campaign_id=campaign_id,
            feedback_type="campaign_results",
            feedback_data=insights,
            improvement_suggestions=suggestions if isinstance(suggestions, list) else [],
            human_feedback={"participant_feedback": participant_feedback},
            action_taken="processed_for_learning",
            impact_measured=False,
        )
        session.add(record)
        await session.commit()

        logger.info(f"Stored learning insights for campaign {campaign_id}")
        return record

    except MatchingError:
        await session.rollback()
        raise
    except Exception as e:
        logger.error(f"Learning from campaign {campaign_id} failed: {e}", exc_info=True)
        await session.rollback()
        raise MatchingError(f"Learning from results failed: {e}") from e
