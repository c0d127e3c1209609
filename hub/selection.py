"""Participant selection for matching runs.

Takes LLM-scored participants and picks a target-sized, segment-diversified
subset, then summarizes the selection. Nothing in here talks to the LLM or
the database, so it is safe to call from tests and batch jobs alike.
"""
from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable

logger = logging.getLogger(__name__)

LOW_RISK = "low"
MEDIUM_RISK = "medium"
HIGH_RISK = "high"

# Diversity is measured against at least this many segments
DIVERSITY_SEGMENT_FLOOR = 5
TOP_FACTORS_LIMIT = 10


@dataclass
class PredictedPerformance:
    """LLM predictions of how a participant will perform (each 0-100)."""
    feedback_quality: float = 0.0
    completion_rate: float = 0.0
    response_time: float = 0.0
    engagement: float = 0.0


@dataclass
class BehavioralInsights:
    """Qualitative notes attached to a scored participant."""
    strengths: list[str] = field(default_factory=list)
    considerations: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    risk_factors: list[str] = field(default_factory=list)


@dataclass
class PersonalityProfile:
    """Personality summary relevant to a campaign."""
    traits: list[str] = field(default_factory=list)
    communication_style: str = ""
    decision_making_style: str = ""
    motivation_factors: list[str] = field(default_factory=list)


@dataclass
class ScoredMatch:
    """A participant scored against a campaign."""
    participant_id: int
    match_score: float
    confidence: float
    segment: str
    predicted_performance: PredictedPerformance = field(default_factory=PredictedPerformance)
    engagement_prediction: float = 0.0
    match_reasons: list[str] = field(default_factory=list)
    behavioral_insights: BehavioralInsights = field(default_factory=BehavioralInsights)
    personality_profile: PersonalityProfile = field(default_factory=PersonalityProfile)

    @property
    def weighted_score(self) -> float:
        """Match score discounted by the model's confidence."""
        return self.match_score * (self.confidence / 100)

    @property
    def risk_level(self) -> str:
        """Risk bucket from the number of flagged risk factors."""
        count = len(self.behavioral_insights.risk_factors)
        if count == 0:
            return LOW_RISK
        if count <= 2:
            return MEDIUM_RISK
        return HIGH_RISK

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class QualityRequirements:
    """Optional minimum thresholds; ``None`` or 0 disables a check."""
    min_feedback_quality: float | None = None
    min_response_reliability: float | None = None
    min_engagement_level: float | None = None


@dataclass
class RiskAssessment:
    high_risk_participants: int = 0
    medium_risk_participants: int = 0
    low_risk_participants: int = 0


@dataclass
class MatchingAnalytics:
    """Aggregate view of a selection."""
    total_participants: int
    matched_participants: int
    average_match_score: float
    top_matching_factors: list[str]
    segment_distribution: dict[str, int]
    recommended_sample_size: int
    diversity_score: float
    quality_score: float
    risk_assessment: RiskAssessment
    improvement_suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def meets_requirements(match: ScoredMatch, requirements: QualityRequirements | None) -> bool:
    """Check a single participant against the quality thresholds.

    Response reliability is read from the predicted response-time score and
    engagement from the overall engagement prediction.
    """
    if requirements is None:
        return True

    perf = match.predicted_performance
    checks = (
        (requirements.min_feedback_quality, perf.feedback_quality),
        (requirements.min_response_reliability, perf.response_time),
        (requirements.min_engagement_level, match.engagement_prediction),
    )
    return all(not threshold or value >= threshold for threshold, value in checks)


def filter_qualified(
    matches: Iterable[ScoredMatch],
    requirements: QualityRequirements | None = None,
) -> list[ScoredMatch]:
    """Drop participants failing any supplied threshold."""
    return [m for m in matches if meets_requirements(m, requirements)]


def rank_matches(matches: Iterable[ScoredMatch]) -> list[ScoredMatch]:
    """Sort by confidence-discounted score, best first."""
    return sorted(matches, key=lambda m: m.weighted_score, reverse=True)


def group_by_segment(matches: Iterable[ScoredMatch]) -> dict[str, list[ScoredMatch]]:
    """Bucket matches by segment, preserving order inside each bucket."""
    groups: dict[str, list[ScoredMatch]] = {}
    for match in matches:
        groups.setdefault(match.segment, []).append(match)
    return groups


def segment_quotas(segments: list[str], target_count: int) -> dict[str, int]:
    """Even split of ``target_count`` with the remainder going to the first segments."""
    if not segments:
        return {}
    per_segment, remainder = divmod(target_count, len(segments))
    return {
        segment: per_segment + (1 if index < remainder else 0)
        for index, segment in enumerate(segments)
    }


def ensure_diversity(ranked: list[ScoredMatch], target_count: int) -> list[ScoredMatch]:
    """Fill per-segment quotas from a ranked list, then backfill by rank.

    Args:
        ranked: Qualified matches, best first
        target_count: Desired selection size

    Returns:
        At most ``target_count`` distinct matches
    """
    if target_count <= 0 or not ranked:
        return []

    groups = group_by_segment(ranked)
    quotas = segment_quotas(list(groups), target_count)

    selected: list[ScoredMatch] = []
    for segment, members in groups.items():
        selected.extend(members[: quotas[segment]])

    if len(selected) < target_count:
        taken = {id(m) for m in selected}
        for match in ranked:
            if len(selected) >= target_count:
                break
            if id(match) not in taken:
                selected.append(match)
                taken.add(id(match))
        logger.debug(f"Backfilled selection to {len(selected)} of {target_count}")

    return selected[:target_count]


def select_matches(
    matches: Iterable[ScoredMatch],
    target_count: int,
    requirements: QualityRequirements | None = None,
) -> list[ScoredMatch]:
    """Qualify, rank and diversify a scored pool.

    The result has exactly ``min(target_count, qualified)`` members and
    every member passes ``requirements``.
    """
    pool = list(matches)
    qualified = filter_qualified(pool, requirements)
    ranked = rank_matches(qualified)
    selected = ensure_diversity(ranked, target_count)

    logger.info(
        f"Selected {len(selected)} of {len(qualified)} qualified "
        f"({len(pool)} scored, target {target_count})"
    )
    return selected


def diversity_score(segment_count: int) -> float:
    """0 for a single segment, otherwise share of a five-segment spread."""
    if segment_count <= 1:
        return 0.0
    return segment_count / max(DIVERSITY_SEGMENT_FLOOR, segment_count) * 100


def top_matching_factors(matches: Iterable[ScoredMatch], limit: int = TOP_FACTORS_LIMIT) -> list[str]:
    """Most frequent match reasons across the selection."""
    counts = Counter(reason for m in matches for reason in m.match_reasons)
    return [reason for reason, _ in counts.most_common(limit)]


def assess_risk(matches: Iterable[ScoredMatch]) -> RiskAssessment:
    """Count participants per risk bucket; buckets partition the input."""
    levels = Counter(m.risk_level for m in matches)
    return RiskAssessment(
        high_risk_participants=levels[HIGH_RISK],
        medium_risk_participants=levels[MEDIUM_RISK],
        low_risk_participants=levels[LOW_RISK],
    )


def _quality(match: ScoredMatch) -> float:
    perf = match.predicted_performance
    return (perf.feedback_quality + perf.engagement + perf.completion_rate) / 3


def build_analytics(
    all_matches: list[ScoredMatch],
    selected: list[ScoredMatch],
    target_count: int,
    *,
    sample_ratio: float = 0.7,
) -> MatchingAnalytics:
    """Summarize a selection against the full scored pool.

    Args:
        all_matches: Every scored participant, qualified or not
        selected: Output of :func:`select_matches`
        target_count: Requested selection size
        sample_ratio: Share of the pool suggested as a sample size

    Returns:
        MatchingAnalytics for the selection
    """
    matched = len(selected)
    distribution = dict(Counter(m.segment for m in selected))

    return MatchingAnalytics(
        total_participants=len(all_matches),
        matched_participants=matched,
        average_match_score=sum(m.match_score for m in selected) / matched if matched else 0.0,
        top_matching_factors=top_matching_factors(selected),
        segment_distribution=distribution,
        recommended_sample_size=min(target_count, math.floor(len(all_matches) * sample_ratio)),
        diversity_score=diversity_score(len(distribution)),
        quality_score=sum(_quality(m) for m in selected) / matched if matched else 0.0,
        risk_assessment=assess_risk(selected),
    )
