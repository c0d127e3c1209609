"""LLM-backed participant analysis and scoring.

Wraps the matching prompts and coerces model output into typed results so
that missing or malformed fields never leak past this module.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from openai import AsyncOpenAI

from ai.llm import complete_json, to_json
from config.prompts import (
    CRITERIA_RECOMMENDATION_PROMPT,
    LEARNING_PROMPT,
    MATCH_SCORE_PROMPT,
    PROFILE_ANALYSIS_PROMPT,
)
from hub.selection import (
    BehavioralInsights,
    PersonalityProfile,
    PredictedPerformance,
    ScoredMatch,
)

logger = logging.getLogger(__name__)

UNSEGMENTED = "unclassified"


def _number(data: dict, key: str, default: float = 0.0) -> float:
    value = data.get(key, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _int_or_none(data: dict, key: str) -> int | None:
    value = data.get(key)
    try:
        return int(round(float(value)))
    except (TypeError, ValueError):
        return None


def _strings(data: dict, key: str) -> list[str]:
    value = data.get(key)
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


def _section(data: dict, key: str) -> dict:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


@dataclass
class ProfileAnalysis:
    """Behavioral analysis of one participant, shaped like the stored row."""
    behavioral_profile: dict = field(default_factory=dict)
    personality_traits: dict = field(default_factory=dict)
    motivational_factors: dict = field(default_factory=dict)
    decision_making_style: dict = field(default_factory=dict)
    communication_preferences: dict = field(default_factory=dict)
    brand_affinity_patterns: dict = field(default_factory=dict)
    purchase_decision_factors: dict = field(default_factory=dict)
    content_consumption_behavior: dict = field(default_factory=dict)
    influence_factors: list[str] = field(default_factory=list)
    adaptability_score: int | None = None
    risk_tolerance: str | None = None
    innovation_adoption: str | None = None
    social_engagement_level: int | None = None
    feedback_quality: int | None = None
    response_reliability: int | None = None
    engagement_prediction: int | None = None
    confidence_score: int | None = None

    @classmethod
    def from_llm(cls, data: dict[str, Any]) -> ProfileAnalysis:
        risk = data.get("riskTolerance")
        adoption = data.get("innovationAdoption")
        return cls(
            behavioral_profile=_section(data, "behavioralProfile"),
            personality_traits=_section(data, "personalityTraits"),
            motivational_factors=_section(data, "motivationalFactors"),
            decision_making_style=_section(data, "decisionMakingStyle"),
            communication_preferences=_section(data, "communicationPreferences"),
            brand_affinity_patterns=_section(data, "brandAffinityPatterns"),
            purchase_decision_factors=_section(data, "purchaseDecisionFactors"),
            content_consumption_behavior=_section(data, "contentConsumptionBehavior"),
            influence_factors=_strings(data, "influenceFactors"),
            adaptability_score=_int_or_none(data, "adaptabilityScore"),
            risk_tolerance=str(risk)[:20] if risk else None,
            innovation_adoption=str(adoption)[:30] if adoption else None,
            social_engagement_level=_int_or_none(data, "socialEngagementLevel"),
            feedback_quality=_int_or_none(data, "feedbackQuality"),
            response_reliability=_int_or_none(data, "responseReliability"),
            engagement_prediction=_int_or_none(data, "engagementPrediction"),
            confidence_score=_int_or_none(data, "confidenceScore"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CriteriaRecommendation:
    recommended_criteria: dict = field(default_factory=dict)
    expected_results: dict = field(default_factory=dict)
    alternative_options: list[dict] = field(default_factory=list)


def parse_scored_match(participant_id: int, data: dict[str, Any]) -> ScoredMatch:
    """Build a ScoredMatch from the raw scoring response."""
    insights = _section(data, "behavioralInsights")
    personality = _section(data, "personalityProfile")
    performance = _section(data, "predictedPerformance")
    segment = str(data.get("segmentClassification") or "").strip() or UNSEGMENTED

    return ScoredMatch(
        participant_id=participant_id,
        match_score=_number(data, "matchScore"),
        confidence=_number(data, "confidence"),
        segment=segment,
        predicted_performance=PredictedPerformance(
            feedback_quality=_number(performance, "feedbackQuality"),
            completion_rate=_number(performance, "completionRate"),
            response_time=_number(performance, "responseTime"),
            engagement=_number(performance, "engagement"),
        ),
        engagement_prediction=_number(data, "engagementPrediction"),
        match_reasons=_strings(data, "matchReasons"),
        behavioral_insights=BehavioralInsights(
            strengths=_strings(insights, "strengths"),
            considerations=_strings(insights, "considerations"),
            recommendations=_strings(insights, "recommendations"),
            risk_factors=_strings(insights, "riskFactors"),
        ),
        personality_profile=PersonalityProfile(
            traits=_strings(personality, "traits"),
            communication_style=str(personality.get("communicationStyle") or ""),
            decision_making_style=str(personality.get("decisionMakingStyle") or ""),
            motivation_factors=_strings(personality, "motivationFactors"),
        ),
    )


class MatchScorer:
    """Prompts the LLM for profile analyses, match scores and criteria.

    Every method issues exactly one completion; errors propagate as
    ``ai.llm.LLMError``.
    """

    def __init__(self, client: AsyncOpenAI | None = None) -> None:
        self.client = client

    async def analyze_profile(
        self,
        profile: dict[str, Any],
        responses: list[dict[str, Any]],
    ) -> ProfileAnalysis:
        """Analyze a participant's profile and questionnaire answers."""
        participant_data = {
            "profile": profile,
            "responses": responses,
            "demographics": profile.get("demographics") or {},
            "beliefs": profile.get("beliefs") or {},
            "lifestyle": profile.get("lifestyle") or {},
            "contentHabits": profile.get("content_habits") or {},
            "behavior": profile.get("behavior") or {},
        }
        prompt = PROFILE_ANALYSIS_PROMPT.format(participant_data=to_json(participant_data))
        data = await complete_json(prompt, temperature=0.3, max_tokens=3000, client=self.client)
        logger.debug(f"Profile analysis keys: {sorted(data)}")
        return ProfileAnalysis.from_llm(data)

    async def score_participant(
        self,
        participant_id: int,
        profile: dict[str, Any],
        analysis: dict[str, Any],
        criteria: dict[str, Any],
        campaign: dict[str, Any],
    ) -> ScoredMatch:
        """Score one participant against campaign criteria."""
        prompt = MATCH_SCORE_PROMPT.format(
            profile=to_json(profile),
            analysis=to_json(analysis),
            criteria=to_json(criteria),
            campaign=to_json(campaign),
        )
        data = await complete_json(prompt, temperature=0.3, max_tokens=2000, client=self.client)
        return parse_scored_match(participant_id, data)

    async def recommend_criteria(
        self,
        requirements: Any,
        target_audience: Any,
        industry: str,
        history: list[dict[str, Any]],
    ) -> CriteriaRecommendation:
        """Recommend matching criteria for a new campaign."""
        prompt = CRITERIA_RECOMMENDATION_PROMPT.format(
            requirements=to_json(requirements),
            target_audience=to_json(target_audience),
            industry=industry,
            history=to_json(history),
        )
        data = await complete_json(prompt, temperature=0.2, max_tokens=2000, client=self.client)
        alternatives = data.get("alternativeOptions")
        return CriteriaRecommendation(
            recommended_criteria=_section(data, "recommendedCriteria"),
            expected_results=_section(data, "expectedResults"),
            alternative_options=[a for a in alternatives if isinstance(a, dict)]
            if isinstance(alternatives, list) else [],
        )

    async def learn_from_results(
        self,
        campaign: dict[str, Any],
        feedback: Any,
    ) -> dict[str, Any]:
        """Extract learning insights from a finished campaign."""
        prompt = LEARNING_PROMPT.format(campaign=to_json(campaign), feedback=to_json(feedback))
        return await complete_json(prompt, temperature=0.2, max_tokens=1500, client=self.client)
