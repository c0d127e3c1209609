"""Shared fixtures: scored-match factory, fake LLM client, mock DB session."""
from __future__ import annotations

import json
from contextlib import asynccontextmanager
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from hub import scheduler
from hub.selection import BehavioralInsights, PredictedPerformance, ScoredMatch


def build_match(
    participant_id: int,
    segment: str = "early_adopters",
    match_score: float = 80.0,
    confidence: float = 90.0,
    *,
    feedback_quality: float = 80.0,
    response_time: float = 80.0,
    engagement_prediction: float = 80.0,
    risk_factors: list[str] | None = None,
    match_reasons: list[str] | None = None,
) -> ScoredMatch:
    return ScoredMatch(
        participant_id=participant_id,
        match_score=match_score,
        confidence=confidence,
        segment=segment,
        predicted_performance=PredictedPerformance(
            feedback_quality=feedback_quality,
            completion_rate=90.0,
            response_time=response_time,
            engagement=70.0,
        ),
        engagement_prediction=engagement_prediction,
        match_reasons=match_reasons or [],
        behavioral_insights=BehavioralInsights(risk_factors=risk_factors or []),
    )


@pytest.fixture
def make_match():
    return build_match


class FakeCompletions:
    """Records requests and replays canned message contents."""

    def __init__(self, contents: list[str]):
        self.contents = list(contents)
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        content = self.contents.pop(0)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeLLMClient:
    def __init__(self, *responses):
        contents = [r if isinstance(r, str) or r is None else json.dumps(r) for r in responses]
        self.chat = SimpleNamespace(completions=FakeCompletions(contents))

    @property
    def calls(self) -> list[dict]:
        return self.chat.completions.calls


@pytest.fixture
def fake_llm():
    return FakeLLMClient


@pytest.fixture
def session():
    """AsyncSession stand-in; ``execute`` returns an empty result by default."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = None
    result.scalars.return_value.all.return_value = []

    mock = MagicMock()
    mock.execute = AsyncMock(return_value=result)
    mock.scalar = AsyncMock(return_value=0)
    mock.commit = AsyncMock()
    mock.rollback = AsyncMock()
    mock.flush = AsyncMock()
    mock.result = result
    return mock


@pytest.fixture
def session_factory(session):
    @asynccontextmanager
    async def factory():
        yield session

    return factory


@pytest.fixture(autouse=True)
def fresh_scheduler():
    scheduler.stop_scheduler()
    yield
    scheduler.stop_scheduler()
