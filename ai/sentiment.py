"""Sentiment analysis of participant feedback via the LLM."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from openai import AsyncOpenAI

from ai.llm import complete_json
from config.prompts import SENTIMENT_PROMPT, SENTIMENT_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


def _clamp(value: Any, low: float, high: float, default: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


def _bucket(data: Any, keys: tuple[str, ...]) -> dict[str, list[str]]:
    data = data if isinstance(data, dict) else {}
    return {
        key: [str(v) for v in data.get(key) or [] if v is not None]
        if isinstance(data.get(key), list) else []
        for key in keys
    }


@dataclass
class SentimentResult:
    sentiment_score: float  # -1.0 .. 1.0
    emotions: dict[str, Any] = field(default_factory=dict)
    keywords: dict[str, list[str]] = field(default_factory=dict)
    suggestions: dict[str, list[str]] = field(default_factory=dict)
    confidence: float = 0.0  # 0.0 .. 1.0

    @classmethod
    def from_llm(cls, data: dict[str, Any]) -> SentimentResult:
        emotions = data.get("emotions") if isinstance(data.get("emotions"), dict) else {}
        secondary = emotions.get("secondary")
        return cls(
            sentiment_score=_clamp(data.get("sentimentScore"), -1.0, 1.0),
            emotions={
                "primary": str(emotions.get("primary") or "neutral"),
                "secondary": [str(e) for e in secondary] if isinstance(secondary, list) else [],
                "confidence": _clamp(emotions.get("confidence"), 0.0, 1.0),
            },
            keywords=_bucket(data.get("keywords"), ("positive", "negative", "neutral")),
            suggestions=_bucket(data.get("suggestions"), ("improvements", "concerns", "opportunities")),
            confidence=_clamp(data.get("confidence"), 0.0, 1.0),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class SentimentAnalyzer:
    """Scores feedback text from -1 (negative) to +1 (positive)."""

    def __init__(self, client: AsyncOpenAI | None = None) -> None:
        self.client = client

    async def analyze(self, text: str) -> SentimentResult:
        data = await complete_json(
            SENTIMENT_PROMPT.format(text=text),
            system=SENTIMENT_SYSTEM_PROMPT,
            temperature=0.3,
            client=self.client,
        )
        result = SentimentResult.from_llm(data)
        logger.debug(f"Sentiment {result.sentiment_score:+.2f} ({result.emotions['primary']})")
        return result
