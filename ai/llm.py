"""Thin async wrapper over OpenAI chat completions in JSON mode.

The client is built once and cached. Calls are never retried: any API or
decoding failure surfaces as :class:`LLMError`.
"""
from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from hub.config import settings

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Raised when an LLM call fails or returns unusable output."""
    pass


@lru_cache(maxsize=1)
def get_client() -> AsyncOpenAI:
    """Load and cache the OpenAI client.

    Raises:
        LLMError: If no API key is configured
    """
    if not settings.llm.api_key:
        raise LLMError("OPENAI_API_KEY is not configured")

    logger.info(f"Initializing OpenAI client (model: {settings.llm.model})")
    return AsyncOpenAI(
        api_key=settings.llm.api_key,
        base_url=settings.llm.base_url,
        timeout=settings.llm.timeout,
        max_retries=0,
    )


async def complete_json(
    prompt: str,
    *,
    system: str | None = None,
    temperature: float = 0.3,
    max_tokens: int | None = None,
    client: AsyncOpenAI | None = None,
) -> dict[str, Any]:
    """Run one chat completion and decode the JSON object it returns.

    Args:
        prompt: User message
        system: Optional system message
        temperature: Sampling temperature
        max_tokens: Completion token cap
        client: Client override (tests, alternative gateways)

    Returns:
        Decoded JSON object; ``{}`` when the model returns no content

    Raises:
        LLMError: On API errors or non-object JSON
    """
    messages: list[dict[str, str]] = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})

    kwargs: dict[str, Any] = {
        "model": settings.llm.model,
        "messages": messages,
        "response_format": {"type": "json_object"},
        "temperature": temperature,
    }
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens

    try:
        llm = client or get_client()
        response = await llm.chat.completions.create(**kwargs)
    except OpenAIError as e:
        logger.error(f"OpenAI request failed: {e}")
        raise LLMError(f"LLM request failed: {e}") from e

    content = response.choices[0].message.content or "{}"
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        logger.error(f"LLM returned invalid JSON: {content[:200]!r}")
        raise LLMError(f"LLM returned invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise LLMError(f"Expected a JSON object, got {type(data).__name__}")

    return data


def to_json(value: Any) -> str:
    """Serialize prompt context (models, dates, decimals) as indented JSON."""
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)
