"""Campaign pricing from per campaign/content type configuration."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hub import models
from hub.config import settings

logger = logging.getLogger(__name__)

DEFAULT_INCLUDED_PARTICIPANTS = 10
DEFAULT_MAX_PARTICIPANTS = 100


class PricingError(Exception):
    """Raised when pricing cannot be computed."""
    pass


class PricingConfigNotFound(PricingError):
    pass


@dataclass
class PricingCalculation:
    base_cost: float
    participant_cost: float
    participant_count: int
    included_participants: int
    extra_participants: int
    extra_participant_cost: float
    total_cost: float
    campaign_type: str
    content_type: str
    features: list[str] = field(default_factory=list)


@dataclass
class PricingValidation:
    valid: bool
    error: str | None = None


def compute_cost(config: models.PricingConfig, participant_count: int) -> PricingCalculation:
    """Base cost covers the included participants; each extra one is charged."""
    base_cost = float(config.base_cost)
    participant_cost = float(config.participant_cost)
    included = config.included_participants or DEFAULT_INCLUDED_PARTICIPANTS
    extra = max(0, participant_count - included)
    extra_cost = extra * participant_cost

    return PricingCalculation(
        base_cost=base_cost,
        participant_cost=participant_cost,
        participant_count=participant_count,
        included_participants=included,
        extra_participants=extra,
        extra_participant_cost=extra_cost,
        total_cost=base_cost + extra_cost,
        campaign_type=config.campaign_type,
        content_type=config.content_type,
        features=list(config.features or {}),
    )


def check_participant_count(config: models.PricingConfig | None, participant_count: int) -> PricingValidation:
    if config is None:
        return PricingValidation(valid=False, error="Invalid pricing configuration")

    max_participants = config.max_participants or DEFAULT_MAX_PARTICIPANTS
    if participant_count > max_participants:
        return PricingValidation(
            valid=False,
            error=(
                f"Participant count exceeds maximum of {max_participants} "
                f"for {config.campaign_type} {config.content_type}"
            ),
        )
    if participant_count < 1:
        return PricingValidation(valid=False, error="Participant count must be at least 1")

    return PricingValidation(valid=True)


async def get_active_config(
    session: AsyncSession,
    campaign_type: str,
    content_type: str,
) -> models.PricingConfig | None:
    result = await session.execute(
        select(models.PricingConfig)
        .where(
            models.PricingConfig.campaign_type == campaign_type,
            models.PricingConfig.content_type == content_type,
            models.PricingConfig.is_active.is_(True),
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def calculate_campaign_cost(
    session: AsyncSession,
    campaign_type: str,
    content_type: str,
    participant_count: int,
) -> PricingCalculation:
    """Price a campaign.

    Raises:
        PricingConfigNotFound: If no active configuration matches
    """
    config = await get_active_config(session, campaign_type, content_type)
    if config is None:
        raise PricingConfigNotFound(f"No pricing configuration found for {campaign_type} {content_type}")
    return compute_cost(config, participant_count)


async def validate_pricing(
    session: AsyncSession,
    campaign_type: str,
    content_type: str,
    participant_count: int,
) -> PricingValidation:
    config = await get_active_config(session, campaign_type, content_type)
    return check_participant_count(config, participant_count)


async def list_active_configs(session: AsyncSession) -> list[models.PricingConfig]:
    result = await session.execute(
        select(models.PricingConfig)
        .where(models.PricingConfig.is_active.is_(True))
        .order_by(models.PricingConfig.campaign_type, models.PricingConfig.content_type)
    )
    return list(result.scalars().all())


def group_by_campaign_type(configs: list[models.PricingConfig]) -> dict[str, list[models.PricingConfig]]:
    grouped: dict[str, list[models.PricingConfig]] = {}
    for config in configs:
        grouped.setdefault(config.campaign_type, []).append(config)
    return grouped


async def pricing_options(session: AsyncSession) -> dict[str, list[models.PricingConfig]]:
    return group_by_campaign_type(await list_active_configs(session))


async def default_pricing(session: AsyncSession) -> dict[str, float | int]:
    """Defaults from system settings, falling back to ``PricingSettings``."""
    keys = {
        "default_base_cost": float,
        "default_participant_cost": float,
        "default_included_participants": int,
        "default_max_participants": int,
    }
    result = await session.execute(
        select(models.SystemSetting).where(models.SystemSetting.setting.in_(list(keys)))
    )
    overrides = {row.setting: row.value for row in result.scalars().all()}

    values: dict[str, float | int] = {}
    for key, cast in keys.items():
        fallback = getattr(settings.pricing, key)
        try:
            values[key] = cast(overrides[key]) if key in overrides else fallback
        except ValueError:
            logger.warning(f"Ignoring malformed pricing setting {key}={overrides[key]!r}")
            values[key] = fallback

    return {
        "base_cost": values["default_base_cost"],
        "participant_cost": values["default_participant_cost"],
        "included_participants": values["default_included_participants"],
        "max_participants": values["default_max_participants"],
    }


async def update_pricing_config(
    session: AsyncSession,
    campaign_type: str,
    content_type: str,
    updates: dict[str, Any],
) -> PricingCalculation:
    """Apply updates to a configuration and return the price for 10 participants."""
    allowed = {"base_cost", "participant_cost", "included_participants", "max_participants", "features"}
    unknown = set(updates) - allowed
    if unknown:
        raise PricingError(f"Unknown pricing fields: {', '.join(sorted(unknown))}")

    config = await get_active_config(session, campaign_type, content_type)
    if config is None:
        raise PricingConfigNotFound(f"No pricing configuration found for {campaign_type} {content_type}")

    for key, value in updates.items():
        setattr(config, key, value)
    await session.commit()
    logger.info(f"Updated pricing for {campaign_type}/{content_type}: {sorted(updates)}")

    return compute_cost(config, DEFAULT_INCLUDED_PARTICIPANTS)


def config_to_dict(config: models.PricingConfig) -> dict[str, Any]:
    return {
        "id": config.id,
        "campaign_type": config.campaign_type,
        "content_type": config.content_type,
        "base_cost": float(config.base_cost),
        "participant_cost": float(config.participant_cost),
        "included_participants": config.included_participants or DEFAULT_INCLUDED_PARTICIPANTS,
        "max_participants": config.max_participants or DEFAULT_MAX_PARTICIPANTS,
        "features": config.features or {},
    }
