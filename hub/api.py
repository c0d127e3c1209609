"""FastAPI app for AI matching, sentiment, pricing and platform health.

Routes are thin: they validate the request, call the matching pipeline
functions and map module errors to JSON error responses.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any

from fastapi import Depends, FastAPI, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ai.llm import LLMError
from .config import HealthCheckFrequency, settings
from .db import get_session
from .logging_config import setup_logging
from .pipelines.health import health_service
from .pipelines.matching import (
    CampaignNotFound,
    MatchingError,
    ParticipantNotFound,
    analyze_participant,
    batch_score,
    find_optimal_matches,
    generate_criteria,
    learn_from_results,
)
from .pipelines.pricing import (
    PricingConfigNotFound,
    PricingError,
    calculate_campaign_cost,
    config_to_dict,
    list_active_configs,
    pricing_options,
    validate_pricing,
)
from .pipelines.reminders import schedule_reminders, send_verification_reminders
from .pipelines.sentiment import (
    FeedbackItem,
    SentimentError,
    analysis_to_dict,
    analyze_feedback,
    campaign_sentiment_summary,
    list_campaign_analyses,
)
from .scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)


# Pydantic request/response models
class HealthResponse(BaseModel):
    """Liveness response."""
    status: str
    version: str


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: str | None = None


class GenerateCriteriaRequest(BaseModel):
    campaign_requirements: Any
    target_audience: Any
    industry: str = Field(min_length=1)


class QualityRequirementsModel(BaseModel):
    """Optional thresholds; 0 or null disables a check."""
    min_feedback_quality: float | None = Field(default=None, ge=0, le=100)
    min_response_reliability: float | None = Field(default=None, ge=0, le=100)
    min_engagement_level: float | None = Field(default=None, ge=0, le=100)
    max_warning_count: int | None = Field(default=None, ge=0)
    required_verification_status: list[str] | None = None


class MatchingCriteria(BaseModel):
    """Campaign criteria; only quality requirements are applied locally, the rest goes to the LLM."""
    model_config = ConfigDict(extra="allow")

    demographics: dict[str, Any] | None = None
    behavioral: dict[str, Any] | None = None
    psychographic: dict[str, Any] | None = None
    campaign_specific: dict[str, Any] | None = None
    quality_requirements: QualityRequirementsModel | None = None


class FindMatchesRequest(BaseModel):
    campaign_id: int
    criteria: MatchingCriteria = Field(default_factory=MatchingCriteria)
    target_count: int | None = Field(default=None, ge=1, le=1000)


class FindMatchesResponse(BaseModel):
    """Selected participants and run analytics."""
    success: bool = True
    campaign_id: int
    matches: list[dict[str, Any]]
    analytics: dict[str, Any]
    algorithm_version: str
    processing_time_ms: int


class AnalyzeParticipantRequest(BaseModel):
    participant_id: int


class LearnFromResultsRequest(BaseModel):
    campaign_id: int
    participant_feedback: Any = None


class BatchScoreRequest(BaseModel):
    campaign_id: int
    participant_ids: list[int] = Field(min_length=1)
    criteria: MatchingCriteria = Field(default_factory=MatchingCriteria)


class SentimentRequest(BaseModel):
    text: str = Field(min_length=1)
    campaign_id: int
    participant_id: int
    response_id: int | None = None


class PricingRequest(BaseModel):
    campaign_type: str = Field(min_length=1)
    content_type: str = Field(min_length=1)
    participant_count: int


class HealthScheduleRequest(BaseModel):
    frequency: HealthCheckFrequency = HealthCheckFrequency.TWICE_DAILY
    enabled: bool


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown logic."""
    # Startup
    setup_logging()
    logger.info(f"{settings.app_name} v{settings.version} starting up")
    if settings.scheduler.enabled:
        schedule_reminders()
        await health_service.initialize()
        start_scheduler()

    yield

    # Shutdown
    stop_scheduler()
    logger.info("Application shutting down")


app = FastAPI(
    title=f"{settings.app_name} Matching API",
    version=settings.version,
    description="AI participant matching, feedback sentiment and campaign pricing",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(status_code: int, error: str, detail: str | None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail).model_dump(),
    )


# Exception handlers
@app.exception_handler(RequestValidationError)
async def validation_error_handler(request, exc: RequestValidationError):
    """Report request validation failures as 400."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "validation_error",
            "detail": "Invalid request data",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(CampaignNotFound)
@app.exception_handler(ParticipantNotFound)
@app.exception_handler(PricingConfigNotFound)
async def not_found_handler(request, exc: Exception):
    logger.info(f"Not found: {exc}")
    return error_response(status.HTTP_404_NOT_FOUND, "not_found", str(exc))


@app.exception_handler(MatchingError)
async def matching_error_handler(request, exc: MatchingError):
    """Handle matching pipeline errors."""
    logger.error(f"Matching error: {exc}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "matching_error", str(exc))


@app.exception_handler(SentimentError)
async def sentiment_error_handler(request, exc: SentimentError):
    logger.error(f"Sentiment error: {exc}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "sentiment_error", str(exc))


@app.exception_handler(PricingError)
async def pricing_error_handler(request, exc: PricingError):
    logger.error(f"Pricing error: {exc}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "pricing_error", str(exc))


@app.exception_handler(LLMError)
async def llm_error_handler(request, exc: LLMError):
    logger.error(f"LLM error: {exc}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "llm_error", str(exc))


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness endpoint."""
    return HealthResponse(status="ok", version=settings.version)


# AI matching
@app.post("/ai-matching/generate-criteria")
async def generate_criteria_route(
    request: GenerateCriteriaRequest,
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    recommendation = await generate_criteria(
        session,
        request.campaign_requirements,
        request.target_audience,
        request.industry,
    )
    return {
        "success": True,
        "recommended_criteria": recommendation.recommended_criteria,
        "expected_results": recommendation.expected_results,
        "alternative_options": recommendation.alternative_options,
    }


@app.post("/ai-matching/find-matches", response_model=FindMatchesResponse)
async def find_matches_route(
    request: FindMatchesRequest,
    session: AsyncSession = Depends(get_session),
) -> FindMatchesResponse:
    """Score every eligible participant and return a diversified selection."""
    logger.info(f"Finding matches for campaign {request.campaign_id}")
    criteria = request.criteria.model_dump(exclude_none=True)
    run = await find_optimal_matches(session, request.campaign_id, criteria, request.target_count)
    return FindMatchesResponse(
        campaign_id=run.campaign_id,
        matches=[m.to_dict() for m in run.matches],
        analytics=run.analytics.to_dict(),
        algorithm_version=run.algorithm_version,
        processing_time_ms=run.processing_time_ms,
    )


@app.post("/ai-matching/analyze-participant")
async def analyze_participant_route(
    request: AnalyzeParticipantRequest,
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    analysis = await analyze_participant(session, request.participant_id)
    return {"success": True, "participant_id": request.participant_id, "analysis": analysis.to_dict()}


@app.post("/ai-matching/learn-from-results")
async def learn_from_results_route(
    request: LearnFromResultsRequest,
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    record = await learn_from_results(session, request.campaign_id, request.participant_feedback)
    return {
        "success": True,
        "feedback_id": record.id,
        "insights": record.feedback_data or {},
        "improvement_suggestions": record.improvement_suggestions or [],
    }


@app.post("/ai-matching/batch-score")
async def batch_score_route(
    request: BatchScoreRequest,
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    scored = await batch_score(
        session, request.campaign_id, request.participant_ids, request.criteria.model_dump(exclude_none=True),
    )
    return {"success": True, "campaign_id": request.campaign_id, "scores": [m.to_dict() for m in scored]}


# Sentiment
@app.post("/sentiment/analyze")
async def analyze_sentiment_route(
    request: SentimentRequest,
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    result = await analyze_feedback(
        session,
        FeedbackItem(
            text=request.text,
            campaign_id=request.campaign_id,
            participant_id=request.participant_id,
            response_id=request.response_id,
        ),
    )
    return {"success": True, "analysis": result.to_dict()}


@app.get("/sentiment/campaign/{campaign_id}")
async def campaign_sentiment_route(
    campaign_id: int,
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    summary = await campaign_sentiment_summary(session, campaign_id)
    return {
        "average_sentiment": summary.average_sentiment,
        "total_responses": summary.total_responses,
        "emotion_distribution": summary.emotion_distribution,
        "key_insights": summary.key_insights,
        "recommendations": summary.recommendations,
    }


@app.get("/sentiment/analysis/{campaign_id}")
async def sentiment_analyses_route(
    campaign_id: int,
    session: AsyncSession = Depends(get_session),
) -> list[dict[str, Any]]:
    return [analysis_to_dict(row) for row in await list_campaign_analyses(session, campaign_id)]


# Pricing
@app.get("/pricing/configs")
async def pricing_configs_route(session: AsyncSession = Depends(get_session)) -> list[dict[str, Any]]:
    return [config_to_dict(c) for c in await list_active_configs(session)]


@app.get("/pricing/options")
async def pricing_options_route(session: AsyncSession = Depends(get_session)) -> dict[str, list[dict[str, Any]]]:
    grouped = await pricing_options(session)
    return {campaign_type: [config_to_dict(c) for c in configs] for campaign_type, configs in grouped.items()}


@app.post("/pricing/calculate")
async def calculate_pricing_route(
    request: PricingRequest,
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    calculation = await calculate_campaign_cost(
        session, request.campaign_type, request.content_type, request.participant_count,
    )
    return asdict(calculation)


@app.post("/pricing/validate")
async def validate_pricing_route(
    request: PricingRequest,
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    validation = await validate_pricing(
        session, request.campaign_type, request.content_type, request.participant_count,
    )
    return {"valid": validation.valid, "error": validation.error}


# Platform health and reminders
@app.post("/system-health/run")
async def run_health_check_route() -> dict[str, Any]:
    results = await health_service.run()
    return {"results": [r.to_dict() for r in results], "skipped": not results}


@app.get("/system-health/last")
async def last_health_check_route(session: AsyncSession = Depends(get_session)) -> dict[str, Any]:
    return {"last_check": await health_service.get_last_results(session)}


@app.put("/system-health/schedule")
async def health_schedule_route(
    request: HealthScheduleRequest,
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    return await health_service.update_schedule(session, request.frequency.value, request.enabled)


@app.post("/verification-reminders/send")
async def send_reminders_route(session: AsyncSession = Depends(get_session)) -> dict[str, int]:
    logger.info("Manually triggering verification reminders")
    return await send_verification_reminders(session)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "app": settings.app_name,
        "version": settings.version,
        "endpoints": {
            "health": "/health",
            "ai_matching": "/ai-matching/*",
            "sentiment": "/sentiment/*",
            "pricing": "/pricing/*",
            "system_health": "/system-health/*",
            "verification_reminders": "/verification-reminders/send",
            "docs": "/docs",
        },
    }
