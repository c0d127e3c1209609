"""Core SQLAlchemy models (2.x style) for the FokusHub360 schema.

Only the tables used by matching, sentiment, pricing, health checks and
verification reminders are modelled here. Flexible attributes live in JSON
columns.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, Float, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class User(Base):
    """Platform users (clients, participants, managers, admins)."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    first_name: Mapped[str | None] = mapped_column(String(100))
    last_name: Mapped[str | None] = mapped_column(String(100))
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="client", index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_banned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # unverified, pending, approved, rejected
    verification_status: Mapped[str] = mapped_column(String(20), default="unverified", nullable=False, index=True)
    warning_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    # Relationships
    profile: Mapped[ParticipantProfile | None] = relationship(
        "ParticipantProfile",
        back_populates="user",
        uselist=False,
    )


class ParticipantProfile(Base):
    """Detailed participant attributes used for matching."""
    __tablename__ = "participant_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    demographics: Mapped[dict | None] = mapped_column(JSON)
    beliefs: Mapped[dict | None] = mapped_column(JSON)
    lifestyle: Mapped[dict | None] = mapped_column(JSON)
    content_habits: Mapped[dict | None] = mapped_column(JSON)
    behavior: Mapped[dict | None] = mapped_column(JSON)
    tags: Mapped[list[str] | None] = mapped_column(JSON)
    completion_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_profile_complete: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    user: Mapped[User] = relationship("User", back_populates="profile")


class ParticipantResponse(Base):
    """Questionnaire answers."""
    __tablename__ = "participant_responses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id: Mapped[int] = mapped_column(Integer, nullable=False)
    response: Mapped[dict | None] = mapped_column(JSON)
    responded_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)


class Campaign(Base):
    """Client focus-group campaigns."""
    __tablename__ = "campaigns"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    manager_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    target_audience: Mapped[dict | None] = mapped_column(JSON)
    participant_count: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    reward_type: Mapped[str] = mapped_column(String(50), default="cash", nullable=False)
    reward_amount: Mapped[float | None] = mapped_column(Numeric(10, 2))
    # draft, pending_review, active, completed, cancelled
    status: Mapped[str] = mapped_column(String(20), default="draft", nullable=False, index=True)
    base_cost: Mapped[float | None] = mapped_column(Numeric(10, 2))
    participant_cost: Mapped[float | None] = mapped_column(Numeric(10, 2))
    total_cost: Mapped[float | None] = mapped_column(Numeric(10, 2))
    payment_status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    campaign_type: Mapped[str] = mapped_column(String(50), default="standard", nullable=False)
    content_type: Mapped[str | None] = mapped_column(String(50))
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )


class BehavioralAnalysis(Base):
    """Cached LLM behavioral analysis of a participant."""
    __tablename__ = "behavioral_analysis"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    participant_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    analysis_type: Mapped[str] = mapped_column(String(50), nullable=False)  # full_profile, campaign_specific
    behavioral_profile: Mapped[dict | None] = mapped_column(JSON)
    personality_traits: Mapped[dict | None] = mapped_column(JSON)
    motivational_factors: Mapped[dict | None] = mapped_column(JSON)
    decision_making_style: Mapped[dict | None] = mapped_column(JSON)
    communication_preferences: Mapped[dict | None] = mapped_column(JSON)
    brand_affinity_patterns: Mapped[dict | None] = mapped_column(JSON)
    purchase_decision_factors: Mapped[dict | None] = mapped_column(JSON)
    content_consumption_behavior: Mapped[dict | None] = mapped_column(JSON)
    influence_factors: Mapped[list | None] = mapped_column(JSON)
    adaptability_score: Mapped[int | None] = mapped_column(Integer)
    risk_tolerance: Mapped[str | None] = mapped_column(String(20))
    innovation_adoption: Mapped[str | None] = mapped_column(String(30))
    social_engagement_level: Mapped[int | None] = mapped_column(Integer)
    feedback_quality: Mapped[int | None] = mapped_column(Integer)
    response_reliability: Mapped[int | None] = mapped_column(Integer)
    engagement_prediction: Mapped[int | None] = mapped_column(Integer)
    confidence_score: Mapped[int | None] = mapped_column(Integer)
    last_updated: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_behavioral_analysis_participant_created", "participant_id", "created_at"),
    )


class MatchingHistory(Base):
    """One scored participant within a matching run."""
    __tablename__ = "matching_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_id: Mapped[int] = mapped_column(ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    match_score: Mapped[float] = mapped_column(Float, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    match_reasons: Mapped[list | None] = mapped_column(JSON)
    behavioral_insights: Mapped[dict | None] = mapped_column(JSON)
    segment_classification: Mapped[str | None] = mapped_column(String(100))
    engagement_prediction: Mapped[float | None] = mapped_column(Float)
    feedback_quality: Mapped[float | None] = mapped_column(Float)
    completion_rate: Mapped[float | None] = mapped_column(Float)
    response_time: Mapped[float | None] = mapped_column(Float)
    matching_algorithm_version: Mapped[str] = mapped_column(String(20), nullable=False)
    is_selected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    selection_reason: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_matching_history_campaign_participant", "campaign_id", "participant_id"),
    )


class CampaignMatching(Base):
    """Aggregate analytics of one matching run."""
    __tablename__ = "campaign_matching"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_id: Mapped[int] = mapped_column(ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    matching_criteria: Mapped[dict | None] = mapped_column(JSON)
    total_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    matched_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    average_match_score: Mapped[float] = mapped_column(Float, nullable=False)
    top_matching_factors: Mapped[list | None] = mapped_column(JSON)
    segment_distribution: Mapped[dict | None] = mapped_column(JSON)
    diversity_score: Mapped[float] = mapped_column(Float, nullable=False)
    quality_score: Mapped[float] = mapped_column(Float, nullable=False)
    algorithm_version: Mapped[str] = mapped_column(String(20), nullable=False)
    processing_time_ms: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False, index=True)


class AILearningFeedback(Base):
    """Learning insights derived from campaign results."""
    __tablename__ = "ai_learning_feedback"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_id: Mapped[int | None] = mapped_column(ForeignKey("campaigns.id", ondelete="SET NULL"), index=True)
    feedback_type: Mapped[str] = mapped_column(String(50), nullable=False)
    feedback_data: Mapped[dict | None] = mapped_column(JSON)
    improvement_suggestions: Mapped[list | None] = mapped_column(JSON)
    human_feedback: Mapped[dict | None] = mapped_column(JSON)
    action_taken: Mapped[str | None] = mapped_column(Text)
    impact_measured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)


class SentimentAnalysis(Base):
    """Sentiment of a single piece of participant feedback."""
    __tablename__ = "sentiment_analysis"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_id: Mapped[int] = mapped_column(ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    response_id: Mapped[int | None] = mapped_column(Integer)
    sentiment_score: Mapped[float] = mapped_column(Float, nullable=False)  # -1.0 .. 1.0
    emotions: Mapped[dict | None] = mapped_column(JSON)
    keywords: Mapped[dict | None] = mapped_column(JSON)
    suggestions: Mapped[dict | None] = mapped_column(JSON)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)  # 0.0 .. 1.0
    analysis_type: Mapped[str] = mapped_column(String(50), default="realtime", nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)


class PricingConfig(Base):
    """Per campaign/content type pricing."""
    __tablename__ = "pricing_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    campaign_type: Mapped[str] = mapped_column(String(50), nullable=False)  # standard, premium, enterprise
    content_type: Mapped[str] = mapped_column(String(50), nullable=False)  # video, image, text, ...
    base_cost: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    participant_cost: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    included_participants: Mapped[int | None] = mapped_column(Integer, default=10)
    max_participants: Mapped[int | None] = mapped_column(Integer, default=100)
    features: Mapped[dict | None] = mapped_column(JSON)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_pricing_config_types", "campaign_type", "content_type"),
    )


class Notification(Base):
    """In-app notifications."""
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict | None] = mapped_column(JSON)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)


class SystemSetting(Base):
    """Key/value platform settings."""
    __tablename__ = "system_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    setting: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )


class LegalDocument(Base):
    """Privacy policy, terms of service, cookie policy, ..."""
    __tablename__ = "legal_documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
