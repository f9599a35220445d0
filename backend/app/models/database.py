"""
AI Visibility Tracker Database Models
SQLAlchemy ORM (SQLite for local use, PostgreSQL in production)
"""

from datetime import datetime
from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import (
    Column, String, Text, Integer, Float, Boolean, DateTime,
    ForeignKey, Enum, JSON, Index, UniqueConstraint, Uuid, text
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _enum_values(enum_cls):
    """Persist enums by their lower-case value instead of member name"""
    return [member.value for member in enum_cls]


# ============================================================================
# ENUMS
# ============================================================================

class IntentType(str, PyEnum):
    INFORMATIONAL = "informational"    # "What is X?"
    COMMERCIAL = "commercial"          # "Best X for small teams"
    COMPARISON = "comparison"          # "X vs Y"
    RECOMMENDATION = "recommendation"  # "What X should I use?"
    NAVIGATIONAL = "navigational"      # "X pricing page"


class RunStatus(str, PyEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @classmethod
    def in_flight(cls):
        return [cls.PENDING, cls.PROCESSING]


class SentimentPolarity(str, PyEnum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


# ============================================================================
# PROJECT, BRANDS & PROMPTS
# ============================================================================

class Project(Base):
    """A tracking project: one user brand measured against competitors"""
    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid4)

    name = Column(String(255), nullable=False)
    category = Column(String(255), nullable=False)
    description = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    brands = relationship("Brand", back_populates="project", cascade="all, delete-orphan", order_by="Brand.created_at")
    prompts = relationship("Prompt", back_populates="project", cascade="all, delete-orphan", order_by="Prompt.created_at")
    analysis_runs = relationship("AnalysisRun", back_populates="project", cascade="all, delete-orphan")

    @property
    def user_brand(self):
        return next((b for b in self.brands if b.is_user_brand), None)


class Brand(Base):
    """The user's brand or a named competitor"""
    __tablename__ = "brands"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)

    name = Column(String(255), nullable=False)
    is_user_brand = Column(Boolean, default=False, nullable=False)
    website_url = Column(String(500))

    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="brands")

    __table_args__ = (
        UniqueConstraint('project_id', 'name', name='uq_brand_project_name'),
        Index(
            'uq_brand_project_user_brand', 'project_id',
            unique=True,
            sqlite_where=text('is_user_brand = 1'),
            postgresql_where=text('is_user_brand'),
        ),
    )


class Prompt(Base):
    """A search-style question sent to the AI provider on every run"""
    __tablename__ = "prompts"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)

    text = Column(Text, nullable=False)
    intent_type = Column(
        Enum(IntentType, values_callable=_enum_values, native_enum=False, length=32),
        default=IntentType.INFORMATIONAL,
        nullable=False,
    )
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="prompts")

    __table_args__ = (
        Index('idx_prompt_project_active', 'project_id', 'is_active'),
    )


# ============================================================================
# ANALYSIS RUNS & RESULTS
# ============================================================================

class AnalysisRun(Base):
    """One execution over the active prompt set of a project"""
    __tablename__ = "analysis_runs"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)

    status = Column(
        Enum(RunStatus, values_callable=_enum_values, native_enum=False, length=20),
        default=RunStatus.PENDING,
        nullable=False,
    )
    total_prompts = Column(Integer)
    processed_prompts = Column(Integer, default=0, nullable=False)

    # Timing
    started_at = Column(DateTime)
    completed_at = Column(DateTime)

    error_message = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    project = relationship("Project", back_populates="analysis_runs")
    prompt_results = relationship(
        "PromptResult", back_populates="analysis_run", cascade="all, delete-orphan",
        order_by="PromptResult.created_at",
    )
    metrics_snapshots = relationship("MetricsSnapshot", back_populates="analysis_run", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_run_project_status', 'project_id', 'status'),
        # At most one pending/processing run per project
        Index(
            'uq_run_project_in_flight', 'project_id',
            unique=True,
            sqlite_where=text("status IN ('pending', 'processing')"),
            postgresql_where=text("status IN ('pending', 'processing')"),
        ),
    )


class PromptResult(Base):
    """Raw AI response for one (run, prompt) pair - error set means failed"""
    __tablename__ = "prompt_results"

    id = Column(Uuid, primary_key=True, default=uuid4)
    analysis_run_id = Column(Uuid, ForeignKey("analysis_runs.id", ondelete="CASCADE"), nullable=False)
    prompt_id = Column(Uuid, ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False)

    raw_response = Column(Text)
    response_length = Column(Integer)
    processing_time_ms = Column(Integer)
    search_queries = Column(JSON, default=list)
    error = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    analysis_run = relationship("AnalysisRun", back_populates="prompt_results")
    prompt = relationship("Prompt")
    brand_mentions = relationship("BrandMention", back_populates="prompt_result", cascade="all, delete-orphan")
    citations = relationship("Citation", back_populates="prompt_result", cascade="all, delete-orphan")

    @property
    def is_valid(self) -> bool:
        return self.error is None

    __table_args__ = (
        Index('idx_result_run', 'analysis_run_id'),
    )


class BrandMention(Base):
    """A looked-for brand in one prompt result; position is null when absent"""
    __tablename__ = "brand_mentions"

    id = Column(Uuid, primary_key=True, default=uuid4)
    prompt_result_id = Column(Uuid, ForeignKey("prompt_results.id", ondelete="CASCADE"), nullable=False)
    brand_id = Column(Uuid, ForeignKey("brands.id", ondelete="CASCADE"), nullable=False)

    position = Column(Integer)  # 1st, 2nd, 3rd... among mentioned brands
    mention_count = Column(Integer, default=0, nullable=False)
    context_snippet = Column(Text)

    # Sentiment
    sentiment = Column(Enum(SentimentPolarity, values_callable=_enum_values, native_enum=False, length=20))
    sentiment_score = Column(Float)  # -1.0 to 1.0

    is_recommended = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    prompt_result = relationship("PromptResult", back_populates="brand_mentions")
    brand = relationship("Brand")

    __table_args__ = (
        Index('idx_mention_result', 'prompt_result_id'),
        Index('idx_mention_brand', 'brand_id'),
    )


class Citation(Base):
    """A distinct web source the provider grounded a response on"""
    __tablename__ = "citations"

    id = Column(Uuid, primary_key=True, default=uuid4)
    prompt_result_id = Column(Uuid, ForeignKey("prompt_results.id", ondelete="CASCADE"), nullable=False)

    url = Column(Text, nullable=False)
    domain = Column(String(255), nullable=False)
    title = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)

    prompt_result = relationship("PromptResult", back_populates="citations")

    __table_args__ = (
        Index('idx_citation_result', 'prompt_result_id'),
        Index('idx_citation_domain', 'domain'),
    )


# ============================================================================
# METRICS
# ============================================================================

class MetricsSnapshot(Base):
    """Per-brand metrics derived from one analysis run (never hand-edited)"""
    __tablename__ = "metrics_snapshots"

    id = Column(Uuid, primary_key=True, default=uuid4)
    analysis_run_id = Column(Uuid, ForeignKey("analysis_runs.id", ondelete="CASCADE"), nullable=False)
    brand_id = Column(Uuid, ForeignKey("brands.id", ondelete="CASCADE"), nullable=False)

    visibility_score = Column(Float, default=0)  # 0-100
    mention_count = Column(Integer, default=0, nullable=False)
    citation_count = Column(Integer, default=0, nullable=False)
    share_of_voice = Column(Float, default=0, nullable=False)  # 0-100
    average_position = Column(Float)

    positive_mentions = Column(Integer, default=0, nullable=False)
    neutral_mentions = Column(Integer, default=0, nullable=False)
    negative_mentions = Column(Integer, default=0, nullable=False)
    average_sentiment = Column(Float)

    recommendation_count = Column(Integer, default=0, nullable=False)
    first_position_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    analysis_run = relationship("AnalysisRun", back_populates="metrics_snapshots")
    brand = relationship("Brand")

    __table_args__ = (
        UniqueConstraint('analysis_run_id', 'brand_id', name='uq_snapshot_run_brand'),
    )
