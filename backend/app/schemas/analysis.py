"""
Analysis Run Schemas
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models import IntentType, RunStatus, SentimentPolarity


class BrandSummary(BaseModel):
    id: UUID
    name: str
    is_user_brand: bool

    class Config:
        from_attributes = True


class PromptSummary(BaseModel):
    id: UUID
    text: str
    intent_type: IntentType

    class Config:
        from_attributes = True


class BrandMentionResponse(BaseModel):
    """One looked-for brand in a prompt result"""
    id: UUID
    brand_id: UUID
    position: Optional[int]
    mention_count: int
    context_snippet: Optional[str]
    sentiment: Optional[SentimentPolarity]
    sentiment_score: Optional[float]
    is_recommended: bool

    class Config:
        from_attributes = True


class CitationResponse(BaseModel):
    """Web source the response was grounded on"""
    id: UUID
    url: str
    domain: str
    title: Optional[str]

    class Config:
        from_attributes = True


class PromptResultResponse(BaseModel):
    """AI response for one prompt of a run (error set when the query failed)"""
    id: UUID
    prompt_id: UUID
    prompt: Optional[PromptSummary] = None
    raw_response: Optional[str]
    response_length: Optional[int]
    processing_time_ms: Optional[int]
    search_queries: Optional[List[str]] = None
    error: Optional[str]
    created_at: datetime

    brand_mentions: List[BrandMentionResponse] = []
    citations: List[CitationResponse] = []

    class Config:
        from_attributes = True


class MetricsSnapshotResponse(BaseModel):
    """Per-brand metrics of a run"""
    brand_id: UUID
    brand: Optional[BrandSummary] = None
    visibility_score: float = Field(description="% of valid results mentioning the brand")
    mention_count: int
    citation_count: int
    share_of_voice: float = Field(description="% of all brand mentions in the run")
    average_position: Optional[float]
    positive_mentions: int
    neutral_mentions: int
    negative_mentions: int
    average_sentiment: Optional[float]
    recommendation_count: int
    first_position_count: int

    class Config:
        from_attributes = True


class AnalysisRunResponse(BaseModel):
    """Analysis run status"""
    id: UUID
    project_id: UUID
    status: RunStatus
    total_prompts: Optional[int]
    processed_prompts: int
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    error_message: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class AnalysisRunListItem(AnalysisRunResponse):
    result_count: int = 0


class AnalysisRunListResponse(BaseModel):
    runs: List[AnalysisRunListItem]
    total: int


class AnalysisRunDetail(AnalysisRunResponse):
    """Run with its snapshots and prompt results"""
    metrics_snapshots: List[MetricsSnapshotResponse] = []
    prompt_results: List[PromptResultResponse] = []


class StartRunResponse(BaseModel):
    """Accepted run, processed in the background"""
    message: str = "Analysis started"
    run_id: UUID = Field(alias="runId")
    total_prompts: int = Field(alias="totalPrompts")
    estimated_time_seconds: int = Field(alias="estimatedTimeSeconds")

    class Config:
        populate_by_name = True


class AnalysisRunWithMetrics(AnalysisRunResponse):
    metrics_snapshots: List[MetricsSnapshotResponse] = []
