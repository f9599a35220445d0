"""
Pydantic Schemas for API responses and provider payloads
"""

from .analysis import (
    BrandSummary,
    PromptSummary,
    BrandMentionResponse,
    CitationResponse,
    PromptResultResponse,
    MetricsSnapshotResponse,
    AnalysisRunResponse,
    AnalysisRunListItem,
    AnalysisRunListResponse,
    AnalysisRunDetail,
    AnalysisRunWithMetrics,
    StartRunResponse,
)
from .grounding import (
    GroundingMetadata,
    GroundingChunk,
    WebSource,
)

__all__ = [
    # Analysis
    "BrandSummary",
    "PromptSummary",
    "BrandMentionResponse",
    "CitationResponse",
    "PromptResultResponse",
    "MetricsSnapshotResponse",
    "AnalysisRunResponse",
    "AnalysisRunListItem",
    "AnalysisRunListResponse",
    "AnalysisRunDetail",
    "AnalysisRunWithMetrics",
    "StartRunResponse",
    # Grounding
    "GroundingMetadata",
    "GroundingChunk",
    "WebSource",
]
