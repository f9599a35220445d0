"""
Database Models for the AI visibility tracker
"""

from .database import (
    Base,
    # Enums
    IntentType,
    RunStatus,
    SentimentPolarity,
    # Models
    Project,
    Brand,
    Prompt,
    AnalysisRun,
    PromptResult,
    BrandMention,
    Citation,
    MetricsSnapshot,
)

__all__ = [
    "Base",
    # Enums
    "IntentType",
    "RunStatus",
    "SentimentPolarity",
    # Models
    "Project",
    "Brand",
    "Prompt",
    "AnalysisRun",
    "PromptResult",
    "BrandMention",
    "Citation",
    "MetricsSnapshot",
]
