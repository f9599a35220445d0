"""
Business Logic Services
"""

from .prompt_analyzer import PromptAnalyzer, PromptAnalysisResult
from .metrics_aggregator import MetricsAggregator, BrandMetrics
from .progress import ProgressBroadcaster, progress_event, complete_event, error_event
from .analysis_runner import (
    AnalysisRunner,
    StartedRun,
    AnalysisPreconditionError,
    ProjectNotFoundError,
    NoActivePromptsError,
    ProviderNotConfiguredError,
    RunAlreadyInProgressError,
    RunNotPendingError,
    INTERRUPTED_RUN_MESSAGE,
)

__all__ = [
    "PromptAnalyzer",
    "PromptAnalysisResult",
    "MetricsAggregator",
    "BrandMetrics",
    "ProgressBroadcaster",
    "progress_event",
    "complete_event",
    "error_event",
    "AnalysisRunner",
    "StartedRun",
    "AnalysisPreconditionError",
    "ProjectNotFoundError",
    "NoActivePromptsError",
    "ProviderNotConfiguredError",
    "RunAlreadyInProgressError",
    "RunNotPendingError",
    "INTERRUPTED_RUN_MESSAGE",
]
