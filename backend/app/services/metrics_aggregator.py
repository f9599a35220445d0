"""
Metrics Aggregator Service
Derives per-brand snapshot metrics from the prompt results of an analysis run
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models import (
    AnalysisRun, Brand, MetricsSnapshot, Project, PromptResult, SentimentPolarity
)

logger = logging.getLogger(__name__)


@dataclass
class BrandMetrics:
    """Snapshot values for one brand in one run"""
    visibility_score: float = 0.0
    mention_count: int = 0
    citation_count: int = 0
    share_of_voice: float = 0.0
    average_position: Optional[float] = None
    positive_mentions: int = 0
    neutral_mentions: int = 0
    negative_mentions: int = 0
    average_sentiment: Optional[float] = None
    recommendation_count: int = 0
    first_position_count: int = 0


def _mean(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def compute_brand_metrics(brand_id: UUID, valid_results: List[PromptResult]) -> BrandMetrics:
    """
    Metrics for one brand over the valid (error-free) results of a run.

    Citations are attributed by co-occurrence: every citation of a result in
    which the brand was mentioned counts toward the brand.
    """
    mentioned = []
    citation_count = 0

    for result in valid_results:
        brand_mentions = [
            m for m in result.brand_mentions
            if m.brand_id == brand_id and m.position is not None
        ]
        if brand_mentions:
            citation_count += len(result.citations)
        mentioned.extend(brand_mentions)

    mention_count = len(mentioned)
    positions = [m.position for m in mentioned]
    sentiment_scores = [m.sentiment_score for m in mentioned if m.sentiment_score is not None]

    return BrandMetrics(
        visibility_score=(mention_count / len(valid_results) * 100) if valid_results else 0.0,
        mention_count=mention_count,
        citation_count=citation_count,
        average_position=_mean(positions),
        positive_mentions=sum(1 for m in mentioned if m.sentiment == SentimentPolarity.POSITIVE),
        neutral_mentions=sum(1 for m in mentioned if m.sentiment == SentimentPolarity.NEUTRAL),
        negative_mentions=sum(1 for m in mentioned if m.sentiment == SentimentPolarity.NEGATIVE),
        average_sentiment=_mean(sentiment_scores),
        recommendation_count=sum(1 for m in mentioned if m.is_recommended),
        first_position_count=sum(1 for p in positions if p == 1),
    )


def apply_share_of_voice(metrics: Iterable[BrandMetrics]) -> None:
    """Second pass: each brand's share of all mentions in the run (0 when none)"""
    metrics = list(metrics)
    total = sum(m.mention_count for m in metrics)
    for m in metrics:
        m.share_of_voice = (m.mention_count / total * 100) if total > 0 else 0.0


class MetricsAggregator:
    """
    Computes and upserts one MetricsSnapshot per (run, brand).
    Safe to call repeatedly for the same run.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def aggregate(self, run_id: UUID) -> Dict[UUID, BrandMetrics]:
        """
        Aggregate all prompt results of a run into brand snapshots.

        Args:
            run_id: Analysis run to aggregate

        Returns:
            Dict of {brand_id: BrandMetrics} as persisted
        """
        run = await self.db.get(AnalysisRun, run_id)
        if not run:
            raise ValueError(f"Analysis run {run_id} not found")

        brands = await self._get_brands(run.project_id)
        results = await self._get_results(run_id)
        valid_results = [r for r in results if r.is_valid]

        metrics = {brand.id: compute_brand_metrics(brand.id, valid_results) for brand in brands}
        apply_share_of_voice(metrics.values())

        existing = await self.db.execute(
            select(MetricsSnapshot).where(MetricsSnapshot.analysis_run_id == run_id)
        )
        snapshots = {s.brand_id: s for s in existing.scalars().all()}

        for brand_id, values in metrics.items():
            snapshot = snapshots.get(brand_id)
            if not snapshot:
                snapshot = MetricsSnapshot(analysis_run_id=run_id, brand_id=brand_id)
                self.db.add(snapshot)

            for name, value in asdict(values).items():
                setattr(snapshot, name, value)

        await self.db.flush()

        logger.info(
            f"Aggregated run {run_id}: {len(valid_results)}/{len(results)} valid results, "
            f"{len(brands)} brands"
        )
        return metrics

    async def _get_brands(self, project_id: UUID) -> List[Brand]:
        result = await self.db.execute(
            select(Project)
            .options(selectinload(Project.brands))
            .where(Project.id == project_id)
        )
        project = result.scalar_one_or_none()
        if not project:
            raise ValueError(f"Project {project_id} not found")
        return list(project.brands)

    async def _get_results(self, run_id: UUID) -> List[PromptResult]:
        result = await self.db.execute(
            select(PromptResult)
            .options(
                selectinload(PromptResult.brand_mentions),
                selectinload(PromptResult.citations),
            )
            .where(PromptResult.analysis_run_id == run_id)
        )
        return list(result.scalars().all())
