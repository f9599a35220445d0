"""
Analysis Run Routes
"""

import json
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import get_settings
from app.models import AnalysisRun, BrandMention, MetricsSnapshot, PromptResult, RunStatus
from app.schemas.analysis import (
    AnalysisRunDetail, AnalysisRunListItem, AnalysisRunListResponse,
    AnalysisRunWithMetrics, PromptResultResponse, StartRunResponse,
)
from app.services import (
    AnalysisRunner, NoActivePromptsError, ProjectNotFoundError,
    ProviderNotConfiguredError, RunAlreadyInProgressError,
    complete_event, error_event,
)
from app.utils import get_db

logger = logging.getLogger(__name__)

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def get_analysis_runner(request: Request) -> AnalysisRunner:
    """The application-wide runner created at startup"""
    return request.app.state.analysis_runner


def _sse(event: dict) -> str:
    return f"data: {json.dumps(event)}\n\n"


async def _get_run(db: AsyncSession, project_id: UUID, run_id: UUID, *options) -> AnalysisRun:
    result = await db.execute(
        select(AnalysisRun)
        .options(*options)
        .where(AnalysisRun.id == run_id, AnalysisRun.project_id == project_id)
    )
    run = result.scalar_one_or_none()
    if not run:
        raise HTTPException(status_code=404, detail="Analysis run not found")
    return run


def _result_options():
    return (
        selectinload(PromptResult.prompt),
        selectinload(PromptResult.brand_mentions),
        selectinload(PromptResult.citations),
    )


@router.post("/{project_id}/run", status_code=202, response_model=StartRunResponse)
async def start_analysis(
    project_id: UUID,
    runner: AnalysisRunner = Depends(get_analysis_runner),
):
    """Start an analysis run over the project's active prompts"""
    try:
        started = await runner.start_run(project_id)
    except ProjectNotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")
    except NoActivePromptsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProviderNotConfiguredError:
        raise HTTPException(
            status_code=503,
            detail="AI provider API key not configured. Set GOOGLE_API_KEY.",
        )
    except RunAlreadyInProgressError as e:
        return JSONResponse(
            status_code=409,
            content={"error": str(e), "runId": str(e.run_id) if e.run_id else None},
        )

    settings = get_settings()
    return StartRunResponse(
        run_id=started.run_id,
        total_prompts=started.total_prompts,
        estimated_time_seconds=started.total_prompts * settings.ANALYSIS_ESTIMATED_SECONDS_PER_PROMPT,
    )


@router.get("/{project_id}/runs", response_model=AnalysisRunListResponse)
async def list_runs(
    project_id: UUID,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """List analysis runs of a project, newest first"""
    result = await db.execute(
        select(func.count(AnalysisRun.id)).where(AnalysisRun.project_id == project_id)
    )
    total = result.scalar()

    result_count = (
        select(func.count(PromptResult.id))
        .where(PromptResult.analysis_run_id == AnalysisRun.id)
        .correlate(AnalysisRun)
        .scalar_subquery()
    )
    result = await db.execute(
        select(AnalysisRun, result_count)
        .where(AnalysisRun.project_id == project_id)
        .order_by(AnalysisRun.created_at.desc())
        .offset(offset)
        .limit(limit)
    )

    runs = []
    for run, count in result.all():
        item = AnalysisRunListItem.model_validate(run)
        item.result_count = count
        runs.append(item)

    return AnalysisRunListResponse(runs=runs, total=total)


@router.get("/{project_id}/runs/{run_id}")
async def get_run(
    project_id: UUID,
    run_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Get a run with its metrics snapshots and prompt results"""
    run = await _get_run(
        db, project_id, run_id,
        selectinload(AnalysisRun.metrics_snapshots).selectinload(MetricsSnapshot.brand),
        selectinload(AnalysisRun.prompt_results).options(*_result_options()),
    )
    return {"run": AnalysisRunDetail.model_validate(run)}


def _run_state_event(run_id: UUID, run: Optional[AnalysisRun]) -> dict:
    """The event describing a run as stored right now"""
    if run is None:
        return error_event(run_id, "Analysis run not found")
    if run.status == RunStatus.COMPLETED:
        return complete_event(run_id)
    if run.status == RunStatus.FAILED:
        return error_event(run_id, run.error_message or "Analysis failed")
    return {
        "type": "connected",
        "runId": str(run_id),
        "status": run.status.value,
        "processed": run.processed_prompts,
        "total": run.total_prompts,
    }


@router.get("/{project_id}/runs/{run_id}/stream")
async def stream_run_progress(
    project_id: UUID,
    run_id: UUID,
    db: AsyncSession = Depends(get_db),
    runner: AnalysisRunner = Depends(get_analysis_runner),
):
    """Server-Sent Events stream of a run's progress"""
    run = await _get_run(db, project_id, run_id)
    stored = _run_state_event(run_id, run)

    async def event_stream():
        if stored["type"] != "connected":
            yield _sse(stored)
            return

        # The observer exists only while this body is being streamed
        async with runner.broadcaster.listen(run_id) as live:
            # Re-read after registering so no event falls between snapshot and stream
            first = _run_state_event(run_id, await runner.get_run(run_id))
            yield _sse(first)
            if first["type"] != "connected":
                return
            async for event in live:
                yield _sse(event)

    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=SSE_HEADERS)


@router.get("/{project_id}/runs/{run_id}/results")
async def get_run_results(
    project_id: UUID,
    run_id: UUID,
    brand_id: Optional[UUID] = Query(None),
    mentioned: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Prompt-level results of a run, optionally only those (not) mentioning a brand"""
    await _get_run(db, project_id, run_id)

    query = (
        select(PromptResult)
        .options(*_result_options())
        .where(PromptResult.analysis_run_id == run_id)
    )

    if brand_id is not None and mentioned is not None:
        position = (
            BrandMention.position.is_not(None) if mentioned else BrandMention.position.is_(None)
        )
        query = query.where(
            PromptResult.brand_mentions.any(
                (BrandMention.brand_id == brand_id) & position
            )
        )

    result = await db.execute(query.order_by(PromptResult.created_at))
    return {
        "results": [PromptResultResponse.model_validate(r) for r in result.scalars().all()],
    }


@router.get("/{project_id}/latest")
async def get_latest_run(
    project_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Latest completed run with its metrics snapshots"""
    result = await db.execute(
        select(AnalysisRun)
        .options(selectinload(AnalysisRun.metrics_snapshots).selectinload(MetricsSnapshot.brand))
        .where(AnalysisRun.project_id == project_id, AnalysisRun.status == RunStatus.COMPLETED)
        .order_by(AnalysisRun.completed_at.desc())
        .limit(1)
    )
    run = result.scalar_one_or_none()
    if not run:
        raise HTTPException(status_code=404, detail="No completed analysis runs found")

    return {"run": AnalysisRunWithMetrics.model_validate(run)}


@router.delete("/{project_id}/runs/{run_id}")
async def delete_run(
    project_id: UUID,
    run_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Delete a finished run with its results and snapshots"""
    run = await _get_run(db, project_id, run_id)
    if run.status in RunStatus.in_flight():
        raise HTTPException(status_code=409, detail="Cannot delete a run that is in progress")

    await db.delete(run)
    logger.info(f"Deleted analysis run {run_id}")
    return {"message": "Analysis run deleted successfully"}
