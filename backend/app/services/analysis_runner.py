"""
Analysis Run Orchestrator
Drives a run through pending -> processing -> completed | failed in the background
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, Callable, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from app.adapters.llm import BaseLLMAdapter
from app.adapters.parsing import BrandMatcher
from app.config import get_settings
from app.models import (
    AnalysisRun, Brand, BrandMention, Citation, Project, Prompt, PromptResult, RunStatus
)
from app.utils import get_db_context
from .metrics_aggregator import MetricsAggregator
from .progress import (
    ProgressBroadcaster, ProgressEvent, complete_event, error_event, progress_event
)
from .prompt_analyzer import PromptAnalysisResult, PromptAnalyzer

logger = logging.getLogger(__name__)


# ============================================================================
# PRECONDITION ERRORS
# ============================================================================

class AnalysisPreconditionError(Exception):
    """A run could not be started"""


class ProjectNotFoundError(AnalysisPreconditionError):
    def __init__(self, project_id: UUID):
        super().__init__(f"Project {project_id} not found")
        self.project_id = project_id


class NoActivePromptsError(AnalysisPreconditionError):
    def __init__(self, project_id: UUID):
        super().__init__("No active prompts found. Add some prompts first.")
        self.project_id = project_id


class ProviderNotConfiguredError(AnalysisPreconditionError):
    def __init__(self, provider: str):
        super().__init__(f"AI provider '{provider}' is not configured")
        self.provider = provider


class RunAlreadyInProgressError(AnalysisPreconditionError):
    def __init__(self, run_id: Optional[UUID]):
        super().__init__("Analysis already in progress")
        self.run_id = run_id


class RunNotPendingError(Exception):
    """Only a pending run can be executed, and only once"""

    def __init__(self, run_id: UUID, status: RunStatus):
        super().__init__(f"Analysis run {run_id} is {status.value}, not pending")
        self.run_id = run_id
        self.status = status


INTERRUPTED_RUN_MESSAGE = "Interrupted by restart"


@dataclass
class StartedRun:
    run_id: UUID
    total_prompts: int


# (id, name) / (id, text) pairs read once per run so no ORM objects outlive a session
BrandRef = Tuple[UUID, str]
PromptRef = Tuple[UUID, str]


class AnalysisRunner:
    """
    Starts analysis runs and executes them as supervised background tasks.

    Prompts of a run are processed strictly one after another with a pause
    between provider requests. One failing prompt never stops the run; an
    error escaping the run itself marks it failed. Progress goes to the
    broadcaster, keyed by run id.
    """

    def __init__(
        self,
        adapter: BaseLLMAdapter,
        session_factory: Callable = get_db_context,
        broadcaster: Optional[ProgressBroadcaster] = None,
        request_delay: Optional[float] = None,
        prompt_analyzer: Optional[PromptAnalyzer] = None,
    ):
        settings = get_settings()
        self.adapter = adapter
        self.session_factory = session_factory
        self.broadcaster = broadcaster or ProgressBroadcaster()
        self.request_delay = (
            settings.ANALYSIS_REQUEST_DELAY_SECONDS if request_delay is None else request_delay
        )
        self.prompt_analyzer = prompt_analyzer or PromptAnalyzer(
            adapter,
            brand_matcher=BrandMatcher(context_window=settings.ANALYSIS_CONTEXT_WINDOW),
        )

        self._locks: Dict[UUID, asyncio.Lock] = {}
        self._lock_users: Dict[UUID, int] = {}
        self._tasks: Dict[UUID, asyncio.Task] = {}

    @asynccontextmanager
    async def _project_lock(self, project_id: UUID):
        """Per-project lock, dropped once nobody holds or waits for it"""
        lock = self._locks.setdefault(project_id, asyncio.Lock())
        self._lock_users[project_id] = self._lock_users.get(project_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[project_id] -= 1
            if not self._lock_users[project_id]:
                del self._lock_users[project_id]
                del self._locks[project_id]

    # ------------------------------------------------------------------
    # Trigger
    # ------------------------------------------------------------------

    async def start_run(self, project_id: UUID) -> StartedRun:
        """
        Validate, create a pending run and start it in the background.

        Args:
            project_id: Project whose active prompts are analyzed

        Returns:
            StartedRun with the new run id and its prompt count

        Raises:
            ProjectNotFoundError, NoActivePromptsError,
            ProviderNotConfiguredError, RunAlreadyInProgressError
        """
        async with self._project_lock(project_id):
            try:
                started = await self._create_run(project_id)
            except IntegrityError as e:
                # Lost the race against another process holding the same project
                raise RunAlreadyInProgressError(await self._find_in_flight_run(project_id)) from e

            self.broadcaster.open(started.run_id)
            task = asyncio.create_task(
                self._supervise(started.run_id), name=f"analysis-run-{started.run_id}"
            )
            self._tasks[started.run_id] = task
            task.add_done_callback(lambda _: self._tasks.pop(started.run_id, None))

        logger.info(
            f"Analysis run {started.run_id} started for project {project_id} "
            f"({started.total_prompts} prompts)"
        )
        return started

    async def _create_run(self, project_id: UUID) -> StartedRun:
        async with self.session_factory() as db:
            if not await db.get(Project, project_id):
                raise ProjectNotFoundError(project_id)

            result = await db.execute(
                select(func.count(Prompt.id))
                .where(Prompt.project_id == project_id, Prompt.is_active.is_(True))
            )
            total_prompts = result.scalar() or 0
            if total_prompts == 0:
                raise NoActivePromptsError(project_id)

            if not self.adapter.is_configured:
                raise ProviderNotConfiguredError(self.adapter.provider.value)

            running_id = await self._find_in_flight_run(project_id, db)
            if running_id:
                raise RunAlreadyInProgressError(running_id)

            run = AnalysisRun(
                project_id=project_id,
                status=RunStatus.PENDING,
                total_prompts=total_prompts,
                processed_prompts=0,
            )
            db.add(run)
            await db.flush()

            return StartedRun(run_id=run.id, total_prompts=total_prompts)

    async def _find_in_flight_run(self, project_id: UUID, db=None) -> Optional[UUID]:
        if db is None:
            async with self.session_factory() as session:
                return await self._find_in_flight_run(project_id, session)

        result = await db.execute(
            select(AnalysisRun.id)
            .where(
                AnalysisRun.project_id == project_id,
                AnalysisRun.status.in_(RunStatus.in_flight()),
            )
            .order_by(AnalysisRun.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def iter_run(self, run_id: UUID) -> AsyncIterator[ProgressEvent]:
        """
        Execute a pending run, yielding one progress event per prompt and a
        final complete event once metrics are stored.

        Raises:
            RunNotPendingError: the run already started or finished
        """
        brands, prompts = await self._begin_processing(run_id)
        total = len(prompts)
        brand_names = [name for _, name in brands]

        for index, (prompt_id, prompt_text) in enumerate(prompts, start=1):
            if index > 1 and self.request_delay > 0:
                await asyncio.sleep(self.request_delay)

            analysis = await self.prompt_analyzer.analyze(prompt_text, brand_names)
            await self._record_result(run_id, prompt_id, brands, analysis)
            processed = await self._increment_processed(run_id)

            if analysis.success:
                mentioned = sum(1 for m in analysis.mentions if m.mentioned)
                logger.info(
                    f"[{index}/{total}] {prompt_text[:50]} - "
                    f"{mentioned} brands mentioned, {len(analysis.citations)} citations"
                )
            else:
                logger.warning(f"[{index}/{total}] {prompt_text[:50]} - failed: {analysis.error}")

            yield progress_event(processed, total, prompt_text)

        async with self.session_factory() as db:
            await MetricsAggregator(db).aggregate(run_id)
            run = await db.get(AnalysisRun, run_id)
            run.status = RunStatus.COMPLETED
            run.completed_at = datetime.utcnow()

        logger.info(f"Analysis run {run_id} completed ({total} prompts)")
        yield complete_event(run_id)

    async def _begin_processing(self, run_id: UUID) -> Tuple[List[BrandRef], List[PromptRef]]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(AnalysisRun.project_id, AnalysisRun.status).where(AnalysisRun.id == run_id)
            )
            run = result.one_or_none()
            if run is None:
                raise ValueError(f"Analysis run {run_id} not found")

            brand_rows = await db.execute(
                select(Brand.id, Brand.name)
                .where(Brand.project_id == run.project_id)
                .order_by(Brand.created_at, Brand.id)
            )
            prompt_rows = await db.execute(
                select(Prompt.id, Prompt.text)
                .where(Prompt.project_id == run.project_id, Prompt.is_active.is_(True))
                .order_by(Prompt.created_at, Prompt.id)
            )
            brands = [(row.id, row.name) for row in brand_rows]
            prompts = [(row.id, row.text) for row in prompt_rows]

            # pending -> processing happens once; every other caller loses here
            claimed = await db.execute(
                update(AnalysisRun)
                .where(AnalysisRun.id == run_id, AnalysisRun.status == RunStatus.PENDING)
                .values(
                    status=RunStatus.PROCESSING,
                    started_at=datetime.utcnow(),
                    total_prompts=len(prompts),
                )
                .execution_options(synchronize_session=False)
            )
            if claimed.rowcount != 1:
                raise RunNotPendingError(run_id, run.status)

        return brands, prompts

    async def _record_result(
        self,
        run_id: UUID,
        prompt_id: UUID,
        brands: List[BrandRef],
        analysis: PromptAnalysisResult,
    ) -> None:
        """Persist one prompt outcome; a write failure is stored as an errored result"""
        try:
            async with self.session_factory() as db:
                db.add(self._build_result(run_id, prompt_id, brands, analysis))
        except Exception as e:
            logger.exception(f"Failed to store result for prompt {prompt_id} of run {run_id}")
            async with self.session_factory() as db:
                db.add(PromptResult(
                    analysis_run_id=run_id,
                    prompt_id=prompt_id,
                    processing_time_ms=analysis.processing_time_ms,
                    error=f"Failed to store result: {e}",
                ))

    @staticmethod
    def _build_result(
        run_id: UUID,
        prompt_id: UUID,
        brands: List[BrandRef],
        analysis: PromptAnalysisResult,
    ) -> PromptResult:
        if not analysis.success:
            return PromptResult(
                analysis_run_id=run_id,
                prompt_id=prompt_id,
                processing_time_ms=analysis.processing_time_ms,
                error=analysis.error,
            )

        # Mentions come back one per brand, in the order the names were passed
        brand_mentions = [
            BrandMention(
                brand_id=brand_id,
                position=mention.position,
                mention_count=mention.count,
                context_snippet=mention.context,
                sentiment=mention.sentiment,
                sentiment_score=mention.sentiment_score,
                is_recommended=mention.is_recommended,
            )
            for (brand_id, _), mention in zip(brands, analysis.mentions)
        ]
        citations = [
            Citation(url=c.url, domain=c.domain, title=c.title)
            for c in analysis.citations
        ]

        return PromptResult(
            analysis_run_id=run_id,
            prompt_id=prompt_id,
            raw_response=analysis.response,
            response_length=analysis.response_length,
            processing_time_ms=analysis.processing_time_ms,
            search_queries=analysis.search_queries,
            brand_mentions=brand_mentions,
            citations=citations,
        )

    async def _increment_processed(self, run_id: UUID) -> int:
        async with self.session_factory() as db:
            await db.execute(
                update(AnalysisRun)
                .where(AnalysisRun.id == run_id)
                .values(processed_prompts=AnalysisRun.processed_prompts + 1)
            )
            result = await db.execute(
                select(AnalysisRun.processed_prompts).where(AnalysisRun.id == run_id)
            )
            return result.scalar_one()

    # ------------------------------------------------------------------
    # Supervision
    # ------------------------------------------------------------------

    async def _supervise(self, run_id: UUID) -> None:
        """Drain a run into the broadcaster; any escaping error fails the run"""
        try:
            async for event in self.iter_run(run_id):
                self.broadcaster.publish(run_id, event)
        except asyncio.CancelledError:
            await self._fail(run_id, "Analysis run was cancelled")
            raise
        except Exception as e:
            logger.exception(f"Analysis run {run_id} failed")
            await self._fail(run_id, str(e) or type(e).__name__)
        finally:
            self.broadcaster.close(run_id)

    async def _fail(self, run_id: UUID, message: str) -> None:
        await self._mark_failed(run_id, message)
        self.broadcaster.publish(run_id, error_event(run_id, message))

    async def _mark_failed(self, run_id: UUID, message: str) -> None:
        try:
            async with self.session_factory() as db:
                await db.execute(
                    update(AnalysisRun)
                    .where(
                        AnalysisRun.id == run_id,
                        AnalysisRun.status.in_(RunStatus.in_flight()),
                    )
                    .values(
                        status=RunStatus.FAILED,
                        error_message=message,
                        completed_at=datetime.utcnow(),
                    )
                )
        except Exception:
            logger.exception(f"Could not mark analysis run {run_id} as failed")

    async def recover_interrupted_runs(self) -> int:
        """
        Fail pending/processing runs that no task of this runner executes.

        Such runs were left behind by a process that stopped mid-run and
        would otherwise hold their project's in-flight slot forever. Call at
        startup, before runs are accepted.
        """
        query = update(AnalysisRun).where(AnalysisRun.status.in_(RunStatus.in_flight()))
        if self._tasks:
            query = query.where(AnalysisRun.id.not_in(list(self._tasks)))

        async with self.session_factory() as db:
            result = await db.execute(
                query
                .values(
                    status=RunStatus.FAILED,
                    error_message=INTERRUPTED_RUN_MESSAGE,
                    completed_at=datetime.utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            recovered = result.rowcount

        if recovered:
            logger.warning(f"Marked {recovered} interrupted analysis runs as failed")
        return recovered

    async def get_run(self, run_id: UUID) -> Optional[AnalysisRun]:
        async with self.session_factory() as db:
            return await db.get(AnalysisRun, run_id)

    def is_running(self, run_id: UUID) -> bool:
        return run_id in self._tasks

    async def wait(self, run_id: UUID) -> None:
        """Block until a background run has finished (no-op when not running)"""
        task = self._tasks.get(run_id)
        if task is not None:
            await asyncio.wait([task])

    async def shutdown(self) -> None:
        """Wait for every outstanding run"""
        tasks = list(self._tasks.values())
        if tasks:
            logger.info(f"Waiting for {len(tasks)} analysis runs to finish")
            await asyncio.wait(tasks)
