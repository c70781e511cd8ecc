"""
Pipeline orchestrator
folio/pipelines/orchestrator.py

Accepts run requests, writes the queued run record, then pushes the job.
Built once per process (see folio.core.dependencies.get_orchestrator) around
a queue client and a run store, so tests substitute both.
"""
import asyncio
import time
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import structlog

from folio.config import Settings, settings as default_settings
from folio.core.exceptions import (
    DuplicateEntityException,
    EntityNotFoundException,
    RunNotCancelableError,
    StepValidationError,
)
from folio.models.enumerations import (
    FULL_PIPELINE,
    OverallStatus,
    RunStatus,
    StepKind,
)
from folio.models.pipeline import (
    PipelineRun,
    PipelineStatusView,
    StepContext,
    StepStatus,
    build_step_payload,
    parse_step_job,
)
from folio.pipelines.executor import describe_error

logger = structlog.get_logger(__name__)


def make_job_id(user_id: str, step: StepKind, epoch_ms: int) -> str:
    """Run/job id: "{user_id}-{step}-{epoch_ms}"."""
    return f"{user_id}-{step.value}-{epoch_ms}"


def overall_status(statuses: Iterable[RunStatus]) -> OverallStatus:
    """Precedence: running > failed > all succeeded > pending."""
    statuses = list(statuses)
    if not statuses:
        return OverallStatus.NOT_STARTED
    if any(s == RunStatus.RUNNING for s in statuses):
        return OverallStatus.RUNNING
    if any(s == RunStatus.FAILED for s in statuses):
        return OverallStatus.FAILED
    if all(s == RunStatus.SUCCEEDED for s in statuses):
        return OverallStatus.COMPLETED
    return OverallStatus.PENDING


class Orchestrator:
    def __init__(
        self,
        queue,
        runs,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.queue = queue
        self.runs = runs
        self.settings = settings or default_settings
        self.clock = clock

    # ------------------------------------------------------------------
    # enqueue
    # ------------------------------------------------------------------

    async def enqueue_step(
        self,
        user_id: str,
        step: StepKind,
        context: Optional[StepContext] = None,
    ) -> str:
        """
        Enqueue one step and return its job id.

        If the latest run for (user, step) is still queued or running, its id
        is returned and nothing new is enqueued.
        """
        context = context or StepContext()
        payload = build_step_payload(user_id, step, context)
        parse_step_job(payload)  # reject malformed input before anything is written

        log = logger.bind(user_id=user_id, step=step.value)

        in_flight = await asyncio.to_thread(self.runs.find_in_flight, user_id, step)
        if in_flight is not None:
            log.info("step_already_in_flight", run_id=in_flight.id, status=in_flight.status.value)
            return in_flight.id

        job_id = make_job_id(user_id, step, int(self.clock() * 1000))
        run = PipelineRun(id=job_id, user_id=user_id, kind=step, input=payload)
        await asyncio.to_thread(self.runs.create_run, run)

        try:
            await self.queue.enqueue(job_id, payload, self.settings.PIPELINE_MAX_ATTEMPTS)
        except DuplicateEntityException:
            log.info("duplicate_submission", run_id=job_id)
            return job_id
        except Exception as e:
            # No job behind the row: close it so the step can be enqueued again.
            await asyncio.to_thread(
                self.runs.mark_failed, job_id, f"Enqueue failed: {describe_error(e)}"
            )
            log.error("step_enqueue_failed", run_id=job_id, error=describe_error(e))
            raise

        log.info("step_enqueued", run_id=job_id)
        return job_id

    async def enqueue_steps(
        self,
        user_id: str,
        steps: Sequence[StepKind],
        context: Optional[StepContext] = None,
    ) -> List[str]:
        """Enqueue an explicit step list in the given order."""
        if not steps:
            raise StepValidationError("At least one step is required")
        return [await self.enqueue_step(user_id, step, context) for step in steps]

    async def enqueue_full_run(
        self,
        user_id: str,
        document_id: str,
        site_version_id: Optional[str] = None,
    ) -> List[str]:
        """Enqueue every step of FULL_PIPELINE up front; one id per step, in order."""
        if not document_id:
            raise StepValidationError("document_id is required for a full pipeline run", step="ingest")
        context = StepContext(document_id=document_id, site_version_id=site_version_id)
        job_ids = await self.enqueue_steps(user_id, FULL_PIPELINE, context)
        logger.info("full_run_enqueued", user_id=user_id, job_ids=job_ids)
        return job_ids

    # ------------------------------------------------------------------
    # status
    # ------------------------------------------------------------------

    async def get_status(self, user_id: str) -> PipelineStatusView:
        latest: Dict[StepKind, PipelineRun] = await asyncio.to_thread(
            self.runs.latest_runs_by_step, user_id
        )
        ordered = [latest[k] for k in FULL_PIPELINE if k in latest]
        per_step = [
            StepStatus(
                step=run.kind,
                run_id=run.id,
                status=run.status,
                error=run.error,
                attempts=run.attempts,
                started_at=run.started_at,
                completed_at=run.completed_at,
            )
            for run in ordered
        ]
        return PipelineStatusView(
            user_id=user_id,
            per_step=per_step,
            overall=overall_status(run.status for run in ordered),
        )

    async def list_runs(
        self,
        user_id: str,
        step: Optional[StepKind] = None,
        status: Optional[RunStatus] = None,
        limit: int = 100,
    ) -> List[PipelineRun]:
        return await asyncio.to_thread(self.runs.list_runs, user_id, step, status, limit)

    async def get_run(self, user_id: str, run_id: str) -> PipelineRun:
        run = await asyncio.to_thread(self.runs.get_run, run_id)
        if run is None or run.user_id != user_id:
            raise EntityNotFoundException("PipelineRun", run_id)
        return run

    # ------------------------------------------------------------------
    # cancellation
    # ------------------------------------------------------------------

    async def cancel_run(self, user_id: str, run_id: str) -> PipelineRun:
        """Cancel a queued run. Running or finished runs raise RunNotCancelableError."""
        run = await self.get_run(user_id, run_id)
        if run.status != RunStatus.QUEUED:
            raise RunNotCancelableError(run_id, run.status.value)

        canceled = await asyncio.to_thread(self.runs.mark_canceled, run_id)
        if not canceled:
            # a worker picked it up in between
            current = await self.get_run(user_id, run_id)
            raise RunNotCancelableError(run_id, current.status.value)

        removed = await self.queue.remove(run_id)
        logger.info("run_canceled", user_id=user_id, run_id=run_id, removed_from_queue=removed)
        return await self.get_run(user_id, run_id)
