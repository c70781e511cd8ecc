"""
Step executor
folio/pipelines/executor.py

Runs one attempt of one queued job and records every status transition
before returning, so the worker only touches the queue after the run store
reflects the attempt.

Error taxonomy:
    StepValidationError  -> failed, no retry
    any other exception  -> queued again with backoff while attempts remain,
                            then failed with the error message verbatim
    step timeout         -> same as any other exception
"""
import asyncio
import enum
from dataclasses import dataclass
from typing import Optional

import structlog

from folio.config import Settings, settings as default_settings
from folio.core.exceptions import StepValidationError
from folio.models.enumerations import TERMINAL_STATUSES
from folio.models.pipeline import parse_step_job
from folio.pipelines.queue import QueuedJob
from folio.pipelines.registry import StepRegistry

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff: delay after attempt n is base * 2**(n-1)."""
    max_attempts: int = 3
    base_delay_seconds: float = 2.0

    @classmethod
    def from_settings(cls, s: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=s.PIPELINE_MAX_ATTEMPTS,
            base_delay_seconds=s.PIPELINE_BACKOFF_BASE_SECONDS,
        )

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts

    def delay_for(self, attempt: int) -> float:
        return self.base_delay_seconds * (2 ** (max(attempt, 1) - 1))


class Outcome(str, enum.Enum):
    SUCCEEDED = "succeeded"
    RETRY = "retry"
    FAILED = "failed"
    DISCARDED = "discarded"


@dataclass(frozen=True)
class ExecutionOutcome:
    outcome: Outcome
    delay_seconds: float = 0.0
    error: Optional[str] = None


def describe_error(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class StepExecutor:
    def __init__(
        self,
        runs,
        registry: StepRegistry,
        retry_policy: Optional[RetryPolicy] = None,
        settings: Optional[Settings] = None,
    ):
        self.runs = runs
        self.registry = registry
        self.settings = settings or default_settings
        self.retry_policy = retry_policy or RetryPolicy.from_settings(self.settings)

    async def execute(self, job: QueuedJob) -> ExecutionOutcome:
        log = logger.bind(run_id=job.job_id, attempt=job.attempts)

        run = await asyncio.to_thread(self.runs.get_run, job.job_id)
        if run is None:
            log.warning("run_missing_discarding_job")
            return ExecutionOutcome(Outcome.DISCARDED)
        if run.status in TERMINAL_STATUSES:
            log.info("run_not_runnable_discarding_job", status=run.status.value)
            return ExecutionOutcome(Outcome.DISCARDED)

        try:
            step_job = parse_step_job(job.payload)
            handler = self.registry.get(step_job.kind)
        except StepValidationError as e:
            return await self._fail(job, describe_error(e), log)

        log = log.bind(step=step_job.kind.value, user_id=step_job.user_id)

        started = await asyncio.to_thread(self.runs.mark_running, job.job_id, job.attempts)
        if not started:
            log.info("run_left_queued_state_discarding_job")
            return ExecutionOutcome(Outcome.DISCARDED)
        log.info("step_started")

        timeout = self.settings.step_timeout(step_job.kind.value)
        try:
            output = await asyncio.wait_for(handler(step_job), timeout=timeout)
        except StepValidationError as e:
            return await self._fail(job, describe_error(e), log)
        except asyncio.TimeoutError:
            return await self._retry_or_fail(
                job, f"Step {step_job.kind.value} timed out after {timeout:g}s", log
            )
        except Exception as e:
            log.warning("step_attempt_failed", error=describe_error(e), error_type=type(e).__name__)
            return await self._retry_or_fail(job, describe_error(e), log)

        await asyncio.to_thread(
            self.runs.mark_succeeded, job.job_id, output.model_dump(mode="json")
        )
        log.info("step_succeeded", skipped_reason=output.skipped_reason)
        return ExecutionOutcome(Outcome.SUCCEEDED)

    async def _fail(self, job: QueuedJob, error: str, log) -> ExecutionOutcome:
        await asyncio.to_thread(self.runs.mark_failed, job.job_id, error)
        log.error("step_failed", error=error)
        return ExecutionOutcome(Outcome.FAILED, error=error)

    async def _retry_or_fail(self, job: QueuedJob, error: str, log) -> ExecutionOutcome:
        if job.attempts < job.max_attempts and self.retry_policy.should_retry(job.attempts):
            delay = self.retry_policy.delay_for(job.attempts)
            await asyncio.to_thread(self.runs.mark_requeued, job.job_id, error)
            log.warning("step_retry_scheduled", error=error, delay_seconds=delay)
            return ExecutionOutcome(Outcome.RETRY, delay_seconds=delay, error=error)
        return await self._fail(job, error, log)
