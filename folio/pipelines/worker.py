"""
Worker pool
folio/pipelines/worker.py

N asyncio workers reserving jobs from the shared queue, one heartbeat task
per held job, and a reaper that reclaims jobs whose lease expired.
"""
import asyncio
import os
import socket
from typing import List, Optional

import structlog

from folio.config import Settings, settings as default_settings
from folio.models.enumerations import TERMINAL_STATUSES
from folio.pipelines.executor import ExecutionOutcome, Outcome, RetryPolicy, StepExecutor
from folio.pipelines.queue import QueuedJob, RedisJobQueue
from folio.shutdown import is_shutting_down

logger = structlog.get_logger(__name__)

STALL_ERROR = "Job stalled: worker lease expired"


class WorkerPool:
    def __init__(
        self,
        queue: RedisJobQueue,
        executor: StepExecutor,
        runs,
        settings: Optional[Settings] = None,
        name: Optional[str] = None,
    ):
        self.queue = queue
        self.executor = executor
        self.runs = runs
        self.settings = settings or default_settings
        self.retry_policy: RetryPolicy = executor.retry_policy
        self.name = name or f"{socket.gethostname()}-{os.getpid()}"

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Run workers and the reaper until shutdown is signalled."""
        logger.info(
            "worker_pool_starting",
            pool=self.name,
            concurrency=self.settings.WORKER_CONCURRENCY,
        )
        tasks: List[asyncio.Task] = [
            asyncio.create_task(self._worker_loop(i), name=f"worker-{i}")
            for i in range(self.settings.WORKER_CONCURRENCY)
        ]
        tasks.append(asyncio.create_task(self._reaper_loop(), name="reaper"))
        try:
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("worker_pool_stopped", pool=self.name)

    async def _worker_loop(self, index: int) -> None:
        worker_id = f"{self.name}:{index}"
        log = logger.bind(worker=worker_id)
        while not is_shutting_down():
            try:
                job = await self.queue.reserve(worker_id, self.settings.WORKER_LEASE_SECONDS)
                if job is None:
                    await asyncio.sleep(self.settings.WORKER_POLL_INTERVAL_SECONDS)
                    continue
                await self.process(job, worker_id)
            except Exception:
                # Queue unreachable; back off and poll again.
                log.exception("worker_iteration_failed")
                await asyncio.sleep(self.settings.WORKER_POLL_INTERVAL_SECONDS)

    async def _reaper_loop(self) -> None:
        while not is_shutting_down():
            try:
                await self.reap_once()
            except Exception:
                logger.exception("reaper_iteration_failed", pool=self.name)
            await asyncio.sleep(self.settings.REAPER_INTERVAL_SECONDS)

    # ------------------------------------------------------------------
    # one job
    # ------------------------------------------------------------------

    async def process(self, job: QueuedJob, worker_id: str = "") -> Optional[ExecutionOutcome]:
        """Execute a reserved job while keeping its lease alive, then settle it."""
        log = logger.bind(run_id=job.job_id, worker=worker_id, attempt=job.attempts)
        heartbeat = asyncio.create_task(self._heartbeat(job.job_id))
        try:
            outcome = await self.executor.execute(job)
        except Exception:
            # The lease is left to expire; the reaper re-queues or fails the job.
            log.exception("job_execution_crashed")
            return None
        finally:
            heartbeat.cancel()
            try:
                await heartbeat
            except asyncio.CancelledError:
                pass
            except Exception:
                # A failed renewal only risks the lease; the outcome still stands.
                log.exception("heartbeat_failed")

        await self._settle(job, outcome)
        return outcome

    async def _heartbeat(self, job_id: str) -> None:
        while True:
            await asyncio.sleep(self.settings.WORKER_HEARTBEAT_SECONDS)
            renewed = await self.queue.heartbeat(job_id, self.settings.WORKER_LEASE_SECONDS)
            if not renewed:
                logger.warning("lease_lost", run_id=job_id)
                return

    async def _settle(self, job: QueuedJob, outcome: ExecutionOutcome) -> None:
        if outcome.outcome == Outcome.RETRY:
            await self.queue.retry(job.job_id, outcome.delay_seconds)
        elif outcome.outcome == Outcome.FAILED:
            await self.queue.fail(job.job_id)
        else:
            await self.queue.complete(job.job_id)

    # ------------------------------------------------------------------
    # stalled jobs
    # ------------------------------------------------------------------

    async def reap_once(self) -> int:
        """Re-queue or fail every job whose lease expired. Returns the count handled."""
        stalled = await self.queue.reclaim_stalled(self.settings.WORKER_LEASE_SECONDS)
        for job in stalled:
            run = await asyncio.to_thread(self.runs.get_run, job.job_id)
            if run is None or run.status in TERMINAL_STATUSES:
                await self.queue.complete(job.job_id)
                continue

            if job.attempts < job.max_attempts:
                await asyncio.to_thread(self.runs.mark_requeued, job.job_id, STALL_ERROR)
                await self.queue.requeue(job.job_id, self.retry_policy.delay_for(job.attempts))
                logger.warning("stalled_job_requeued", run_id=job.job_id, attempts=job.attempts)
            else:
                error = f"{STALL_ERROR} after {job.attempts} attempts"
                await asyncio.to_thread(self.runs.mark_failed, job.job_id, error)
                await self.queue.fail(job.job_id)
                logger.error("stalled_job_failed", run_id=job.job_id, attempts=job.attempts)
        return len(stalled)
