# tests/test_worker.py

"""
Worker Pool Tests - settling jobs on the queue, stalled-job reaping, shutdown
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from folio.core.exceptions import CollaboratorError
from folio.models.enumerations import RunStatus, StepKind
from folio.models.pipeline import CompletenessOutput, StoryOutput
from folio.pipelines.executor import Outcome, RetryPolicy, StepExecutor
from folio.pipelines.registry import StepRegistry
from folio.pipelines.worker import STALL_ERROR, WorkerPool
from folio.shutdown import set_shutdown


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def registry():
    return StepRegistry()


@pytest.fixture
def pool(job_queue, run_store, registry, test_settings):
    executor = StepExecutor(
        run_store,
        registry,
        retry_policy=RetryPolicy(max_attempts=3, base_delay_seconds=2.0),
        settings=test_settings,
    )
    return WorkerPool(job_queue, executor, run_store, settings=test_settings, name="test-pool")


class TestProcess:

    def test_success_completes_job(self, pool, registry, orchestrator, job_queue, run_store, user_id):
        registry.register(StepKind.STORY, AsyncMock(return_value=StoryOutput(role="Engineer")))
        job_id = run(orchestrator.enqueue_step(user_id, StepKind.STORY))
        job = run(job_queue.reserve("w1", 30))

        outcome = run(pool.process(job, "w1"))

        assert outcome.outcome == Outcome.SUCCEEDED
        assert job_id not in job_queue.jobs
        assert job_queue.active == []
        assert run_store.get_run(job_id).status == RunStatus.SUCCEEDED

    def test_retry_moves_job_to_delayed_then_back(self, pool, registry, orchestrator, job_queue, run_store, clock, user_id):
        handler = AsyncMock(side_effect=[CollaboratorError("llm", "timeout"), StoryOutput(role="Engineer")])
        registry.register(StepKind.STORY, handler)
        job_id = run(orchestrator.enqueue_step(user_id, StepKind.STORY))

        first = run(job_queue.reserve("w1", 30))
        run(pool.process(first, "w1"))
        assert job_id in job_queue.delayed
        assert run(job_queue.reserve("w1", 30)) is None

        clock.advance(2)
        second = run(job_queue.reserve("w1", 30))
        assert second.attempts == 2
        run(pool.process(second, "w1"))

        stored = run_store.get_run(job_id)
        assert stored.status == RunStatus.SUCCEEDED
        assert stored.attempts == 2
        assert stored.error is None

    def test_exhausted_retries_fail_without_touching_siblings(self, pool, registry, orchestrator, job_queue, run_store, clock, user_id):
        registry.register(StepKind.STORY, AsyncMock(side_effect=RuntimeError("llm down")))
        registry.register(StepKind.COMPLETENESS, AsyncMock(return_value=CompletenessOutput()))
        story_id, completeness_id = run(
            orchestrator.enqueue_steps(user_id, [StepKind.STORY, StepKind.COMPLETENESS])
        )

        for _ in range(6):
            job = run(job_queue.reserve("w1", 30))
            if job is None:
                clock.advance(60)
                continue
            run(pool.process(job, "w1"))

        assert run_store.get_run(story_id).status == RunStatus.FAILED
        assert run_store.get_run(story_id).error == "llm down"
        assert run_store.get_run(story_id).attempts == 3
        assert run_store.get_run(completeness_id).status == RunStatus.SUCCEEDED
        assert job_queue.jobs == {}

    def test_executor_crash_leaves_lease(self, pool, orchestrator, job_queue, user_id):
        pool.executor.execute = AsyncMock(side_effect=RuntimeError("run store unreachable"))
        job_id = run(orchestrator.enqueue_step(user_id, StepKind.STORY))
        job = run(job_queue.reserve("w1", 30))

        assert run(pool.process(job, "w1")) is None
        assert job_id in job_queue.active
        assert job_id in job_queue.leases

    def test_heartbeat_failure_does_not_skip_settle(self, registry, orchestrator, job_queue, run_store, test_settings, user_id):
        fast = test_settings.model_copy(update={"WORKER_HEARTBEAT_SECONDS": 0.01})
        executor = StepExecutor(run_store, registry, settings=fast)
        pool = WorkerPool(job_queue, executor, run_store, settings=fast, name="test-pool")

        async def slow_story(*args):
            await asyncio.sleep(0.05)
            return StoryOutput(role="Engineer")

        registry.register(StepKind.STORY, AsyncMock(side_effect=slow_story))
        job_queue.heartbeat = AsyncMock(side_effect=ConnectionError("redis blip"))
        job_id = run(orchestrator.enqueue_step(user_id, StepKind.STORY))
        job = run(job_queue.reserve("w1", 30))

        outcome = run(pool.process(job, "w1"))

        assert job_queue.heartbeat.await_count >= 1
        assert outcome.outcome == Outcome.SUCCEEDED
        assert job_id not in job_queue.jobs
        assert run_store.get_run(job_id).status == RunStatus.SUCCEEDED


class TestReaper:

    def test_stalled_job_is_requeued(self, pool, orchestrator, job_queue, run_store, clock, user_id):
        job_id = run(orchestrator.enqueue_step(user_id, StepKind.STORY))
        run(job_queue.reserve("w1", 30))
        run_store.mark_running(job_id, 1)

        clock.advance(31)
        assert run(pool.reap_once()) == 1

        stored = run_store.get_run(job_id)
        assert stored.status == RunStatus.QUEUED
        assert stored.error == STALL_ERROR
        assert job_id in job_queue.delayed

    def test_stalled_job_out_of_attempts_fails(self, pool, orchestrator, job_queue, run_store, clock, user_id):
        job_id = run(orchestrator.enqueue_step(user_id, StepKind.STORY))
        job_queue.jobs[job_id]["attempts"] = 2
        run(job_queue.reserve("w1", 30))
        run_store.mark_running(job_id, 3)

        clock.advance(31)
        run(pool.reap_once())

        stored = run_store.get_run(job_id)
        assert stored.status == RunStatus.FAILED
        assert stored.error.startswith(STALL_ERROR)
        assert job_id not in job_queue.jobs

    def test_live_lease_is_left_alone(self, pool, orchestrator, job_queue, clock, user_id):
        run(orchestrator.enqueue_step(user_id, StepKind.STORY))
        job = run(job_queue.reserve("w1", 30))
        clock.advance(20)
        run(job_queue.heartbeat(job.job_id, 30))
        clock.advance(20)

        assert run(pool.reap_once()) == 0

    def test_stalled_terminal_run_is_dropped(self, pool, orchestrator, job_queue, run_store, clock, user_id):
        job_id = run(orchestrator.enqueue_step(user_id, StepKind.STORY))
        run(job_queue.reserve("w1", 30))
        run_store.mark_running(job_id, 1)
        run_store.mark_succeeded(job_id, {})

        clock.advance(31)
        run(pool.reap_once())

        assert job_id not in job_queue.jobs
        assert run_store.get_run(job_id).status == RunStatus.SUCCEEDED


class TestRunLoop:

    def test_pool_drains_queue_and_stops_on_shutdown(self, pool, registry, orchestrator, run_store, user_id):
        registry.register(StepKind.STORY, AsyncMock(return_value=StoryOutput()))
        registry.register(StepKind.COMPLETENESS, AsyncMock(return_value=CompletenessOutput()))
        job_ids = run(orchestrator.enqueue_steps(user_id, [StepKind.STORY, StepKind.COMPLETENESS]))

        async def scenario():
            task = asyncio.create_task(pool.run())
            for _ in range(100):
                if all(run_store.get_run(j).status == RunStatus.SUCCEEDED for j in job_ids):
                    break
                await asyncio.sleep(0.02)
            set_shutdown()
            await asyncio.wait_for(task, timeout=5)

        run(scenario())

        assert all(run_store.get_run(j).status == RunStatus.SUCCEEDED for j in job_ids)

    def test_queue_errors_do_not_stop_the_pool(self, pool, registry, orchestrator, job_queue, run_store, user_id):
        registry.register(StepKind.STORY, AsyncMock(return_value=StoryOutput()))
        job_id = run(orchestrator.enqueue_step(user_id, StepKind.STORY))

        reserve = job_queue.reserve
        calls = []

        async def flaky_reserve(worker_id, lease_seconds):
            calls.append(worker_id)
            if len(calls) == 1:
                raise ConnectionError("redis blip")
            return await reserve(worker_id, lease_seconds)

        job_queue.reserve = flaky_reserve
        job_queue.reclaim_stalled = AsyncMock(side_effect=ConnectionError("redis blip"))

        async def scenario():
            task = asyncio.create_task(pool.run())
            for _ in range(100):
                if run_store.get_run(job_id).status == RunStatus.SUCCEEDED:
                    break
                await asyncio.sleep(0.02)
            set_shutdown()
            await asyncio.wait_for(task, timeout=5)

        run(scenario())

        assert len(calls) > 1
        assert run_store.get_run(job_id).status == RunStatus.SUCCEEDED
        assert job_queue.reclaim_stalled.await_count >= 1
