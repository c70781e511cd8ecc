# tests/conftest.py

"""
Pytest Fixtures - Shared doubles and sample data for pipeline, scoring and API tests
"""

import pytest
from fastapi.testclient import TestClient

from doubles import InMemoryJobQueue, InMemoryPipelineRunRepository, ManualClock
from folio.config import Settings
from folio.core.dependencies import get_job_queue, get_orchestrator
from folio.main import app
from folio.models.achievement import Achievement, Metric
from folio.pipelines.orchestrator import Orchestrator
from folio.shutdown import reset_shutdown


# =============================================================================
# PROCESS STATE
# =============================================================================

@pytest.fixture(autouse=True)
def _clear_shutdown_flag():
    reset_shutdown()
    yield
    reset_shutdown()


@pytest.fixture
def test_settings():
    """Fast worker timings for tests."""
    return Settings(
        PIPELINE_MAX_ATTEMPTS=3,
        PIPELINE_BACKOFF_BASE_SECONDS=2.0,
        WORKER_CONCURRENCY=2,
        WORKER_LEASE_SECONDS=30.0,
        WORKER_HEARTBEAT_SECONDS=10.0,
        WORKER_POLL_INTERVAL_SECONDS=0.05,
        REAPER_INTERVAL_SECONDS=1.0,
    )


# =============================================================================
# PIPELINE DOUBLES
# =============================================================================

@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def run_store():
    return InMemoryPipelineRunRepository()


@pytest.fixture
def job_queue(clock):
    return InMemoryJobQueue(clock=clock)


@pytest.fixture
def orchestrator(job_queue, run_store, test_settings, clock):
    return Orchestrator(job_queue, run_store, settings=test_settings, clock=clock)


# =============================================================================
# FASTAPI TEST CLIENT FIXTURE
# =============================================================================

@pytest.fixture
def client(orchestrator, job_queue):
    """TestClient with the orchestrator and queue swapped for in-memory doubles."""
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_job_queue] = lambda: job_queue
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# =============================================================================
# ACHIEVEMENT FIXTURES
# =============================================================================

@pytest.fixture
def user_id():
    return "user-123"


@pytest.fixture
def flagship_achievement(user_id):
    """Metric-backed, company-wide achievement with an action verb."""
    return Achievement(
        user_id=user_id,
        raw_text="Led platform migration serving 2M users company-wide, cutting costs by 35%",
        metric=Metric(value=2_000_000, unit="users", scope="company-wide"),
    )


@pytest.fixture
def plain_achievement(user_id):
    """No metric, no scope, short text."""
    return Achievement(user_id=user_id, raw_text="Helped with onboarding")


@pytest.fixture
def mixed_achievements(user_id):
    return [
        Achievement(user_id=user_id, raw_text="Wrote docs"),
        Achievement(
            user_id=user_id,
            raw_text="Increased conversion by 12% across the sales department",
            metric=Metric(value=12, unit="%", scope="department"),
        ),
        Achievement(
            user_id=user_id,
            raw_text="Built an internal tool adopted by the team",
            metric=Metric(scope="team"),
        ),
        Achievement(
            user_id=user_id,
            raw_text="Reduced infra spend by $400000 for the enterprise platform group",
            metric=Metric(value=400_000, unit="usd", scope="enterprise"),
        ),
    ]
