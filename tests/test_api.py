# tests/test_api.py

"""
API Endpoint Tests - pipeline trigger, status, runs, cancellation and health
"""

from unittest.mock import AsyncMock, patch

from fastapi import status
from fastapi.testclient import TestClient

from folio.main import app
from folio.models.enumerations import FULL_PIPELINE
from folio.shutdown import is_shutting_down


# ROOT


class TestRootEndpoint:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "running"

    def test_leaving_the_app_signals_shutdown(self):
        with TestClient(app) as test_client:
            assert test_client.get("/").status_code == status.HTTP_200_OK
            assert not is_shutting_down()
        assert is_shutting_down()


# PIPELINE TRIGGER


class TestRunPipelineEndpoint:
    """Tests for POST /api/v1/pipelines/run."""

    def test_full_run_accepted(self, client, job_queue):
        response = client.post(
            "/api/v1/pipelines/run",
            json={"user_id": "u1", "document_id": "doc-1", "site_version_id": "site-1"},
        )
        assert response.status_code == status.HTTP_202_ACCEPTED

        data = response.json()
        assert data["status"] == "queued"
        assert len(data["job_ids"]) == len(FULL_PIPELINE)
        assert data["job_ids"] == job_queue.waiting

    def test_full_run_requires_document(self, client):
        response = client.post("/api/v1/pipelines/run", json={"user_id": "u1"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["error_code"] == "DOCUMENT_REQUIRED"

    def test_explicit_steps(self, client, run_store):
        response = client.post(
            "/api/v1/pipelines/run",
            json={"user_id": "u1", "steps": ["story", "completeness"]},
        )
        assert response.status_code == status.HTTP_202_ACCEPTED
        job_ids = response.json()["job_ids"]
        assert [run_store.get_run(j).kind.value for j in job_ids] == ["story", "completeness"]

    def test_unknown_step_is_422(self, client):
        response = client.post(
            "/api/v1/pipelines/run",
            json={"user_id": "u1", "steps": ["teleport"]},
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_ingest_step_without_document_is_400(self, client):
        response = client.post(
            "/api/v1/pipelines/run",
            json={"user_id": "u1", "steps": ["ingest"]},
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["error_code"] == "INVALID_STEP_INPUT"

    def test_empty_step_list_is_400(self, client):
        response = client.post("/api/v1/pipelines/run", json={"user_id": "u1", "steps": []})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_missing_user_is_422(self, client):
        response = client.post("/api/v1/pipelines/run", json={"document_id": "doc-1"})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


# STATUS AND RUNS


class TestStatusEndpoints:

    def test_status_not_started(self, client):
        response = client.get("/api/v1/pipelines/status/nobody")
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"user_id": "nobody", "per_step": [], "overall": "not_started"}

    def test_status_after_full_run(self, client):
        client.post("/api/v1/pipelines/run", json={"user_id": "u1", "document_id": "doc-1"})

        data = client.get("/api/v1/pipelines/status/u1").json()

        assert data["overall"] == "pending"
        assert [s["step"] for s in data["per_step"]] == [k.value for k in FULL_PIPELINE]
        assert all(s["status"] == "queued" for s in data["per_step"])

    def test_list_runs_with_filters(self, client, run_store):
        job_ids = client.post(
            "/api/v1/pipelines/run", json={"user_id": "u1", "steps": ["story", "skill-offers"]}
        ).json()["job_ids"]
        run_store.mark_running(job_ids[0], 1)

        running = client.get("/api/v1/pipelines/runs", params={"user_id": "u1", "status": "running"}).json()
        offers = client.get("/api/v1/pipelines/runs", params={"user_id": "u1", "step": "skill-offers"}).json()

        assert [r["id"] for r in running] == [job_ids[0]]
        assert [r["id"] for r in offers] == [job_ids[1]]

    def test_get_run(self, client):
        job_id = client.post(
            "/api/v1/pipelines/run", json={"user_id": "u1", "steps": ["story"]}
        ).json()["job_ids"][0]

        response = client.get(f"/api/v1/pipelines/runs/{job_id}", params={"user_id": "u1"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["kind"] == "story"

    def test_get_run_of_other_user_is_404(self, client):
        job_id = client.post(
            "/api/v1/pipelines/run", json={"user_id": "u1", "steps": ["story"]}
        ).json()["job_ids"][0]

        response = client.get(f"/api/v1/pipelines/runs/{job_id}", params={"user_id": "u2"})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"]["error_code"] == "RUN_NOT_FOUND"


# CANCELLATION


class TestCancelEndpoint:

    def test_cancel_queued_run(self, client, job_queue):
        job_id = client.post(
            "/api/v1/pipelines/run", json={"user_id": "u1", "steps": ["story"]}
        ).json()["job_ids"][0]

        response = client.post(f"/api/v1/pipelines/runs/{job_id}/cancel", params={"user_id": "u1"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "canceled"
        assert job_queue.waiting == []

    def test_cancel_running_run_is_409(self, client, run_store):
        job_id = client.post(
            "/api/v1/pipelines/run", json={"user_id": "u1", "steps": ["story"]}
        ).json()["job_ids"][0]
        run_store.mark_running(job_id, 1)

        response = client.post(f"/api/v1/pipelines/runs/{job_id}/cancel", params={"user_id": "u1"})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["detail"]["error_code"] == "RUN_NOT_CANCELABLE"

    def test_cancel_unknown_run_is_404(self, client):
        response = client.post("/api/v1/pipelines/runs/missing/cancel", params={"user_id": "u1"})
        assert response.status_code == status.HTTP_404_NOT_FOUND


# HEALTH


class TestHealthEndpoint:

    def test_all_healthy(self, client):
        with patch("folio.routers.health.check_snowflake", AsyncMock(return_value="healthy (User: X)")), \
             patch("folio.routers.health.check_redis", AsyncMock(return_value="healthy")):
            response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert data["queue"] == {"waiting": 0, "active": 0, "delayed": 0}

    def test_degraded_is_503(self, client):
        with patch("folio.routers.health.check_snowflake", AsyncMock(return_value="unhealthy: no account")), \
             patch("folio.routers.health.check_redis", AsyncMock(return_value="healthy")):
            response = client.get("/health")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["dependencies"]["snowflake"].startswith("unhealthy")
