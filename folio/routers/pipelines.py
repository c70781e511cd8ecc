"""
Pipeline Router - Folio Pipeline Engine
folio/routers/pipelines.py

Trigger pipeline runs, poll their status and cancel queued runs.
Work happens in the worker process; every endpoint here only touches the
run store and the queue.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.exceptions import HTTPException
from pydantic import BaseModel, Field

from folio.core.dependencies import get_orchestrator
from folio.core.exceptions import (
    EntityNotFoundException,
    RunNotCancelableError,
    StepValidationError,
)
from folio.models.enumerations import RunStatus, StepKind
from folio.models.pipeline import PipelineRun, PipelineStatusView, StepContext
from folio.pipelines.orchestrator import Orchestrator

router = APIRouter(prefix="/api/v1/pipelines", tags=["Pipelines"])


#  Schemas


class ErrorResponse(BaseModel):
    error_code: str
    message: str
    details: Optional[dict] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RunRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    steps: Optional[List[StepKind]] = Field(
        default=None,
        description="Steps to run in order. Omit for the full pipeline.",
    )
    document_id: Optional[str] = None
    site_version_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class RunAccepted(BaseModel):
    message: str
    job_ids: List[str]
    status: str = "queued"


def raise_error(status_code: int, error_code: str, message: str):
    raise HTTPException(
        status_code=status_code,
        detail=ErrorResponse(error_code=error_code, message=message).model_dump(mode="json"),
    )


#  Endpoints


@router.post(
    "/run",
    response_model=RunAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Enqueue a full pipeline run or an explicit list of steps",
)
async def run_pipeline(
    body: RunRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> RunAccepted:
    try:
        if body.steps is None:
            if not body.document_id:
                raise_error(
                    status.HTTP_400_BAD_REQUEST,
                    "DOCUMENT_REQUIRED",
                    "document_id is required for a full pipeline run",
                )
            job_ids = await orchestrator.enqueue_full_run(
                body.user_id, body.document_id, body.site_version_id
            )
            message = f"Full pipeline queued ({len(job_ids)} steps)"
        else:
            context = StepContext(
                document_id=body.document_id,
                site_version_id=body.site_version_id,
                metadata=body.metadata,
            )
            job_ids = await orchestrator.enqueue_steps(body.user_id, body.steps, context)
            message = f"{len(job_ids)} step(s) queued"
    except StepValidationError as e:
        raise_error(status.HTTP_400_BAD_REQUEST, "INVALID_STEP_INPUT", e.message)

    return RunAccepted(message=message, job_ids=job_ids)


@router.get(
    "/status/{user_id}",
    response_model=PipelineStatusView,
    summary="Latest run of each step and the overall status",
)
async def get_pipeline_status(
    user_id: str,
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> PipelineStatusView:
    return await orchestrator.get_status(user_id)


@router.get("/runs", response_model=List[PipelineRun], summary="Run history for a user")
async def list_runs(
    user_id: str = Query(..., min_length=1),
    step: Optional[StepKind] = Query(default=None),
    status_filter: Optional[RunStatus] = Query(default=None, alias="status"),
    limit: int = Query(default=100, ge=1, le=1000),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> List[PipelineRun]:
    return await orchestrator.list_runs(user_id, step, status_filter, limit)


@router.get("/runs/{run_id}", response_model=PipelineRun, summary="One run record")
async def get_run(
    run_id: str,
    user_id: str = Query(..., min_length=1),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> PipelineRun:
    try:
        return await orchestrator.get_run(user_id, run_id)
    except EntityNotFoundException:
        raise_error(status.HTTP_404_NOT_FOUND, "RUN_NOT_FOUND", f"Run {run_id} not found")


@router.post("/runs/{run_id}/cancel", response_model=PipelineRun, summary="Cancel a queued run")
async def cancel_run(
    run_id: str,
    user_id: str = Query(..., min_length=1),
    orchestrator: Orchestrator = Depends(get_orchestrator),
) -> PipelineRun:
    try:
        return await orchestrator.cancel_run(user_id, run_id)
    except EntityNotFoundException:
        raise_error(status.HTTP_404_NOT_FOUND, "RUN_NOT_FOUND", f"Run {run_id} not found")
    except RunNotCancelableError as e:
        raise_error(status.HTTP_409_CONFLICT, "RUN_NOT_CANCELABLE", str(e))
