"""
Pipeline models - Folio Pipeline Engine
folio/models/pipeline.py

PipelineRun audit records, the step job contract (a discriminated union keyed by
step kind), per-step outputs and the aggregate status view.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from folio.core.exceptions import StepValidationError
from folio.models.asset import ResolvedAsset
from folio.models.completeness import CompletenessRecord
from folio.models.enumerations import OverallStatus, RunStatus, StepKind


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# PIPELINE RUN
# =============================================================================


class PipelineRun(BaseModel):
    """One execution record of one step for one user. Never deleted."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Run id; equal to the queue job id")
    user_id: str
    kind: StepKind
    status: RunStatus = RunStatus.QUEUED
    input: Dict[str, Any] = Field(default_factory=dict)
    output: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    attempts: int = Field(default=0, ge=0)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


# =============================================================================
# STEP JOB CONTRACT
# =============================================================================


class StepContext(BaseModel):
    """Caller-supplied context shared by the jobs of one run request."""

    document_id: Optional[str] = None
    site_version_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class _StepJobBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: str = Field(..., min_length=1)
    document_id: Optional[str] = None
    site_version_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def kind(self) -> StepKind:
        return StepKind(self.step)


class IngestJob(_StepJobBase):
    step: Literal["ingest"] = "ingest"
    document_id: str = Field(..., min_length=1)


class LogoResolutionJob(_StepJobBase):
    step: Literal["logo-resolution"] = "logo-resolution"


class AchievementScoringJob(_StepJobBase):
    step: Literal["achievement-scoring"] = "achievement-scoring"


class StoryJob(_StepJobBase):
    step: Literal["story"] = "story"


class SkillOffersJob(_StepJobBase):
    step: Literal["skill-offers"] = "skill-offers"


class ImageGenerationJob(_StepJobBase):
    step: Literal["image-generation"] = "image-generation"


class CompletenessJob(_StepJobBase):
    step: Literal["completeness"] = "completeness"


StepJob = Annotated[
    Union[
        IngestJob,
        LogoResolutionJob,
        AchievementScoringJob,
        StoryJob,
        SkillOffersJob,
        ImageGenerationJob,
        CompletenessJob,
    ],
    Field(discriminator="step"),
]

_STEP_JOB_ADAPTER = TypeAdapter(StepJob)


def parse_step_job(payload: Dict[str, Any]) -> StepJob:
    """Validate a raw queue payload into its typed job variant."""
    try:
        return _STEP_JOB_ADAPTER.validate_python(payload)
    except ValidationError as e:
        step = payload.get("step", "") if isinstance(payload, dict) else ""
        raise StepValidationError(f"Invalid step payload: {e}", step=str(step)) from e


def build_step_payload(user_id: str, step: StepKind, context: StepContext) -> Dict[str, Any]:
    """Queue payload for one step; validated later by the executor."""
    payload: Dict[str, Any] = {"user_id": user_id, "step": step.value}
    if context.document_id:
        payload["document_id"] = context.document_id
    if context.site_version_id:
        payload["site_version_id"] = context.site_version_id
    if context.metadata:
        payload["metadata"] = context.metadata
    return payload


# =============================================================================
# STEP OUTPUTS
# =============================================================================


class StepOutput(BaseModel):
    """Common shape of every step output."""

    skipped_reason: Optional[str] = Field(
        default=None,
        description="Set when upstream data was missing and the step no-oped",
    )


class IngestOutput(StepOutput):
    document_id: Optional[str] = None
    text_length: int = 0
    work_experiences: int = 0
    achievements: int = 0
    skills: int = 0
    companies: int = 0


class LogoResolutionOutput(StepOutput):
    companies: int = 0
    already_resolved: int = 0
    resolved: List[ResolvedAsset] = Field(default_factory=list)
    not_found: List[str] = Field(default_factory=list)


class AchievementScoringOutput(StepOutput):
    ranking_id: Optional[str] = None
    scored: int = 0
    ranked: int = 0
    enhanced: int = 0


class StoryOutput(StepOutput):
    role: Optional[str] = None
    industry: Optional[str] = None
    paragraph_count: int = 0


class SkillOffersOutput(StepOutput):
    categories: int = 0
    offers: int = 0


class ImageGenerationOutput(StepOutput):
    generated: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
    placements: int = 0


class CompletenessOutput(StepOutput):
    records: List[CompletenessRecord] = Field(default_factory=list)


# =============================================================================
# STATUS VIEW
# =============================================================================


class StepStatus(BaseModel):
    step: StepKind
    run_id: str
    status: RunStatus
    error: Optional[str] = None
    attempts: int = 0
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class PipelineStatusView(BaseModel):
    user_id: str
    per_step: List[StepStatus] = Field(default_factory=list)
    overall: OverallStatus = OverallStatus.NOT_STARTED
