"""
Career records - Folio Pipeline Engine
folio/models/career.py

Records read and written by the step handlers: source documents, the work
history and skills structured out of them, narrative copy, companies and the
image assets attached to a portfolio.
"""

from datetime import date, datetime, timezone
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from folio.models.enumerations import Archetype, Placement


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_company_name(name: str) -> str:
    """Lookup key for a company: lowercase, single-spaced."""
    return " ".join(name.lower().split())


# =============================================================================
# SOURCE DOCUMENTS
# =============================================================================


class Document(BaseModel):
    id: str = Field(default_factory=_new_id)
    user_id: str
    filename: str
    storage_url: str = Field(..., description="s3:// or https:// location of the upload")
    mime_type: Optional[str] = None
    extracted_text: Optional[str] = None
    processed_at: Optional[datetime] = None


class UserProfile(BaseModel):
    user_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    headline: Optional[str] = None
    photo_url: Optional[str] = None


# =============================================================================
# WORK HISTORY
# =============================================================================


class WorkExperience(BaseModel):
    id: str = Field(default_factory=_new_id)
    user_id: str
    document_id: Optional[str] = None
    company: Optional[str] = None
    role: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: bool = False
    description: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def parse_partial_date(cls, v):
        """Accept 'YYYY' and 'YYYY-MM' as produced by resume structuring."""
        if isinstance(v, str):
            v = v.strip()
            if not v or v.lower() in ("present", "current", "now"):
                return None
            parts = v.split("-")
            if len(parts) == 1 and parts[0].isdigit():
                return date(int(parts[0]), 1, 1)
            if len(parts) == 2 and all(p.isdigit() for p in parts):
                return date(int(parts[0]), int(parts[1]), 1)
        return v


class Company(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    normalized_name: str = ""
    logo_asset_id: Optional[str] = None
    logo_url: Optional[str] = None

    def model_post_init(self, __context) -> None:
        if not self.normalized_name:
            self.normalized_name = normalize_company_name(self.name)

    @property
    def has_logo(self) -> bool:
        return bool(self.logo_asset_id or self.logo_url)


class Skill(BaseModel):
    id: str = Field(default_factory=_new_id)
    user_id: str
    name: str = Field(..., min_length=1, max_length=200)
    category: str = "General"


class SkillOffer(BaseModel):
    """A client-facing offer built from one skill, backed by achievements."""

    id: str = Field(default_factory=_new_id)
    user_id: str
    category: str
    skill_name: str
    offer_statement: str
    proof_points: List[str] = Field(default_factory=list)


class Story(BaseModel):
    user_id: str
    role: Optional[str] = None
    industry: Optional[str] = None
    opener: Optional[str] = None
    paragraphs: List[str] = Field(default_factory=list)
    quote: Optional[str] = None
    quote_attribution: Optional[str] = None
    updated_at: datetime = Field(default_factory=_utcnow)


# =============================================================================
# STRUCTURING OUTPUT
# =============================================================================


class ExtractedAchievement(BaseModel):
    text: str = Field(..., min_length=1)
    metric_value: Optional[float] = Field(default=None, allow_inf_nan=False)
    metric_unit: Optional[str] = None
    scope: Optional[str] = None


class ExtractedExperience(BaseModel):
    company: Optional[str] = None
    role: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    description: Optional[str] = None
    achievements: List[ExtractedAchievement] = Field(default_factory=list)


class ExtractedSkill(BaseModel):
    name: str = Field(..., min_length=1)
    category: str = "General"


class StructuredResume(BaseModel):
    """Shape the structuring collaborator must return."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    headline: Optional[str] = None
    work_experiences: List[ExtractedExperience] = Field(default_factory=list)
    skills: List[ExtractedSkill] = Field(default_factory=list)


# =============================================================================
# ASSETS
# =============================================================================


class Asset(BaseModel):
    id: str = Field(default_factory=_new_id)
    user_id: Optional[str] = None
    kind: str = Field(..., description="logo | portrait | generated_image")
    url: str
    storage_key: Optional[str] = None
    provider: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class ImageGeneration(BaseModel):
    id: str = Field(default_factory=_new_id)
    user_id: str
    archetype: Archetype
    prompt: str
    status: str = "pending"
    asset_id: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class ImagePlacement(BaseModel):
    user_id: str
    site_version_id: str
    placement: Placement
    asset_id: str
