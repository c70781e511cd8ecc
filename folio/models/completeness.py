from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, Field, field_validator

from folio.models.enumerations import FillStrategy, Section


class CompletenessRecord(BaseModel):
    """
    Coverage of one portfolio section for one user, with the fill strategy
    derived from it. One live record per (user, section).
    """

    user_id: str
    section: Section
    score: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Coverage ratio in [0, 1]"
    )
    missing: List[str] = Field(
        default_factory=list,
        description="Tags of the fields or items that are absent"
    )
    strategy: FillStrategy
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("score", mode="before")
    @classmethod
    def round_score(cls, v):
        return round(float(v), 4)
