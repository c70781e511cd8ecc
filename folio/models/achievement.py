from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from folio.models.enumerations import Provenance


class Metric(BaseModel):
    """
    Quantitative evidence attached to an achievement.
    """

    value: Optional[float] = Field(
        default=None,
        allow_inf_nan=False,
        description="Numeric magnitude, e.g. 35 for '35%'"
    )
    unit: Optional[str] = Field(
        default=None,
        max_length=50,
        description="Unit of the value (percent, users, revenue, ...)"
    )
    scope: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Qualitative scope (team, department, company-wide, ...)"
    )

    @property
    def is_quantified(self) -> bool:
        """A metric counts only when both value and unit are present."""
        return self.value is not None and bool(self.unit)


class Achievement(BaseModel):
    """
    A single accomplishment extracted from a resume.

    raw_text is the source sentence and is never rewritten; enhancement writes
    impact_statement instead.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    document_id: Optional[str] = None
    work_experience_id: Optional[str] = None

    raw_text: str = Field(..., min_length=1)
    metric: Optional[Metric] = None
    evidence_strength: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    provenance: Provenance = Provenance.USER_PROVIDED
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    requires_review: bool = False
    impact_statement: Optional[str] = None

    score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_metric(self) -> bool:
        return self.metric is not None and self.metric.is_quantified

    @property
    def scope(self) -> Optional[str]:
        return self.metric.scope if self.metric else None


class RankingItem(BaseModel):
    achievement_id: str
    rank: int = Field(..., ge=1)
    score: float = Field(..., ge=0.0, le=1.0)


class AchievementRanking(BaseModel):
    """
    Immutable snapshot of a user's ordered achievements. The latest snapshot
    by created_at is the live one.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    items: List[RankingItem] = Field(default_factory=list)
    algorithm: str = "weighted_sum_v1"
    weights: Dict[str, float] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
