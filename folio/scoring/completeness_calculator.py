"""
Completeness Calculator
folio/scoring/completeness_calculator.py

Turns observations about each portfolio section into a coverage score in
[0, 1] and a fill strategy.

Section formulas (all ratios clamped to 1.0):
    images        placements present / 4 required placements
    achievements  0.4 × min(count / 6, 1) + 0.4 × with_metric + 0.2 × with_impact
    logos         companies with a logo / companies
    work_history  mean over experiences of 0.25 per field present
                  (company, role, start date, description)
    skills        min(count / 8, 1)
    story         0.3 opener + 0.4 narrative paragraphs + 0.3 quote
    navigation    fraction of (first name, last name, headline) present

Strategy thresholds, evaluated highest first:
    >= 0.9 complete, >= 0.7 polish, >= 0.5 context, >= 0.3 qualitative,
    > 0 template, == 0 hide
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import structlog

from folio.models.achievement import Achievement
from folio.models.career import Company, Story, UserProfile, WorkExperience
from folio.models.completeness import CompletenessRecord
from folio.models.enumerations import FillStrategy, Placement, Section
from folio.scoring.utils import ZERO, clamp, quantize, ratio

logger = structlog.get_logger(__name__)

STRATEGY_THRESHOLDS: Tuple[Tuple[Decimal, FillStrategy], ...] = (
    (Decimal("0.9"), FillStrategy.COMPLETE),
    (Decimal("0.7"), FillStrategy.POLISH),
    (Decimal("0.5"), FillStrategy.CONTEXT),
    (Decimal("0.3"), FillStrategy.QUALITATIVE),
)

REQUIRED_PLACEMENTS: Tuple[Placement, ...] = (
    Placement.HERO,
    Placement.ACHIEVEMENTS_GENERAL_MAIN,
    Placement.ACHIEVEMENTS_CAREER_MAIN,
    Placement.CERTIFICATIONS_BG,
)

ACHIEVEMENT_TARGET = 6
SKILL_TARGET = 8
WORK_FIELD_WEIGHT = Decimal("0.25")


@dataclass(frozen=True)
class SectionCoverage:
    section: Section
    score: Decimal
    missing: List[str] = field(default_factory=list)

    @property
    def strategy(self) -> FillStrategy:
        return decide_strategy(self.score)


def decide_strategy(score) -> FillStrategy:
    """Map a coverage score to its fill strategy. Monotonic in score."""
    value = score if isinstance(score, Decimal) else Decimal(str(score))
    for threshold, strategy in STRATEGY_THRESHOLDS:
        if value >= threshold:
            return strategy
    if value > ZERO:
        return FillStrategy.TEMPLATE
    return FillStrategy.HIDE


# =============================================================================
# SECTION OBSERVATIONS
# =============================================================================


def images_coverage(placements: Iterable[str]) -> SectionCoverage:
    present = {p.value if isinstance(p, Placement) else p for p in placements}
    missing = [p.value for p in REQUIRED_PLACEMENTS if p.value not in present]
    score = ratio(len(REQUIRED_PLACEMENTS) - len(missing), len(REQUIRED_PLACEMENTS))
    return SectionCoverage(Section.IMAGES, quantize(score), missing)


def achievements_coverage(achievements: Sequence[Achievement]) -> SectionCoverage:
    total = len(achievements)
    if total == 0:
        return SectionCoverage(Section.ACHIEVEMENTS, ZERO, ["achievements"])

    count_score = ratio(total, ACHIEVEMENT_TARGET)
    metric_score = ratio(sum(1 for a in achievements if a.has_metric), total)
    impact_score = ratio(sum(1 for a in achievements if a.impact_statement), total)

    score = (
        Decimal("0.4") * count_score
        + Decimal("0.4") * metric_score
        + Decimal("0.2") * impact_score
    )

    missing: List[str] = []
    if total < ACHIEVEMENT_TARGET:
        missing.append("more_achievements")
    if metric_score < Decimal("0.5"):
        missing.append("metrics")
    if impact_score < Decimal("0.5"):
        missing.append("impact_statements")
    return SectionCoverage(Section.ACHIEVEMENTS, quantize(clamp(score)), missing)


def logos_coverage(companies: Sequence[Company]) -> SectionCoverage:
    if not companies:
        return SectionCoverage(Section.LOGOS, ZERO, ["companies"])
    missing = [c.name for c in companies if not c.has_logo]
    score = ratio(len(companies) - len(missing), len(companies))
    return SectionCoverage(Section.LOGOS, quantize(score), [f"logo:{m}" for m in missing])


def work_history_coverage(experiences: Sequence[WorkExperience]) -> SectionCoverage:
    if not experiences:
        return SectionCoverage(Section.WORK_HISTORY, ZERO, ["work_experiences"])

    total = ZERO
    missing = set()
    for exp in experiences:
        for name, value in (
            ("company", exp.company),
            ("role", exp.role),
            ("start_date", exp.start_date),
            ("description", exp.description),
        ):
            if value:
                total += WORK_FIELD_WEIGHT
            else:
                missing.add(name)

    score = clamp(total / Decimal(len(experiences)))
    return SectionCoverage(Section.WORK_HISTORY, quantize(score), sorted(missing))


def skills_coverage(skill_count: int) -> SectionCoverage:
    if skill_count <= 0:
        return SectionCoverage(Section.SKILLS, ZERO, ["skills"])
    missing = ["more_skills"] if skill_count < SKILL_TARGET else []
    return SectionCoverage(Section.SKILLS, quantize(ratio(skill_count, SKILL_TARGET)), missing)


def story_coverage(story: Optional[Story]) -> SectionCoverage:
    if story is None:
        return SectionCoverage(Section.STORY, ZERO, ["story"])

    score = ZERO
    missing: List[str] = []
    if story.opener:
        score += Decimal("0.3")
    else:
        missing.append("opener")
    if any(p.strip() for p in story.paragraphs):
        score += Decimal("0.4")
    else:
        missing.append("narrative")
    if story.quote:
        score += Decimal("0.3")
    else:
        missing.append("quote")
    return SectionCoverage(Section.STORY, quantize(clamp(score)), missing)


def navigation_coverage(profile: Optional[UserProfile]) -> SectionCoverage:
    fields = ("first_name", "last_name", "headline")
    if profile is None:
        return SectionCoverage(Section.NAVIGATION, ZERO, list(fields))
    missing = [f for f in fields if not getattr(profile, f)]
    return SectionCoverage(
        Section.NAVIGATION,
        quantize(ratio(len(fields) - len(missing), len(fields))),
        missing,
    )


# =============================================================================
# CALCULATOR
# =============================================================================


@dataclass
class SectionObservations:
    """Everything the completeness step reads for one user."""
    placements: List[str] = field(default_factory=list)
    achievements: List[Achievement] = field(default_factory=list)
    companies: List[Company] = field(default_factory=list)
    experiences: List[WorkExperience] = field(default_factory=list)
    skill_count: int = 0
    story: Optional[Story] = None
    profile: Optional[UserProfile] = None


class CompletenessCalculator:
    """Evaluate every section for one user."""

    def coverages(self, obs: SectionObservations) -> Dict[Section, SectionCoverage]:
        results = (
            images_coverage(obs.placements),
            achievements_coverage(obs.achievements),
            logos_coverage(obs.companies),
            work_history_coverage(obs.experiences),
            skills_coverage(obs.skill_count),
            story_coverage(obs.story),
            navigation_coverage(obs.profile),
        )
        return {c.section: c for c in results}

    def evaluate(self, user_id: str, obs: SectionObservations) -> List[CompletenessRecord]:
        records = [
            CompletenessRecord(
                user_id=user_id,
                section=c.section,
                score=float(c.score),
                missing=c.missing,
                strategy=c.strategy,
            )
            for c in self.coverages(obs).values()
        ]
        logger.info(
            "completeness_evaluated",
            user_id=user_id,
            scores={r.section.value: r.score for r in records},
            strategies={r.section.value: r.strategy.value for r in records},
        )
        return records
