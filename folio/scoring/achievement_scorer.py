"""
Achievement Scorer
folio/scoring/achievement_scorer.py

Deterministic, explainable scoring and ranking of a user's achievements.

Formula (weighted_sum_v1):
    score = 0.4 × metric_strength + 0.3 × scope_size + 0.3 × evidence_strength

    metric_strength   0.3 without a quantified metric; otherwise
                      log(|value| + 1) / log(ceiling + 1) clamped to [0.3, 1.0]
                      where ceiling depends on the metric unit
    scope_size        categorical lookup over the scope text, 0.5 default
    evidence_strength 0.5 base, +0.3 metric, +0.2 scope, +0.1 action verb,
                      +0.1 detailed text; capped at 1.0

All components and the final score are Decimals quantized to 4 places so that
identical input always yields an identical score.
"""
import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from folio.models.achievement import Achievement, AchievementRanking, RankingItem
from folio.scoring.utils import ONE, ZERO, clamp, quantize, to_decimal, weighted_sum

logger = structlog.get_logger(__name__)

SCORING_ALGORITHM = "weighted_sum_v1"

WEIGHTS: Dict[str, Decimal] = {
    "metric_strength": Decimal("0.4"),
    "scope_size": Decimal("0.3"),
    "evidence_strength": Decimal("0.3"),
}

# Number of achievements featured on a portfolio
TOP_N = 6

NO_METRIC_STRENGTH = Decimal("0.3")

# Magnitude at which a metric of the given unit is considered maximal
UNIT_CEILINGS: Dict[str, float] = {
    "percent": 100,
    "million": 100,
    "thousand": 1_000,
    "count": 10_000,
    "days": 365,
    "users": 1_000_000,
    "revenue": 10_000_000,
}
DEFAULT_CEILING = 100

UNIT_ALIASES: Dict[str, str] = {
    "%": "percent",
    "pct": "percent",
    "percentage": "percent",
    "percentages": "percent",
    "m": "million",
    "mm": "million",
    "millions": "million",
    "k": "thousand",
    "thousands": "thousand",
    "day": "days",
    "user": "users",
    "customers": "users",
    "customer": "users",
    "$": "revenue",
    "usd": "revenue",
    "dollars": "revenue",
    "items": "count",
    "units": "count",
}

# Evaluated top-down; first tier with a matching keyword wins
SCOPE_TIERS: Tuple[Tuple[Tuple[str, ...], Decimal], ...] = (
    (("fortune 500", "enterprise"), Decimal("1.0")),
    (("company-wide", "organization"), Decimal("0.9")),
    (("department", "division"), Decimal("0.7")),
    (("team", "group"), Decimal("0.6")),
    (("project", "initiative"), Decimal("0.5")),
)
DEFAULT_SCOPE = Decimal("0.5")

ACTION_VERBS = (
    "led", "managed", "developed", "implemented", "increased", "reduced",
    "improved", "launched", "built", "designed", "delivered", "drove",
)
_ACTION_VERB_RE = re.compile(r"\b(" + "|".join(ACTION_VERBS) + r")\b", re.IGNORECASE)

DETAIL_MIN_LENGTH = 50

EVIDENCE_BASE = Decimal("0.5")
EVIDENCE_METRIC_BONUS = Decimal("0.3")
EVIDENCE_SCOPE_BONUS = Decimal("0.2")
EVIDENCE_VERB_BONUS = Decimal("0.1")
EVIDENCE_DETAIL_BONUS = Decimal("0.1")


@dataclass(frozen=True)
class ScoreBreakdown:
    """Output of AchievementScorer.score()."""
    metric_strength: Decimal
    scope_size: Decimal
    evidence_strength: Decimal
    score: Decimal


@dataclass(frozen=True)
class RankedAchievement:
    achievement: Achievement
    breakdown: ScoreBreakdown
    rank: int  # 1-based

    @property
    def score(self) -> Decimal:
        return self.breakdown.score


def normalize_unit(unit: Optional[str]) -> Optional[str]:
    if not unit:
        return None
    key = unit.strip().lower()
    return UNIT_ALIASES.get(key, key)


def metric_strength(value: Optional[float], unit: Optional[str]) -> Decimal:
    """Logarithmic magnitude of a metric against its unit ceiling."""
    canonical = normalize_unit(unit)
    if value is None or canonical is None:
        return NO_METRIC_STRENGTH

    magnitude = abs(float(value))
    if math.isnan(magnitude):
        return NO_METRIC_STRENGTH
    if math.isinf(magnitude):
        return ONE

    ceiling = UNIT_CEILINGS.get(canonical, DEFAULT_CEILING)
    normalized = math.log(magnitude + 1) / math.log(ceiling + 1)
    return clamp(to_decimal(normalized), NO_METRIC_STRENGTH, ONE)


def scope_size(scope: Optional[str]) -> Decimal:
    if not scope:
        return DEFAULT_SCOPE
    text = scope.lower()
    for keywords, value in SCOPE_TIERS:
        if any(k in text for k in keywords):
            return value
    return DEFAULT_SCOPE


def has_action_verb(text: str) -> bool:
    return bool(_ACTION_VERB_RE.search(text or ""))


def evidence_strength(achievement: Achievement) -> Decimal:
    strength = EVIDENCE_BASE
    if achievement.has_metric:
        strength += EVIDENCE_METRIC_BONUS
    if achievement.scope:
        strength += EVIDENCE_SCOPE_BONUS
    if has_action_verb(achievement.raw_text):
        strength += EVIDENCE_VERB_BONUS
    if len(achievement.raw_text) > DETAIL_MIN_LENGTH:
        strength += EVIDENCE_DETAIL_BONUS
    return min(strength, ONE)


class AchievementScorer:
    """Score, rank and select the featured achievements of one user."""

    def __init__(self, top_n: int = TOP_N):
        self.top_n = top_n

    def score(self, achievement: Achievement) -> ScoreBreakdown:
        metric = achievement.metric
        components = {
            "metric_strength": metric_strength(
                metric.value if metric else None,
                metric.unit if metric else None,
            ),
            "scope_size": scope_size(achievement.scope),
            "evidence_strength": evidence_strength(achievement),
        }
        total = clamp(weighted_sum(components, WEIGHTS), ZERO, ONE)
        return ScoreBreakdown(score=quantize(total), **components)

    def rank(self, achievements: Sequence[Achievement]) -> List[RankedAchievement]:
        """Stable descending sort by score; ties keep input order."""
        scored = [(a, self.score(a)) for a in achievements]
        # sorted() is stable, so equal scores keep their input order
        ordered = sorted(scored, key=lambda pair: pair[1].score, reverse=True)
        return [
            RankedAchievement(achievement=a, breakdown=b, rank=i + 1)
            for i, (a, b) in enumerate(ordered)
        ]

    def select_top(
        self,
        achievements: Sequence[Achievement],
        n: Optional[int] = None,
    ) -> List[RankedAchievement]:
        """First n entries of rank(); never more than len(achievements)."""
        n = self.top_n if n is None else n
        return self.rank(achievements)[:max(n, 0)]

    def build_ranking(
        self,
        user_id: str,
        ranked: Sequence[RankedAchievement],
    ) -> AchievementRanking:
        """Immutable snapshot of a ranking; empty input gives an empty snapshot."""
        ranking = AchievementRanking(
            user_id=user_id,
            items=[
                RankingItem(
                    achievement_id=r.achievement.id,
                    rank=r.rank,
                    score=float(r.score),
                )
                for r in ranked
            ],
            algorithm=SCORING_ALGORITHM,
            weights={k: float(v) for k, v in WEIGHTS.items()},
        )
        logger.info(
            "achievement_ranking_built",
            user_id=user_id,
            ranked=len(ranking.items),
            top_score=ranking.items[0].score if ranking.items else None,
        )
        return ranking
