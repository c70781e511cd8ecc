"""
Achievement Enhancement
folio/scoring/enhancement.py

Gatekeeper around the impact-statement collaborator. Decides which featured
achievements need a rewrite, checks that the rewrite keeps every number from
the raw text, and tags the result with its provenance.
"""
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence

import structlog

from folio.models.achievement import Achievement
from folio.models.enumerations import Provenance

logger = structlog.get_logger(__name__)

# Rewrites an achievement's raw text into an impact statement
Enhancer = Callable[[Achievement], Awaitable[str]]

POLISH_CONFIDENCE = 0.9
CONTEXT_CONFIDENCE = 0.7

_NUMERIC_TOKEN_RE = re.compile(r"\d+(?:[.,]\d+)*")


@dataclass(frozen=True)
class EnhancementResult:
    achievement_id: str
    impact_statement: str
    provenance: Provenance
    confidence: float
    requires_review: bool


def numeric_tokens(text: str) -> List[str]:
    return _NUMERIC_TOKEN_RE.findall(text or "")


def preserves_numeric_tokens(source: str, rewritten: str) -> bool:
    """True when rewritten keeps every numeric token of source and adds none."""
    return set(numeric_tokens(source)) == set(numeric_tokens(rewritten))


def needs_enhancement(achievement: Achievement) -> bool:
    return (
        not achievement.impact_statement
        or achievement.provenance == Provenance.USER_PROVIDED
    )


def classify(achievement: Achievement, statement: str) -> EnhancementResult:
    """model_polish when hard evidence exists, model_context (review) otherwise."""
    if achievement.has_metric:
        return EnhancementResult(
            achievement_id=achievement.id,
            impact_statement=statement,
            provenance=Provenance.MODEL_POLISH,
            confidence=POLISH_CONFIDENCE,
            requires_review=False,
        )
    return EnhancementResult(
        achievement_id=achievement.id,
        impact_statement=statement,
        provenance=Provenance.MODEL_CONTEXT,
        confidence=CONTEXT_CONFIDENCE,
        requires_review=True,
    )


class AchievementEnhancer:
    """Runs the enhancer over candidates; never raises on collaborator failure."""

    def __init__(self, enhancer: Enhancer):
        self._enhancer = enhancer

    async def enhance_one(self, achievement: Achievement) -> Optional[EnhancementResult]:
        try:
            statement = await self._enhancer(achievement)
        except Exception as e:
            logger.warning(
                "achievement_enhancement_failed",
                achievement_id=achievement.id,
                error=str(e),
            )
            return None

        statement = (statement or "").strip()
        if not statement:
            logger.warning("achievement_enhancement_empty", achievement_id=achievement.id)
            return None

        if not preserves_numeric_tokens(achievement.raw_text, statement):
            logger.warning(
                "achievement_enhancement_rejected",
                achievement_id=achievement.id,
                reason="numeric_token_altered",
                expected=numeric_tokens(achievement.raw_text),
                received=numeric_tokens(statement),
            )
            return None

        return classify(achievement, statement)

    async def enhance(self, achievements: Sequence[Achievement]) -> List[EnhancementResult]:
        """Enhance the achievements that need it, sequentially, keeping input order."""
        results: List[EnhancementResult] = []
        for achievement in achievements:
            if not needs_enhancement(achievement):
                continue
            result = await self.enhance_one(achievement)
            if result is not None:
                results.append(result)
        return results
