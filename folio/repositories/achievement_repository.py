"""
Achievement Repository - Folio Pipeline Engine
folio/repositories/achievement_repository.py

Tables:
  - achievements          (one row per extracted accomplishment)
  - achievement_rankings  (immutable ranking snapshots, latest wins)

Achievements are keyed naturally by (user_id, document_id, text_hash) so that
re-ingesting the same document does not duplicate them. raw_text is only
written on insert.
"""

import hashlib
import logging
from typing import Any, Dict, List, Optional

from folio.models.achievement import Achievement, AchievementRanking, Metric
from folio.repositories.base import BaseRepository
from folio.scoring.achievement_scorer import RankedAchievement
from folio.scoring.enhancement import EnhancementResult

logger = logging.getLogger(__name__)

_COLUMNS = """
    id, user_id, document_id, work_experience_id, raw_text,
    metric_value, metric_unit, scope, evidence_strength,
    provenance, confidence, requires_review, impact_statement, score, created_at
"""


def text_hash(raw_text: str) -> str:
    return hashlib.sha256(raw_text.strip().encode("utf-8")).hexdigest()


class AchievementRepository(BaseRepository):
    """Repository for achievements and achievement_rankings."""

    def _to_achievement(self, row: Dict[str, Any]) -> Achievement:
        data = self.row_to_dict(row)
        metric = None
        if any(data.get(k) is not None for k in ("metric_value", "metric_unit", "scope")):
            metric = Metric(
                value=data.pop("metric_value", None),
                unit=data.pop("metric_unit", None),
                scope=data.pop("scope", None),
            )
        data["metric"] = metric
        data["created_at"] = self.normalize_timestamp(data.get("created_at"))
        return Achievement.model_validate(data)

    # =====================================================================
    # achievements
    # =====================================================================

    def upsert_achievement(self, achievement: Achievement) -> str:
        """Insert unless an achievement with the same text exists for the document."""
        metric = achievement.metric or Metric()
        sql = """
        MERGE INTO achievements t
        USING (SELECT %s AS user_id, %s AS document_id, %s AS text_hash) s
        ON t.user_id = s.user_id
           AND EQUAL_NULL(t.document_id, s.document_id)
           AND t.text_hash = s.text_hash
        WHEN MATCHED THEN UPDATE SET
            work_experience_id = %s,
            metric_value = %s,
            metric_unit = %s,
            scope = %s,
            updated_at = CURRENT_TIMESTAMP()
        WHEN NOT MATCHED THEN INSERT (
            id, user_id, document_id, work_experience_id, raw_text, text_hash,
            metric_value, metric_unit, scope, provenance, confidence,
            requires_review, created_at, updated_at
        ) VALUES (
            %s, %s, %s, %s, %s, %s,
            %s, %s, %s, %s, %s,
            %s, CURRENT_TIMESTAMP(), CURRENT_TIMESTAMP()
        )
        """
        digest = text_hash(achievement.raw_text)
        params = (
            achievement.user_id, achievement.document_id, digest,
            # UPDATE values
            achievement.work_experience_id, metric.value, metric.unit, metric.scope,
            # INSERT values
            achievement.id, achievement.user_id, achievement.document_id,
            achievement.work_experience_id, achievement.raw_text, digest,
            metric.value, metric.unit, metric.scope,
            achievement.provenance.value, achievement.confidence,
            achievement.requires_review,
        )
        self.execute_query(sql, params, commit=True)
        return achievement.id

    def list_for_user(self, user_id: str) -> List[Achievement]:
        """All achievements of a user in creation order."""
        sql = f"""
        SELECT {_COLUMNS}
        FROM achievements
        WHERE user_id = %s
        ORDER BY created_at ASC, id ASC
        """
        rows = self.execute_query(sql, (user_id,), fetch_all=True) or []
        return [self._to_achievement(r) for r in rows]

    def update_scores(self, ranked: List[RankedAchievement]) -> int:
        sql = """
        UPDATE achievements
        SET score = %s, evidence_strength = %s, updated_at = CURRENT_TIMESTAMP()
        WHERE id = %s
        """
        return self.execute_many(
            sql,
            ((float(r.score), float(r.breakdown.evidence_strength), r.achievement.id) for r in ranked),
        )

    def update_enhancement(self, result: EnhancementResult) -> None:
        sql = """
        UPDATE achievements
        SET impact_statement = %s,
            provenance = %s,
            confidence = %s,
            requires_review = %s,
            updated_at = CURRENT_TIMESTAMP()
        WHERE id = %s
        """
        self.execute_query(
            sql,
            (
                result.impact_statement,
                result.provenance.value,
                result.confidence,
                result.requires_review,
                result.achievement_id,
            ),
            commit=True,
        )

    # =====================================================================
    # achievement_rankings
    # =====================================================================

    def insert_ranking(self, ranking: AchievementRanking) -> str:
        # Use INSERT with SELECT for PARSE_JSON to work
        sql = """
        INSERT INTO achievement_rankings (id, user_id, items, algorithm, weights, created_at)
        SELECT %s, %s, PARSE_JSON(%s), %s, PARSE_JSON(%s), %s
        """
        self.execute_query(
            sql,
            (
                ranking.id,
                ranking.user_id,
                self.to_variant([item.model_dump() for item in ranking.items]),
                ranking.algorithm,
                self.to_variant(ranking.weights),
                ranking.created_at,
            ),
            commit=True,
        )
        logger.info(f"Saved ranking {ranking.id} with {len(ranking.items)} items for {ranking.user_id}")
        return ranking.id

    def latest_ranking(self, user_id: str) -> Optional[AchievementRanking]:
        sql = """
        SELECT id, user_id, items, algorithm, weights, created_at
        FROM achievement_rankings
        WHERE user_id = %s
        ORDER BY created_at DESC
        LIMIT 1
        """
        row = self.execute_query(sql, (user_id,), fetch_one=True)
        if not row:
            return None
        data = self.row_to_dict(row)
        data["items"] = self.from_variant(data.get("items")) or []
        data["weights"] = self.from_variant(data.get("weights")) or {}
        data["created_at"] = self.normalize_timestamp(data.get("created_at"))
        return AchievementRanking.model_validate(data)
