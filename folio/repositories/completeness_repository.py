"""
Completeness Repository - Folio Pipeline Engine
folio/repositories/completeness_repository.py

One live row per (user_id, section) in table completeness; each run replaces
score, strategy and missing fields.
"""

import logging
from typing import List

from folio.models.completeness import CompletenessRecord
from folio.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class CompletenessRepository(BaseRepository):
    """Repository for completeness."""

    def upsert_record(self, record: CompletenessRecord) -> None:
        """Upsert one section record (MERGE by user_id + section)."""
        sql = """
        MERGE INTO completeness t
        USING (
            SELECT %s AS user_id, %s AS section, %s AS score,
                   PARSE_JSON(%s) AS missing, %s AS strategy
        ) s
        ON t.user_id = s.user_id AND t.section = s.section
        WHEN MATCHED THEN UPDATE SET
            score = s.score,
            missing = s.missing,
            strategy = s.strategy,
            updated_at = CURRENT_TIMESTAMP()
        WHEN NOT MATCHED THEN INSERT (
            user_id, section, score, missing, strategy, updated_at
        ) VALUES (
            s.user_id, s.section, s.score, s.missing, s.strategy, CURRENT_TIMESTAMP()
        )
        """
        self.execute_query(
            sql,
            (
                record.user_id,
                record.section.value,
                record.score,
                self.to_variant(record.missing),
                record.strategy.value,
            ),
            commit=True,
        )

    def upsert_records(self, records: List[CompletenessRecord]) -> int:
        for record in records:
            self.upsert_record(record)
        logger.info(f"Upserted {len(records)} completeness records")
        return len(records)

    def list_for_user(self, user_id: str) -> List[CompletenessRecord]:
        sql = """
        SELECT user_id, section, score, missing, strategy, updated_at
        FROM completeness
        WHERE user_id = %s
        ORDER BY section
        """
        rows = self.execute_query(sql, (user_id,), fetch_all=True) or []
        records = []
        for row in rows:
            data = self.row_to_dict(row)
            data["missing"] = self.from_variant(data.get("missing")) or []
            data["updated_at"] = self.normalize_timestamp(data.get("updated_at"))
            records.append(CompletenessRecord.model_validate(data))
        return records
