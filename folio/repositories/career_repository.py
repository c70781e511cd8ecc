"""
Career Repository - Folio Pipeline Engine
folio/repositories/career_repository.py

Tables:
  - documents         (uploaded source documents)
  - user_profiles     (name and headline shown in site navigation)
  - work_experiences  (structured work history)
  - skills, skill_offers
  - stories           (one narrative per user)

Every write is a MERGE on a natural key so a re-delivered job converges on
the same rows.
"""

import logging
from typing import Any, Dict, List, Optional

from folio.models.career import (
    Document,
    SkillOffer,
    Skill,
    Story,
    UserProfile,
    WorkExperience,
)
from folio.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class CareerRepository(BaseRepository):
    """Repository for the career records produced by ingest, story and skill steps."""

    # =====================================================================
    # documents
    # =====================================================================

    def get_document(self, user_id: str, document_id: str) -> Optional[Document]:
        sql = """
        SELECT id, user_id, filename, storage_url, mime_type, extracted_text, processed_at
        FROM documents
        WHERE id = %s AND user_id = %s
        """
        row = self.execute_query(sql, (document_id, user_id), fetch_one=True)
        if not row:
            return None
        data = self.row_to_dict(row)
        data["processed_at"] = self.normalize_timestamp(data.get("processed_at"))
        return Document.model_validate(data)

    def save_extracted_text(self, document_id: str, text: str) -> None:
        sql = """
        UPDATE documents
        SET extracted_text = %s, processed_at = CURRENT_TIMESTAMP()
        WHERE id = %s
        """
        self.execute_query(sql, (text, document_id), commit=True)

    # =====================================================================
    # user_profiles
    # =====================================================================

    def upsert_profile(self, profile: UserProfile) -> None:
        """Fill profile fields; values already set by the user are kept."""
        sql = """
        MERGE INTO user_profiles t
        USING (
            SELECT %s AS user_id, %s AS first_name, %s AS last_name, %s AS headline
        ) s
        ON t.user_id = s.user_id
        WHEN MATCHED THEN UPDATE SET
            first_name = COALESCE(t.first_name, s.first_name),
            last_name = COALESCE(t.last_name, s.last_name),
            headline = COALESCE(t.headline, s.headline),
            updated_at = CURRENT_TIMESTAMP()
        WHEN NOT MATCHED THEN INSERT (user_id, first_name, last_name, headline, updated_at)
        VALUES (s.user_id, s.first_name, s.last_name, s.headline, CURRENT_TIMESTAMP())
        """
        self.execute_query(
            sql,
            (profile.user_id, profile.first_name, profile.last_name, profile.headline),
            commit=True,
        )

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        sql = """
        SELECT user_id, first_name, last_name, headline, photo_url
        FROM user_profiles
        WHERE user_id = %s
        """
        row = self.execute_query(sql, (user_id,), fetch_one=True)
        return UserProfile.model_validate(self.row_to_dict(row)) if row else None

    # =====================================================================
    # work_experiences
    # =====================================================================

    def upsert_work_experience(self, exp: WorkExperience) -> str:
        """MERGE by (user_id, company, role, start_date). Returns the row id."""
        sql = """
        MERGE INTO work_experiences t
        USING (
            SELECT %s AS user_id, %s AS company, %s AS role, %s AS start_date
        ) s
        ON t.user_id = s.user_id
           AND EQUAL_NULL(t.company, s.company)
           AND EQUAL_NULL(t.role, s.role)
           AND EQUAL_NULL(t.start_date, s.start_date)
        WHEN MATCHED THEN UPDATE SET
            document_id = %s,
            end_date = %s,
            is_current = %s,
            description = COALESCE(%s, t.description),
            updated_at = CURRENT_TIMESTAMP()
        WHEN NOT MATCHED THEN INSERT (
            id, user_id, document_id, company, role, start_date, end_date,
            is_current, description, created_at, updated_at
        ) VALUES (
            %s, %s, %s, %s, %s, %s, %s,
            %s, %s, CURRENT_TIMESTAMP(), CURRENT_TIMESTAMP()
        )
        """
        params = (
            exp.user_id, exp.company, exp.role, exp.start_date,
            # UPDATE values
            exp.document_id, exp.end_date, exp.is_current, exp.description,
            # INSERT values
            exp.id, exp.user_id, exp.document_id, exp.company, exp.role,
            exp.start_date, exp.end_date, exp.is_current, exp.description,
        )
        self.execute_query(sql, params, commit=True)

        row = self.execute_query(
            """
            SELECT id FROM work_experiences
            WHERE user_id = %s AND EQUAL_NULL(company, %s)
              AND EQUAL_NULL(role, %s) AND EQUAL_NULL(start_date, %s)
            """,
            (exp.user_id, exp.company, exp.role, exp.start_date),
            fetch_one=True,
        )
        return self.row_to_dict(row).get("id", exp.id)

    def list_work_experiences(self, user_id: str) -> List[WorkExperience]:
        """Most recent role first."""
        sql = """
        SELECT id, user_id, document_id, company, role, start_date, end_date,
               is_current, description
        FROM work_experiences
        WHERE user_id = %s
        ORDER BY is_current DESC, start_date DESC NULLS LAST, id
        """
        rows = self.execute_query(sql, (user_id,), fetch_all=True) or []
        return [WorkExperience.model_validate(self.row_to_dict(r)) for r in rows]

    # =====================================================================
    # skills / skill_offers
    # =====================================================================

    def upsert_skill(self, skill: Skill) -> None:
        sql = """
        MERGE INTO skills t
        USING (SELECT %s AS user_id, LOWER(%s) AS name_key) s
        ON t.user_id = s.user_id AND LOWER(t.name) = s.name_key
        WHEN MATCHED THEN UPDATE SET category = %s
        WHEN NOT MATCHED THEN INSERT (id, user_id, name, category, created_at)
        VALUES (%s, %s, %s, %s, CURRENT_TIMESTAMP())
        """
        self.execute_query(
            sql,
            (
                skill.user_id, skill.name,
                skill.category,
                skill.id, skill.user_id, skill.name, skill.category,
            ),
            commit=True,
        )

    def list_skills(self, user_id: str) -> List[Skill]:
        sql = """
        SELECT id, user_id, name, category
        FROM skills
        WHERE user_id = %s
        ORDER BY category, name
        """
        rows = self.execute_query(sql, (user_id,), fetch_all=True) or []
        return [Skill.model_validate(self.row_to_dict(r)) for r in rows]

    def upsert_skill_offer(self, offer: SkillOffer) -> None:
        """MERGE by (user_id, skill_name)."""
        sql = """
        MERGE INTO skill_offers t
        USING (
            SELECT %s AS user_id, %s AS skill_name, %s AS category,
                   %s AS offer_statement, PARSE_JSON(%s) AS proof_points
        ) s
        ON t.user_id = s.user_id AND t.skill_name = s.skill_name
        WHEN MATCHED THEN UPDATE SET
            category = s.category,
            offer_statement = s.offer_statement,
            proof_points = s.proof_points,
            updated_at = CURRENT_TIMESTAMP()
        WHEN NOT MATCHED THEN INSERT (
            id, user_id, skill_name, category, offer_statement, proof_points, updated_at
        ) VALUES (
            %s, s.user_id, s.skill_name, s.category, s.offer_statement, s.proof_points,
            CURRENT_TIMESTAMP()
        )
        """
        self.execute_query(
            sql,
            (
                offer.user_id, offer.skill_name, offer.category,
                offer.offer_statement, self.to_variant(offer.proof_points),
                offer.id,
            ),
            commit=True,
        )

    def list_skill_offers(self, user_id: str) -> List[SkillOffer]:
        sql = """
        SELECT id, user_id, skill_name, category, offer_statement, proof_points
        FROM skill_offers
        WHERE user_id = %s
        ORDER BY category, skill_name
        """
        rows = self.execute_query(sql, (user_id,), fetch_all=True) or []
        offers = []
        for row in rows:
            data = self.row_to_dict(row)
            data["proof_points"] = self.from_variant(data.get("proof_points")) or []
            offers.append(SkillOffer.model_validate(data))
        return offers

    # =====================================================================
    # stories
    # =====================================================================

    def upsert_story(self, story: Story) -> None:
        sql = """
        MERGE INTO stories t
        USING (
            SELECT %s AS user_id, %s AS role, %s AS industry, %s AS opener,
                   PARSE_JSON(%s) AS paragraphs, %s AS quote, %s AS quote_attribution
        ) s
        ON t.user_id = s.user_id
        WHEN MATCHED THEN UPDATE SET
            role = s.role,
            industry = s.industry,
            opener = s.opener,
            paragraphs = s.paragraphs,
            quote = s.quote,
            quote_attribution = s.quote_attribution,
            updated_at = CURRENT_TIMESTAMP()
        WHEN NOT MATCHED THEN INSERT (
            user_id, role, industry, opener, paragraphs, quote, quote_attribution, updated_at
        ) VALUES (
            s.user_id, s.role, s.industry, s.opener, s.paragraphs, s.quote,
            s.quote_attribution, CURRENT_TIMESTAMP()
        )
        """
        self.execute_query(
            sql,
            (
                story.user_id, story.role, story.industry, story.opener,
                self.to_variant(story.paragraphs), story.quote, story.quote_attribution,
            ),
            commit=True,
        )

    def get_story(self, user_id: str) -> Optional[Story]:
        sql = """
        SELECT user_id, role, industry, opener, paragraphs, quote, quote_attribution, updated_at
        FROM stories
        WHERE user_id = %s
        """
        row = self.execute_query(sql, (user_id,), fetch_one=True)
        if not row:
            return None
        data: Dict[str, Any] = self.row_to_dict(row)
        data["paragraphs"] = self.from_variant(data.get("paragraphs")) or []
        data["updated_at"] = self.normalize_timestamp(data.get("updated_at"))
        return Story.model_validate(data)
