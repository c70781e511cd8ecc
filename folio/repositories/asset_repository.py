"""
Asset Repository - Folio Pipeline Engine
folio/repositories/asset_repository.py

Tables:
  - companies          (keyed by normalized_name; holds the resolved logo)
  - assets             (stored files: logos, portraits, generated images)
  - image_generations  (one row per archetype attempt)
  - image_placements   (asset chosen for a placement on a site version)
"""

import logging
from typing import List, Optional

from folio.models.career import (
    Asset,
    Company,
    ImageGeneration,
    ImagePlacement,
    normalize_company_name,
)
from folio.repositories.base import BaseRepository

logger = logging.getLogger(__name__)

# SQL twin of normalize_company_name()
_NORMALIZED_SQL = "REGEXP_REPLACE(LOWER(TRIM({col})), '\\\\s+', ' ')"


class AssetRepository(BaseRepository):
    """Repository for companies, assets and generated images."""

    # =====================================================================
    # companies
    # =====================================================================

    def upsert_company(self, name: str) -> None:
        normalized = normalize_company_name(name)
        sql = """
        MERGE INTO companies t
        USING (SELECT %s AS normalized_name) s
        ON t.normalized_name = s.normalized_name
        WHEN NOT MATCHED THEN INSERT (id, name, normalized_name, created_at)
        VALUES (UUID_STRING(), %s, s.normalized_name, CURRENT_TIMESTAMP())
        """
        self.execute_query(sql, (normalized, name.strip()), commit=True)

    def list_companies_for_user(self, user_id: str) -> List[Company]:
        """Companies the user has worked at, via work_experiences."""
        sql = f"""
        SELECT c.id, c.name, c.normalized_name, c.logo_asset_id, c.logo_url
        FROM companies c
        WHERE c.normalized_name IN (
            SELECT DISTINCT {_NORMALIZED_SQL.format(col='company')}
            FROM work_experiences
            WHERE user_id = %s AND company IS NOT NULL
        )
        ORDER BY c.normalized_name
        """
        rows = self.execute_query(sql, (user_id,), fetch_all=True) or []
        return [Company.model_validate(self.row_to_dict(r)) for r in rows]

    def save_logo(self, company_id: str, asset: Asset) -> str:
        """Store the logo asset and attach it to the company."""
        asset_id = self.insert_asset(asset)
        sql = """
        UPDATE companies
        SET logo_asset_id = %s, logo_url = %s, updated_at = CURRENT_TIMESTAMP()
        WHERE id = %s
        """
        self.execute_query(sql, (asset_id, asset.url, company_id), commit=True)
        logger.info(f"Attached logo {asset_id} to company {company_id}")
        return asset_id

    # =====================================================================
    # assets
    # =====================================================================

    def insert_asset(self, asset: Asset) -> str:
        """MERGE by (kind, url); returns the id of the stored row."""
        sql = """
        MERGE INTO assets t
        USING (SELECT %s AS kind, %s AS url) s
        ON t.kind = s.kind AND t.url = s.url
        WHEN NOT MATCHED THEN INSERT (
            id, user_id, kind, url, storage_key, provider, created_at
        ) VALUES (%s, %s, s.kind, s.url, %s, %s, CURRENT_TIMESTAMP())
        """
        self.execute_query(
            sql,
            (asset.kind, asset.url, asset.id, asset.user_id, asset.storage_key, asset.provider),
            commit=True,
        )
        row = self.execute_query(
            "SELECT id FROM assets WHERE kind = %s AND url = %s",
            (asset.kind, asset.url),
            fetch_one=True,
        )
        return self.row_to_dict(row).get("id", asset.id)

    # =====================================================================
    # image_generations / image_placements
    # =====================================================================

    def record_generation(self, generation: ImageGeneration) -> None:
        sql = """
        MERGE INTO image_generations t
        USING (SELECT %s AS id) s
        ON t.id = s.id
        WHEN MATCHED THEN UPDATE SET
            status = %s, asset_id = %s, error = %s, updated_at = CURRENT_TIMESTAMP()
        WHEN NOT MATCHED THEN INSERT (
            id, user_id, archetype, prompt, status, asset_id, error, created_at, updated_at
        ) VALUES (%s, %s, %s, %s, %s, %s, %s, CURRENT_TIMESTAMP(), CURRENT_TIMESTAMP())
        """
        self.execute_query(
            sql,
            (
                generation.id,
                generation.status, generation.asset_id, generation.error,
                generation.id, generation.user_id, generation.archetype.value,
                generation.prompt, generation.status, generation.asset_id, generation.error,
            ),
            commit=True,
        )

    def upsert_placement(self, placement: ImagePlacement) -> None:
        """One asset per (site_version_id, placement); the latest wins."""
        sql = """
        MERGE INTO image_placements t
        USING (SELECT %s AS site_version_id, %s AS placement) s
        ON t.site_version_id = s.site_version_id AND t.placement = s.placement
        WHEN MATCHED THEN UPDATE SET asset_id = %s, updated_at = CURRENT_TIMESTAMP()
        WHEN NOT MATCHED THEN INSERT (
            user_id, site_version_id, placement, asset_id, updated_at
        ) VALUES (%s, s.site_version_id, s.placement, %s, CURRENT_TIMESTAMP())
        """
        self.execute_query(
            sql,
            (
                placement.site_version_id, placement.placement.value,
                placement.asset_id,
                placement.user_id, placement.asset_id,
            ),
            commit=True,
        )

    def list_placements(self, user_id: str, site_version_id: Optional[str] = None) -> List[str]:
        """Distinct placement names filled for a user (optionally one site version)."""
        sql = "SELECT DISTINCT placement FROM image_placements WHERE user_id = %s"
        params: tuple = (user_id,)
        if site_version_id:
            sql += " AND site_version_id = %s"
            params = (user_id, site_version_id)
        rows = self.execute_query(sql, params, fetch_all=True) or []
        return [self.row_to_dict(r)["placement"] for r in rows]
