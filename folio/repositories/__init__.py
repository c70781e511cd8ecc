"""
Repositories Package - Folio Pipeline Engine
folio/repositories/__init__.py

Data access layer for Snowflake database operations.
"""

from folio.repositories.base import BaseRepository
from folio.repositories.achievement_repository import AchievementRepository
from folio.repositories.asset_repository import AssetRepository
from folio.repositories.career_repository import CareerRepository
from folio.repositories.completeness_repository import CompletenessRepository
from folio.repositories.pipeline_run_repository import PipelineRunRepository

__all__ = [
    "BaseRepository",
    "AchievementRepository",
    "AssetRepository",
    "CareerRepository",
    "CompletenessRepository",
    "PipelineRunRepository",
]
