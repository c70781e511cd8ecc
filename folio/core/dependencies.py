"""
Dependencies - Folio Pipeline Engine
folio/core/dependencies.py

FastAPI dependency injection for repositories and the pipeline runtime.
Tests swap these through app.dependency_overrides.
"""

from functools import lru_cache

from folio.config import settings
from folio.pipelines.executor import RetryPolicy, StepExecutor
from folio.pipelines.orchestrator import Orchestrator
from folio.pipelines.queue import RedisJobQueue
from folio.pipelines.registry import StepRegistry
from folio.pipelines.steps import StepDependencies, build_default_registry
from folio.repositories.achievement_repository import AchievementRepository
from folio.repositories.asset_repository import AssetRepository
from folio.repositories.career_repository import CareerRepository
from folio.repositories.completeness_repository import CompletenessRepository
from folio.repositories.pipeline_run_repository import PipelineRunRepository
from folio.resolvers.cascade import CascadingResolver
from folio.resolvers.logo_providers import LogoProviders
from folio.services.cache import TTL_RESOLVED_ASSET, get_cache
from folio.services.image_generation import get_image_client
from folio.services.llm import get_llm_client
from folio.services.s3_storage import get_storage


@lru_cache()
def get_pipeline_run_repository() -> PipelineRunRepository:
    """Get cached PipelineRunRepository instance."""
    return PipelineRunRepository()


@lru_cache()
def get_career_repository() -> CareerRepository:
    """Get cached CareerRepository instance."""
    return CareerRepository()


@lru_cache()
def get_achievement_repository() -> AchievementRepository:
    """Get cached AchievementRepository instance."""
    return AchievementRepository()


@lru_cache()
def get_asset_repository() -> AssetRepository:
    """Get cached AssetRepository instance."""
    return AssetRepository()


@lru_cache()
def get_completeness_repository() -> CompletenessRepository:
    """Get cached CompletenessRepository instance."""
    return CompletenessRepository()


@lru_cache()
def get_job_queue() -> RedisJobQueue:
    """Get cached RedisJobQueue bound to QUEUE_REDIS_URL."""
    return RedisJobQueue()


@lru_cache()
def get_orchestrator() -> Orchestrator:
    """Get cached Orchestrator over the shared queue and run store."""
    return Orchestrator(get_job_queue(), get_pipeline_run_repository())


@lru_cache()
def get_logo_resolver() -> CascadingResolver:
    """Logo resolver with the Brandfetch -> Logo.dev -> Ideogram chain."""
    return CascadingResolver(
        providers=LogoProviders().chain(),
        cache=get_cache(),
        namespace="logo",
        cache_ttl_seconds=TTL_RESOLVED_ASSET,
    )


def build_step_dependencies() -> StepDependencies:
    return StepDependencies(
        careers=get_career_repository(),
        achievements=get_achievement_repository(),
        assets=get_asset_repository(),
        completeness=get_completeness_repository(),
        llm=get_llm_client(),
        images=get_image_client(),
        storage=get_storage(),
        logo_resolver=get_logo_resolver(),
    )


def build_registry() -> StepRegistry:
    return build_default_registry(build_step_dependencies())


def build_executor() -> StepExecutor:
    return StepExecutor(
        get_pipeline_run_repository(),
        build_registry(),
        retry_policy=RetryPolicy.from_settings(settings),
    )
