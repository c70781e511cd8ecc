"""
Step handlers
folio/pipelines/steps/

One module per step kind. Each handler takes its typed job plus the shared
StepDependencies and returns its typed output. A handler whose upstream data
is absent logs a warning and returns an output with skipped_reason set.
"""
from dataclasses import dataclass, field
from functools import partial

from folio.models.enumerations import StepKind
from folio.pipelines.registry import StepRegistry
from folio.repositories.achievement_repository import AchievementRepository
from folio.repositories.asset_repository import AssetRepository
from folio.repositories.career_repository import CareerRepository
from folio.repositories.completeness_repository import CompletenessRepository
from folio.resolvers.cascade import CascadingResolver
from folio.scoring.achievement_scorer import AchievementScorer
from folio.scoring.completeness_calculator import CompletenessCalculator
from folio.services.image_generation import ImageGenerationClient
from folio.services.llm import LLMClient
from folio.services.s3_storage import S3StorageService


@dataclass
class StepDependencies:
    careers: CareerRepository
    achievements: AchievementRepository
    assets: AssetRepository
    completeness: CompletenessRepository
    llm: LLMClient
    images: ImageGenerationClient
    storage: S3StorageService
    logo_resolver: CascadingResolver
    scorer: AchievementScorer = field(default_factory=AchievementScorer)
    calculator: CompletenessCalculator = field(default_factory=CompletenessCalculator)


def build_default_registry(deps: StepDependencies) -> StepRegistry:
    """Registry with a handler for every step kind, bound to deps."""
    from folio.pipelines.steps.achievements import run_achievement_scoring
    from folio.pipelines.steps.completeness import run_completeness
    from folio.pipelines.steps.images import run_image_generation
    from folio.pipelines.steps.ingest import run_ingest
    from folio.pipelines.steps.logos import run_logo_resolution
    from folio.pipelines.steps.skills import run_skill_offers
    from folio.pipelines.steps.story import run_story

    registry = StepRegistry()
    for kind, handler in (
        (StepKind.INGEST, run_ingest),
        (StepKind.LOGO_RESOLUTION, run_logo_resolution),
        (StepKind.ACHIEVEMENT_SCORING, run_achievement_scoring),
        (StepKind.STORY, run_story),
        (StepKind.SKILL_OFFERS, run_skill_offers),
        (StepKind.IMAGE_GENERATION, run_image_generation),
        (StepKind.COMPLETENESS, run_completeness),
    ):
        registry.register(kind, partial(handler, deps=deps))
    return registry
