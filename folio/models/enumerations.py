from enum import Enum
from typing import Tuple

class StepKind(str, Enum):
    INGEST = "ingest"
    LOGO_RESOLUTION = "logo-resolution"
    ACHIEVEMENT_SCORING = "achievement-scoring"
    STORY = "story"
    SKILL_OFFERS = "skill-offers"
    IMAGE_GENERATION = "image-generation"
    COMPLETENESS = "completeness"

class RunStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

class OverallStatus(str, Enum):
    NOT_STARTED = "not_started"
    PENDING = "pending"
    RUNNING = "running"
    FAILED = "failed"
    COMPLETED = "completed"

class Provenance(str, Enum):
    USER_PROVIDED = "user_provided"      # Taken verbatim from the source document
    MODEL_POLISH = "model_polish"        # Rewritten by a model, metrics present
    MODEL_CONTEXT = "model_context"      # Rewritten by a model without hard evidence
    INDUSTRY_TEMPLATE = "industry_template"

class Section(str, Enum):
    IMAGES = "images"
    ACHIEVEMENTS = "achievements"
    LOGOS = "logos"
    WORK_HISTORY = "work_history"
    SKILLS = "skills"
    STORY = "story"
    NAVIGATION = "navigation"

class FillStrategy(str, Enum):
    COMPLETE = "complete"
    POLISH = "polish"
    CONTEXT = "context"
    QUALITATIVE = "qualitative"
    TEMPLATE = "template"
    HIDE = "hide"

    @property
    def rank(self) -> int:
        """Higher is better: complete=5 ... hide=0."""
        return len(FILL_STRATEGY_ORDER) - 1 - FILL_STRATEGY_ORDER.index(self)

class Archetype(str, Enum):
    HERO = "hero"
    FORMAL = "formal"
    DESK = "desk"
    CASUAL = "casual"

class Placement(str, Enum):
    HERO = "hero"
    ACHIEVEMENTS_GENERAL_MAIN = "achievements_general_main"
    ACHIEVEMENTS_CAREER_MAIN = "achievements_career_main"
    CERTIFICATIONS_BG = "certifications_bg"


# Best strategy first
FILL_STRATEGY_ORDER: Tuple[FillStrategy, ...] = (
    FillStrategy.COMPLETE,
    FillStrategy.POLISH,
    FillStrategy.CONTEXT,
    FillStrategy.QUALITATIVE,
    FillStrategy.TEMPLATE,
    FillStrategy.HIDE,
)

# Completeness must stay last: it measures the output of every other step.
FULL_PIPELINE: Tuple[StepKind, ...] = (
    StepKind.INGEST,
    StepKind.LOGO_RESOLUTION,
    StepKind.ACHIEVEMENT_SCORING,
    StepKind.STORY,
    StepKind.SKILL_OFFERS,
    StepKind.IMAGE_GENERATION,
    StepKind.COMPLETENESS,
)

IN_FLIGHT_STATUSES: Tuple[RunStatus, ...] = (RunStatus.QUEUED, RunStatus.RUNNING)
TERMINAL_STATUSES: Tuple[RunStatus, ...] = (
    RunStatus.SUCCEEDED,
    RunStatus.FAILED,
    RunStatus.CANCELED,
)
