"""
Completeness step: measure every portfolio section and store its strategy.
Runs last in a full pipeline; it reads whatever the other steps produced.
"""
import asyncio

import structlog

from folio.models.pipeline import CompletenessJob, CompletenessOutput
from folio.scoring.completeness_calculator import SectionObservations

logger = structlog.get_logger(__name__)


async def gather_observations(user_id: str, site_version_id, deps) -> SectionObservations:
    placements, achievements, companies, experiences, skills, story, profile = await asyncio.gather(
        asyncio.to_thread(deps.assets.list_placements, user_id, site_version_id),
        asyncio.to_thread(deps.achievements.list_for_user, user_id),
        asyncio.to_thread(deps.assets.list_companies_for_user, user_id),
        asyncio.to_thread(deps.careers.list_work_experiences, user_id),
        asyncio.to_thread(deps.careers.list_skills, user_id),
        asyncio.to_thread(deps.careers.get_story, user_id),
        asyncio.to_thread(deps.careers.get_profile, user_id),
    )
    return SectionObservations(
        placements=placements,
        achievements=achievements,
        companies=companies,
        experiences=experiences,
        skill_count=len(skills),
        story=story,
        profile=profile,
    )


async def run_completeness(job: CompletenessJob, deps) -> CompletenessOutput:
    observations = await gather_observations(job.user_id, job.site_version_id, deps)
    records = deps.calculator.evaluate(job.user_id, observations)
    await asyncio.to_thread(deps.completeness.upsert_records, records)

    logger.info("completeness_completed", user_id=job.user_id, sections=len(records))
    return CompletenessOutput(records=records)
