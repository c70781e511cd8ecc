"""
Story step: opener, narrative paragraphs and quote for the most recent role.
"""
import asyncio
from typing import Dict, List, Sequence, Tuple

import structlog

from folio.models.career import Story, WorkExperience
from folio.models.pipeline import StoryJob, StoryOutput

logger = structlog.get_logger(__name__)

# First industry with a keyword in the work history wins
INDUSTRY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("technology", ("software", "tech", "developer", "engineer", "data", "ai", "cloud")),
    ("finance", ("finance", "banking", "investment", "trading", "fintech")),
    ("healthcare", ("health", "medical", "pharma", "biotech", "clinical")),
    ("consulting", ("consulting", "consultant", "advisory", "strategy")),
    ("marketing", ("marketing", "brand", "advertising")),
    ("education", ("education", "teaching", "academic", "university")),
)
DEFAULT_INDUSTRY = "business"
DEFAULT_ROLE = "Professional"
STORY_ACHIEVEMENTS = 6


def determine_industry(experiences: Sequence[WorkExperience]) -> str:
    words = set(
        " ".join(
            f"{e.company or ''} {e.role or ''} {e.description or ''}" for e in experiences
        ).lower().split()
    )
    for industry, keywords in INDUSTRY_KEYWORDS:
        if any(k in words for k in keywords):
            return industry
    return DEFAULT_INDUSTRY


def _experience_summary(experiences: Sequence[WorkExperience]) -> List[Dict[str, str]]:
    return [
        {
            "company": e.company or "",
            "role": e.role or "",
            "start_date": e.start_date.isoformat() if e.start_date else "",
            "end_date": e.end_date.isoformat() if e.end_date else "present",
            "description": e.description or "",
        }
        for e in experiences
    ]


async def run_story(job: StoryJob, deps) -> StoryOutput:
    log = logger.bind(user_id=job.user_id)

    experiences = await asyncio.to_thread(deps.careers.list_work_experiences, job.user_id)
    if not experiences:
        log.warning("story_skipped", reason="no work experiences")
        return StoryOutput(skipped_reason="no work experiences found")

    role = experiences[0].role or DEFAULT_ROLE
    industry = determine_industry(experiences)

    achievements = await asyncio.to_thread(deps.achievements.list_for_user, job.user_id)
    ranking = await asyncio.to_thread(deps.achievements.latest_ranking, job.user_id)
    if ranking and ranking.items:
        by_id = {a.id: a for a in achievements}
        featured = [by_id[i.achievement_id] for i in ranking.items if i.achievement_id in by_id]
    else:
        featured = achievements[:STORY_ACHIEVEMENTS]
    achievement_texts = [a.impact_statement or a.raw_text for a in featured]

    opener = await deps.llm.story_opener(role, achievement_texts)
    paragraphs = await deps.llm.narrative_paragraphs(role, _experience_summary(experiences))
    quote, attribution = await deps.llm.inspirational_quote(role, industry)

    story = Story(
        user_id=job.user_id,
        role=role,
        industry=industry,
        opener=opener,
        paragraphs=paragraphs,
        quote=quote,
        quote_attribution=attribution,
    )
    await asyncio.to_thread(deps.careers.upsert_story, story)

    log.info("story_completed", role=role, industry=industry, paragraphs=len(paragraphs))
    return StoryOutput(role=role, industry=industry, paragraph_count=len(paragraphs))
