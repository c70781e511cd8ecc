"""
Skill offers step: client-facing offers per skill category, backed by
achievements that mention the skills.
"""
import asyncio
from collections import OrderedDict
from typing import Dict, List, Sequence

import structlog

from folio.models.achievement import Achievement
from folio.models.career import Skill, SkillOffer
from folio.models.pipeline import SkillOffersJob, SkillOffersOutput

logger = structlog.get_logger(__name__)

MAX_PROOF_ACHIEVEMENTS = 5


def group_by_category(skills: Sequence[Skill]) -> Dict[str, List[Skill]]:
    grouped: Dict[str, List[Skill]] = OrderedDict()
    for skill in skills:
        grouped.setdefault(skill.category or "General", []).append(skill)
    return grouped


def relevant_achievements(skill_names: Sequence[str], achievements: Sequence[Achievement]) -> List[Achievement]:
    """Achievements whose text mentions one of the skills, at most 5."""
    names = [n.lower() for n in skill_names]
    relevant = [
        a for a in achievements
        if any(n in (a.impact_statement or a.raw_text).lower() for n in names)
    ]
    return relevant[:MAX_PROOF_ACHIEVEMENTS]


async def run_skill_offers(job: SkillOffersJob, deps) -> SkillOffersOutput:
    log = logger.bind(user_id=job.user_id)

    skills = await asyncio.to_thread(deps.careers.list_skills, job.user_id)
    if not skills:
        log.warning("skill_offers_skipped", reason="no skills")
        return SkillOffersOutput(skipped_reason="no skills found")

    achievements = await asyncio.to_thread(deps.achievements.list_for_user, job.user_id)
    grouped = group_by_category(skills)

    offer_count = 0
    for category, category_skills in grouped.items():
        names = [s.name for s in category_skills]
        proof = relevant_achievements(names, achievements)
        offers = await deps.llm.skill_offers(
            category, names, [a.impact_statement or a.raw_text for a in proof]
        )
        for offer in offers:
            await asyncio.to_thread(
                deps.careers.upsert_skill_offer,
                SkillOffer(
                    user_id=job.user_id,
                    category=category,
                    skill_name=offer.skill_name,
                    offer_statement=offer.offer_statement,
                    proof_points=offer.proof_points,
                ),
            )
            offer_count += 1

    log.info("skill_offers_completed", categories=len(grouped), offers=offer_count)
    return SkillOffersOutput(categories=len(grouped), offers=offer_count)
