"""
Achievement scoring step: score and rank every achievement, enhance the
featured ones, and save a new ranking snapshot.
"""
import asyncio

import structlog

from folio.models.achievement import Achievement
from folio.models.pipeline import AchievementScoringJob, AchievementScoringOutput
from folio.scoring.enhancement import AchievementEnhancer

logger = structlog.get_logger(__name__)


async def run_achievement_scoring(job: AchievementScoringJob, deps) -> AchievementScoringOutput:
    log = logger.bind(user_id=job.user_id)
    scorer = deps.scorer

    achievements = await asyncio.to_thread(deps.achievements.list_for_user, job.user_id)
    if not achievements:
        log.warning("achievement_scoring_skipped", reason="no achievements")
        ranking = scorer.build_ranking(job.user_id, [])
        await asyncio.to_thread(deps.achievements.insert_ranking, ranking)
        return AchievementScoringOutput(ranking_id=ranking.id, skipped_reason="no achievements found")

    ranked = scorer.rank(achievements)
    await asyncio.to_thread(deps.achievements.update_scores, ranked)

    top = ranked[:scorer.top_n]

    async def impact_statement(achievement: Achievement) -> str:
        return await deps.llm.impact_statement(achievement.raw_text)

    enhancements = await AchievementEnhancer(impact_statement).enhance([r.achievement for r in top])
    for result in enhancements:
        await asyncio.to_thread(deps.achievements.update_enhancement, result)

    ranking = scorer.build_ranking(job.user_id, top)
    await asyncio.to_thread(deps.achievements.insert_ranking, ranking)

    log.info(
        "achievement_scoring_completed",
        scored=len(ranked),
        ranked=len(top),
        enhanced=len(enhancements),
    )
    return AchievementScoringOutput(
        ranking_id=ranking.id,
        scored=len(ranked),
        ranked=len(top),
        enhanced=len(enhancements),
    )
