"""
Image generation step: one stylized portrait per archetype from the user's
source photo, placed on the site version when one is given.
"""
import asyncio

import structlog

from folio.core.exceptions import CollaboratorError, TransientStepError
from folio.models.career import Asset, ImageGeneration, ImagePlacement
from folio.models.enumerations import Archetype
from folio.models.pipeline import ImageGenerationJob, ImageGenerationOutput
from folio.services.image_generation import ARCHETYPE_PLACEMENTS, ARCHETYPE_PROMPTS

logger = structlog.get_logger(__name__)


async def run_image_generation(job: ImageGenerationJob, deps) -> ImageGenerationOutput:
    log = logger.bind(user_id=job.user_id, site_version_id=job.site_version_id)

    profile = await asyncio.to_thread(deps.careers.get_profile, job.user_id)
    if profile is None or not profile.photo_url:
        log.warning("image_generation_skipped", reason="no source photo")
        return ImageGenerationOutput(skipped_reason="no source photo uploaded")
    if not deps.images.is_configured:
        log.warning("image_generation_skipped", reason="image model not configured")
        return ImageGenerationOutput(skipped_reason="image generation is not configured")

    output = ImageGenerationOutput()
    for archetype in Archetype:
        generation = ImageGeneration(
            user_id=job.user_id,
            archetype=archetype,
            prompt=ARCHETYPE_PROMPTS[archetype],
        )
        try:
            image_url = await deps.images.generate(profile.photo_url, archetype)
            url = await deps.storage.store_remote_asset(image_url, f"generated/{job.user_id}")
        except CollaboratorError as e:
            generation.status = "failed"
            generation.error = str(e)
            await asyncio.to_thread(deps.assets.record_generation, generation)
            output.failed.append(archetype.value)
            log.warning("archetype_generation_failed", archetype=archetype.value, error=str(e))
            continue

        asset_id = await asyncio.to_thread(
            deps.assets.insert_asset,
            Asset(user_id=job.user_id, kind="generated_image", url=url, provider="image-model"),
        )
        generation.status = "generated"
        generation.asset_id = asset_id
        await asyncio.to_thread(deps.assets.record_generation, generation)
        output.generated.append(archetype.value)

        if job.site_version_id:
            await asyncio.to_thread(
                deps.assets.upsert_placement,
                ImagePlacement(
                    user_id=job.user_id,
                    site_version_id=job.site_version_id,
                    placement=ARCHETYPE_PLACEMENTS[archetype],
                    asset_id=asset_id,
                ),
            )
            output.placements += 1

    if not output.generated:
        raise TransientStepError(f"All archetypes failed: {', '.join(output.failed)}")

    log.info(
        "image_generation_completed",
        generated=output.generated,
        failed=output.failed,
        placements=output.placements,
    )
    return output
