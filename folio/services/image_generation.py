"""
Image generation collaborator - Folio Pipeline Engine
folio/services/image_generation.py

Turns a source portrait into one stylized image per archetype.
"""
import logging
from functools import lru_cache
from typing import Dict, Optional

import httpx

from folio.config import settings
from folio.core.exceptions import CollaboratorError
from folio.models.enumerations import Archetype, Placement

logger = logging.getLogger(__name__)

ARCHETYPE_PROMPTS: Dict[Archetype, str] = {
    Archetype.HERO: (
        "Transform this person into a business professional portrait. "
        "Wide landscape format (2400x720px), professional attire, confident pose, "
        "black background, high quality, editorial style lighting."
    ),
    Archetype.FORMAL: (
        "Transform this person into a semi-professional portrait. "
        "Portrait orientation (720x2400px), business casual attire, approachable expression, "
        "black background, natural lighting, professional quality."
    ),
    Archetype.DESK: (
        "Transform this person into a casual tech entrepreneur at desk. "
        "Bust only, wide format (2400x720px), modern workspace background, "
        "black background, relaxed but professional, high quality."
    ),
    Archetype.CASUAL: (
        "Transform this person into a casual tech entrepreneur facing left. "
        "Wide format (2400x720px), casual professional attire, side profile, "
        "black background, modern aesthetic, high quality."
    ),
}

# Where each generated archetype is placed on a site version
ARCHETYPE_PLACEMENTS: Dict[Archetype, Placement] = {
    Archetype.HERO: Placement.HERO,
    Archetype.FORMAL: Placement.ACHIEVEMENTS_GENERAL_MAIN,
    Archetype.DESK: Placement.ACHIEVEMENTS_CAREER_MAIN,
    Archetype.CASUAL: Placement.CERTIFICATIONS_BG,
}


class ImageGenerationClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if api_key is None and settings.GEMINI_API_KEY:
            api_key = settings.GEMINI_API_KEY.get_secret_value()
        self.api_key = api_key
        self.api_url = api_url or settings.IMAGE_API_URL
        self.model = model or settings.IMAGE_MODEL
        self.timeout = timeout or settings.IMAGE_TIMEOUT_SECONDS
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate(self, source_photo_url: str, archetype: Archetype) -> str:
        """Return the URL of the generated image for one archetype."""
        if not self.api_key:
            raise CollaboratorError("image", "GEMINI_API_KEY is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.api_url,
                    json={
                        "source_image": source_photo_url,
                        "prompt": ARCHETYPE_PROMPTS[archetype],
                        "model": self.model,
                    },
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Image generation failed for {archetype.value}: {e}")
            raise CollaboratorError("image", str(e) or type(e).__name__) from e

        image_url = data.get("image_url") if isinstance(data, dict) else None
        if not image_url:
            raise CollaboratorError("image", f"no image returned for {archetype.value}")
        return image_url


@lru_cache
def get_image_client() -> ImageGenerationClient:
    return ImageGenerationClient()
