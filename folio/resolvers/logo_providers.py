"""
Logo providers
folio/resolvers/logo_providers.py

Provider chain for company logos, in priority order:
    1. Brandfetch search  (brand icon)
    2. Logo.dev           (image by guessed domain)
    3. Ideogram           (generated typographic wordmark, last resort)
"""
from typing import List, Optional
from urllib.parse import quote

import httpx

from folio.config import Settings, settings as default_settings
from folio.resolvers.cascade import ProviderDescriptor

BRANDFETCH_SEARCH_URL = "https://api.brandfetch.io/v2/search/{name}"
LOGODEV_IMAGE_URL = "https://img.logo.dev/{domain}?token={token}"
IDEOGRAM_GENERATE_URL = "https://api.ideogram.ai/generate"

WORDMARK_PROMPT = (
    'A clean, modern typographic wordmark logo for "{word}". '
    "Minimalist design, professional typography, black text on white background, "
    "no additional graphics or symbols, just elegant lettering."
)


def guess_domain(company_name: str) -> str:
    return "".join(company_name.lower().split()) + ".com"


class LogoProviders:
    """HTTP calls for each logo source. Errors propagate to the resolver."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or default_settings
        self._transport = transport

    def _secret(self, value) -> Optional[str]:
        return value.get_secret_value() if value else None

    @property
    def brandfetch_key(self) -> Optional[str]:
        return self._secret(self.settings.BRANDFETCH_API_KEY)

    @property
    def logodev_key(self) -> Optional[str]:
        return self._secret(self.settings.LOGODEV_API_KEY)

    @property
    def ideogram_key(self) -> Optional[str]:
        return self._secret(self.settings.IDEOGRAM_API_KEY)

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def brandfetch(self, company_name: str) -> Optional[str]:
        async with self._client(self.settings.LOGO_PROVIDER_TIMEOUT_SECONDS) as client:
            response = await client.get(
                BRANDFETCH_SEARCH_URL.format(name=quote(company_name)),
                headers={"Authorization": f"Bearer {self.brandfetch_key}"},
            )
            response.raise_for_status()
            results = response.json()
        if isinstance(results, list) and results:
            return results[0].get("icon")
        return None

    async def logodev(self, company_name: str) -> Optional[str]:
        url = LOGODEV_IMAGE_URL.format(domain=guess_domain(company_name), token=self.logodev_key)
        async with self._client(self.settings.LOGO_PROVIDER_TIMEOUT_SECONDS) as client:
            response = await client.get(url)
        if response.status_code == 200:
            return url
        return None

    async def ideogram(self, company_name: str) -> Optional[str]:
        word = company_name.split()[0] if company_name.split() else company_name
        async with self._client(self.settings.LOGO_GENERATION_TIMEOUT_SECONDS) as client:
            response = await client.post(
                IDEOGRAM_GENERATE_URL,
                json={"prompt": WORDMARK_PROMPT.format(word=word), "aspect_ratio": "1:1", "model": "V_2"},
                headers={"Api-Key": self.ideogram_key or ""},
            )
            response.raise_for_status()
            data = response.json().get("data") or []
        if data and data[0].get("url"):
            return data[0]["url"]
        return None

    def chain(self) -> List[ProviderDescriptor]:
        timeout = self.settings.LOGO_PROVIDER_TIMEOUT_SECONDS
        return [
            ProviderDescriptor(
                name="brandfetch",
                invoke=self.brandfetch,
                timeout=timeout,
                is_configured=lambda: bool(self.brandfetch_key),
            ),
            ProviderDescriptor(
                name="logo.dev",
                invoke=self.logodev,
                timeout=timeout,
                is_configured=lambda: bool(self.logodev_key),
            ),
            ProviderDescriptor(
                name="ideogram",
                invoke=self.ideogram,
                timeout=self.settings.LOGO_GENERATION_TIMEOUT_SECONDS,
                is_configured=lambda: bool(self.ideogram_key),
                is_fallback=True,
            ),
        ]
