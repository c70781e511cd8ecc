"""
Cascading Resolver
folio/resolvers/cascade.py

Resolves an external resource by folding an ordered list of provider
descriptors left to right and accepting the first usable result.

A provider is skipped (never retried) when it is not configured, times out,
raises, or returns nothing. There is no backoff between providers. When the
chain is exhausted the result is found=False; resolve() never raises.

Successful resolutions are cached in Redis under the query key, so a repeated
lookup short-circuits without invoking any provider. A Redis outage only
disables the cache.
"""
import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

import structlog

from folio.models.asset import ResolvedAsset
from folio.services.redis_cache import RedisCache

logger = structlog.get_logger(__name__)

ProviderFn = Callable[[str], Awaitable[Optional[str]]]


def _always_configured() -> bool:
    return True


@dataclass(frozen=True)
class ProviderDescriptor:
    """One entry of a provider chain."""
    name: str
    invoke: ProviderFn
    timeout: float
    is_configured: Callable[[], bool] = _always_configured
    is_fallback: bool = False


class CascadingResolver:
    """Try providers in priority order; degrade to found=False."""

    def __init__(
        self,
        providers: Sequence[ProviderDescriptor] = (),
        cache: Optional[RedisCache] = None,
        namespace: str = "resolved",
        cache_ttl_seconds: int = 86400,
    ):
        self.providers = tuple(providers)
        self.cache = cache
        self.namespace = namespace
        self.cache_ttl_seconds = cache_ttl_seconds

    def _cache_key(self, query_key: str) -> str:
        return f"{self.namespace}:{query_key}"

    async def _cached(self, query_key: str) -> Optional[ResolvedAsset]:
        if self.cache is None:
            return None
        try:
            return await asyncio.to_thread(
                self.cache.get, self._cache_key(query_key), ResolvedAsset
            )
        except Exception as e:
            logger.warning("resolver_cache_read_failed", query_key=query_key, error=str(e))
            return None

    async def _remember(self, result: ResolvedAsset) -> None:
        if self.cache is None:
            return
        try:
            await asyncio.to_thread(
                self.cache.set,
                self._cache_key(result.query_key),
                result,
                self.cache_ttl_seconds,
            )
        except Exception as e:
            logger.warning("resolver_cache_write_failed", query_key=result.query_key, error=str(e))

    async def _try(self, provider: ProviderDescriptor, query_key: str) -> Optional[str]:
        if not provider.is_configured():
            logger.debug("provider_not_configured", provider=provider.name, query_key=query_key)
            return None
        try:
            value = await asyncio.wait_for(provider.invoke(query_key), timeout=provider.timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "provider_timeout",
                provider=provider.name,
                query_key=query_key,
                timeout=provider.timeout,
            )
            return None
        except Exception as e:
            logger.warning(
                "provider_failed",
                provider=provider.name,
                query_key=query_key,
                error=str(e) or type(e).__name__,
            )
            return None
        if not value:
            logger.info("provider_empty", provider=provider.name, query_key=query_key)
            return None
        return value

    async def resolve(
        self,
        query_key: str,
        providers: Optional[Sequence[ProviderDescriptor]] = None,
    ) -> ResolvedAsset:
        cached = await self._cached(query_key)
        if cached is not None and cached.found:
            logger.info("resolver_cache_hit", query_key=query_key, provider=cached.provider_used)
            return cached

        chain = self.providers if providers is None else tuple(providers)
        for provider in chain:
            value = await self._try(provider, query_key)
            if value is None:
                continue
            result = ResolvedAsset(
                query_key=query_key,
                found=True,
                value=value,
                provider_used=provider.name,
                from_fallback=provider.is_fallback,
            )
            logger.info(
                "resolver_resolved",
                query_key=query_key,
                provider=provider.name,
                from_fallback=provider.is_fallback,
            )
            await self._remember(result)
            return result

        logger.info("resolver_exhausted", query_key=query_key, providers=[p.name for p in chain])
        return ResolvedAsset.not_found(query_key)
