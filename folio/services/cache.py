"""
Cache Singleton - Folio Pipeline Engine
folio/services/cache.py

Process-wide RedisCache for resolved assets. The cache is optional: when
Redis cannot be reached get_cache() returns None and resolvers run uncached.
"""
import logging
from typing import Optional

import redis

from folio.config import settings
from folio.services.redis_cache import RedisCache

logger = logging.getLogger(__name__)

# Logo and other resolved-asset lookups, in seconds
TTL_RESOLVED_ASSET = settings.CACHE_TTL_RESOLVED_ASSET

_cache: Optional[RedisCache] = None


def get_cache() -> Optional[RedisCache]:
    """Shared RedisCache, or None when Redis is unavailable."""
    global _cache
    if _cache is None:
        try:
            _cache = RedisCache()
            _cache.client.ping()
        except (redis.RedisError, ConnectionError) as e:
            logger.warning(f"Redis cache unavailable, continuing without it: {e}")
            _cache = None
    return _cache


def reset_cache() -> None:
    """Forget the shared instance so the next get_cache() reconnects."""
    global _cache
    _cache = None
