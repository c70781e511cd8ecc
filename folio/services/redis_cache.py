"""
Redis model cache - Folio Pipeline Engine
folio/services/redis_cache.py

Stores pydantic models as JSON under "{prefix}:{key}" with a TTL. Used by the
cascading resolver to remember provider hits and misses.
"""
import logging
from typing import Optional, Type, TypeVar

import redis
from pydantic import BaseModel, ValidationError

from folio.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class RedisCache:
    def __init__(self, url: Optional[str] = None, prefix: str = "folio:cache"):
        self.client = redis.from_url(
            url or settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
        )
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def get(self, key: str, model: Type[T]) -> Optional[T]:
        """Cached model, or None on a miss. Entries that no longer validate are dropped."""
        data = self.client.get(self._key(key))
        if not data:
            return None
        try:
            return model.model_validate_json(data)
        except ValidationError:
            logger.warning(f"Dropping stale cache entry {self._key(key)}")
            self.client.delete(self._key(key))
            return None

    def set(self, key: str, value: BaseModel, ttl_seconds: int) -> None:
        self.client.setex(self._key(key), ttl_seconds, value.model_dump_json())

    def delete(self, key: str) -> None:
        self.client.delete(self._key(key))

    def delete_pattern(self, pattern: str) -> None:
        """Invalidate every key under the prefix matching pattern, e.g. "logo:*"."""
        for key in self.client.scan_iter(match=self._key(pattern)):
            self.client.delete(key)
