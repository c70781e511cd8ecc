# tests/test_redis_cache.py

"""
Redis Cache Tests - key prefixing, TTL writes, invalidation and graceful degradation
"""

from unittest.mock import MagicMock, patch

import pytest
import redis

from folio.models.asset import ResolvedAsset
from folio.services import cache as cache_module
from folio.services.redis_cache import RedisCache


@pytest.fixture
def mock_client():
    with patch("folio.services.redis_cache.redis.from_url") as from_url:
        client = MagicMock()
        from_url.return_value = client
        yield client


@pytest.fixture
def redis_cache(mock_client):
    return RedisCache(url="redis://localhost:6379/0")


class TestRedisCache:

    def test_get_miss(self, redis_cache, mock_client):
        mock_client.get.return_value = None
        assert redis_cache.get("logo:acme", ResolvedAsset) is None
        mock_client.get.assert_called_once_with("folio:cache:logo:acme")

    def test_get_hit_deserializes(self, redis_cache, mock_client):
        cached = ResolvedAsset(query_key="acme", found=True, value="https://logo/acme.png", provider_used="clearbit")
        mock_client.get.return_value = cached.model_dump_json()

        assert redis_cache.get("logo:acme", ResolvedAsset) == cached

    def test_stale_entry_is_dropped(self, redis_cache, mock_client):
        mock_client.get.return_value = '{"unexpected": true}'

        assert redis_cache.get("logo:acme", ResolvedAsset) is None
        mock_client.delete.assert_called_once_with("folio:cache:logo:acme")

    def test_set_uses_ttl(self, redis_cache, mock_client):
        value = ResolvedAsset.not_found("acme")
        redis_cache.set("logo:acme", value, 3600)
        mock_client.setex.assert_called_once_with("folio:cache:logo:acme", 3600, value.model_dump_json())

    def test_delete(self, redis_cache, mock_client):
        redis_cache.delete("logo:acme")
        mock_client.delete.assert_called_once_with("folio:cache:logo:acme")

    def test_delete_pattern(self, redis_cache, mock_client):
        mock_client.scan_iter.return_value = ["folio:cache:logo:a", "folio:cache:logo:b"]

        redis_cache.delete_pattern("logo:*")

        mock_client.scan_iter.assert_called_once_with(match="folio:cache:logo:*")
        assert mock_client.delete.call_count == 2


class TestCacheSingleton:

    def setup_method(self):
        cache_module.reset_cache()

    def teardown_method(self):
        cache_module.reset_cache()

    def test_unavailable_redis_returns_none(self):
        broken = MagicMock()
        broken.client.ping.side_effect = redis.ConnectionError("refused")
        with patch.object(cache_module, "RedisCache", return_value=broken):
            assert cache_module.get_cache() is None

    def test_instance_is_reused(self):
        healthy = MagicMock()
        with patch.object(cache_module, "RedisCache", return_value=healthy) as factory:
            assert cache_module.get_cache() is healthy
            assert cache_module.get_cache() is healthy
        factory.assert_called_once()
