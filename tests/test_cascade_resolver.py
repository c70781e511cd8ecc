# tests/test_cascade_resolver.py

"""
Cascading Resolver Tests - provider fold order, degradation and caching
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx

from folio.config import Settings
from folio.models.asset import ResolvedAsset
from folio.resolvers.cascade import CascadingResolver, ProviderDescriptor
from folio.resolvers.logo_providers import LogoProviders, guess_domain


def run(coro):
    return asyncio.run(coro)


def provider(name, invoke, timeout=1.0, configured=True, fallback=False):
    return ProviderDescriptor(
        name=name,
        invoke=invoke,
        timeout=timeout,
        is_configured=lambda: configured,
        is_fallback=fallback,
    )


class TestCascadingResolver:

    def test_first_success_wins_and_later_providers_are_not_invoked(self):
        p1 = AsyncMock(side_effect=RuntimeError("boom"))
        p2 = AsyncMock(return_value="https://cdn/p2.png")
        p3 = AsyncMock(return_value="https://cdn/p3.png")
        resolver = CascadingResolver([provider("p1", p1), provider("p2", p2), provider("p3", p3, fallback=True)])

        result = run(resolver.resolve("acme"))

        assert result.found is True
        assert result.value == "https://cdn/p2.png"
        assert result.provider_used == "p2"
        assert result.from_fallback is False
        p1.assert_awaited_once_with("acme")
        p3.assert_not_awaited()

    def test_unconfigured_provider_is_skipped_without_call(self):
        p1 = AsyncMock(return_value="https://cdn/p1.png")
        p2 = AsyncMock(return_value="https://cdn/p2.png")
        resolver = CascadingResolver([provider("p1", p1, configured=False), provider("p2", p2)])

        result = run(resolver.resolve("acme"))

        assert result.provider_used == "p2"
        p1.assert_not_awaited()

    def test_timeout_moves_to_next_provider(self):
        async def slow(_):
            await asyncio.sleep(1)
            return "https://cdn/slow.png"

        fallback = AsyncMock(return_value="https://cdn/generated.png")
        resolver = CascadingResolver([
            provider("slow", slow, timeout=0.01),
            provider("generator", fallback, fallback=True),
        ])

        result = run(resolver.resolve("acme"))

        assert result.provider_used == "generator"
        assert result.from_fallback is True

    def test_empty_result_counts_as_miss(self):
        resolver = CascadingResolver([
            provider("p1", AsyncMock(return_value=None)),
            provider("p2", AsyncMock(return_value="")),
        ])
        result = run(resolver.resolve("acme"))
        assert result == ResolvedAsset.not_found("acme")

    def test_exhausted_chain_never_raises(self):
        resolver = CascadingResolver([
            provider("p1", AsyncMock(side_effect=httpx.ConnectError("down"))),
            provider("p2", AsyncMock(side_effect=ValueError("bad json"))),
        ])
        result = run(resolver.resolve("acme"))
        assert result.found is False
        assert result.value is None

    def test_empty_chain(self):
        assert run(CascadingResolver().resolve("acme")).found is False

    def test_explicit_providers_override_default_chain(self):
        default = AsyncMock(return_value="https://cdn/default.png")
        override = AsyncMock(return_value="https://cdn/override.png")
        resolver = CascadingResolver([provider("default", default)])

        result = run(resolver.resolve("acme", providers=[provider("override", override)]))

        assert result.provider_used == "override"
        default.assert_not_awaited()


class TestResolverCache:

    def test_cache_hit_short_circuits(self):
        cache = MagicMock()
        cache.get.return_value = ResolvedAsset(
            query_key="acme", found=True, value="https://cdn/cached.png", provider_used="p1"
        )
        p1 = AsyncMock(return_value="https://cdn/fresh.png")
        resolver = CascadingResolver([provider("p1", p1)], cache=cache, namespace="logo")

        result = run(resolver.resolve("acme"))

        assert result.value == "https://cdn/cached.png"
        cache.get.assert_called_once_with("logo:acme", ResolvedAsset)
        p1.assert_not_awaited()

    def test_found_result_is_cached(self):
        cache = MagicMock()
        cache.get.return_value = None
        resolver = CascadingResolver(
            [provider("p1", AsyncMock(return_value="https://cdn/p1.png"))],
            cache=cache, namespace="logo", cache_ttl_seconds=60,
        )

        result = run(resolver.resolve("acme"))

        cache.set.assert_called_once_with("logo:acme", result, 60)

    def test_not_found_is_not_cached(self):
        cache = MagicMock()
        cache.get.return_value = None
        resolver = CascadingResolver([provider("p1", AsyncMock(return_value=None))], cache=cache)
        run(resolver.resolve("acme"))
        cache.set.assert_not_called()

    def test_cache_outage_only_disables_cache(self):
        cache = MagicMock()
        cache.get.side_effect = ConnectionError("redis down")
        cache.set.side_effect = ConnectionError("redis down")
        resolver = CascadingResolver([provider("p1", AsyncMock(return_value="https://cdn/p1.png"))], cache=cache)

        result = run(resolver.resolve("acme"))

        assert result.found is True


class TestLogoProviders:

    def test_guess_domain(self):
        assert guess_domain("Acme Corp") == "acmecorp.com"

    def test_chain_order_and_fallback(self):
        chain = LogoProviders(settings=Settings()).chain()
        assert [p.name for p in chain] == ["brandfetch", "logo.dev", "ideogram"]
        assert [p.is_fallback for p in chain] == [False, False, True]

    def test_unconfigured_keys_skip_every_provider(self):
        providers = LogoProviders(settings=Settings(
            BRANDFETCH_API_KEY=None, LOGODEV_API_KEY=None, IDEOGRAM_API_KEY=None,
        ))
        result = run(CascadingResolver(providers.chain()).resolve("acme"))
        assert result.found is False

    def test_brandfetch_returns_first_icon(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer bf-key"
            return httpx.Response(200, json=[{"icon": "https://brandfetch/acme.svg", "name": "Acme"}])

        providers = LogoProviders(
            settings=Settings(BRANDFETCH_API_KEY="bf-key"),
            transport=httpx.MockTransport(handler),
        )
        assert run(providers.brandfetch("acme")) == "https://brandfetch/acme.svg"
