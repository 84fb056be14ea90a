"""Tests for key material loading and the JWKS resolver."""

import asyncio

import httpx
import pytest

from brain_tracker.adapters.configuration.config import Settings
from brain_tracker.adapters.outbound.security.key_provider import (
    JWKSKeyResolver,
    KeyMaterialProvider,
    build_key_provider,
)
from brain_tracker.domain.exceptions import KeyMaterialException

JWKS_URI = "https://issuer.test/.well-known/jwks.json"


def _jwk(kid, kty="RSA", use="sig"):
    return {"kid": kid, "kty": kty, "use": use, "n": "AQAB", "e": "AQAB"}


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class FakeFetcher:
    def __init__(self, keys, delay=0.0, error=None):
        self.keys = keys
        self.delay = delay
        self.error = error
        self.calls = 0

    async def __call__(self, uri):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return {"keys": self.keys}


@pytest.fixture
def clock():
    return FakeClock()


class TestJWKSKeyResolver:
    async def test_key_cached_after_first_fetch(self, clock):
        fetch = FakeFetcher([_jwk("k1")])
        resolver = JWKSKeyResolver(JWKS_URI, fetch=fetch, clock=clock)

        first = await resolver.get_key("k1")
        second = await resolver.get_key("k1")

        assert first["kid"] == "k1"
        assert second is first
        assert fetch.calls == 1

    async def test_fetch_rate_capped_per_minute(self, clock):
        fetch = FakeFetcher([])
        resolver = JWKSKeyResolver(JWKS_URI, requests_per_minute=5, fetch=fetch, clock=clock)

        for i in range(5):
            with pytest.raises(KeyMaterialException, match="Signing key not found"):
                await resolver.get_key(f"missing-{i}")

        with pytest.raises(KeyMaterialException, match="rate limit"):
            await resolver.get_key("missing-5")
        assert fetch.calls == 5

        # The window slides after a minute
        clock.now += 60
        with pytest.raises(KeyMaterialException, match="Signing key not found"):
            await resolver.get_key("missing-6")
        assert fetch.calls == 6

    async def test_cached_keys_served_when_rate_limited(self, clock):
        fetch = FakeFetcher([_jwk("k1")])
        resolver = JWKSKeyResolver(JWKS_URI, requests_per_minute=1, fetch=fetch, clock=clock)

        await resolver.get_key("k1")
        with pytest.raises(KeyMaterialException):
            await resolver.get_key("k2")

        assert (await resolver.get_key("k1"))["kid"] == "k1"

    async def test_concurrent_misses_share_one_fetch(self, clock):
        fetch = FakeFetcher([_jwk("k1")], delay=0.01)
        resolver = JWKSKeyResolver(JWKS_URI, fetch=fetch, clock=clock)

        keys = await asyncio.gather(*(resolver.get_key("k1") for _ in range(10)))

        assert all(k["kid"] == "k1" for k in keys)
        assert fetch.calls == 1

    async def test_lru_eviction(self, clock):
        fetch = FakeFetcher([_jwk(f"k{i}") for i in range(7)])
        resolver = JWKSKeyResolver(JWKS_URI, requests_per_minute=100, cache_max_entries=5, fetch=fetch, clock=clock)

        for i in range(6):
            await resolver.get_key(f"k{i}")
        assert fetch.calls == 6

        await resolver.get_key("k5")
        assert fetch.calls == 6
        # k0 was the least recently used
        await resolver.get_key("k0")
        assert fetch.calls == 7

    async def test_cache_entries_age_out(self, clock):
        fetch = FakeFetcher([_jwk("k1")])
        resolver = JWKSKeyResolver(JWKS_URI, cache_max_age=600, fetch=fetch, clock=clock)

        await resolver.get_key("k1")
        clock.now += 601
        await resolver.get_key("k1")

        assert fetch.calls == 2

    async def test_encryption_keys_ignored(self, clock):
        fetch = FakeFetcher([_jwk("k1", use="enc")])
        resolver = JWKSKeyResolver(JWKS_URI, fetch=fetch, clock=clock)

        with pytest.raises(KeyMaterialException):
            await resolver.get_key("k1")

    async def test_single_key_used_without_kid(self, clock):
        fetch = FakeFetcher([_jwk("only")])
        resolver = JWKSKeyResolver(JWKS_URI, fetch=fetch, clock=clock)

        assert (await resolver.get_key(None))["kid"] == "only"

    async def test_unknown_kids_leave_no_locks_behind(self, clock):
        fetch = FakeFetcher([_jwk("k1")])
        resolver = JWKSKeyResolver(JWKS_URI, requests_per_minute=5, fetch=fetch, clock=clock)

        await resolver.get_key("k1")
        for i in range(1000):
            with pytest.raises(KeyMaterialException):
                await resolver.get_key(f"forged-{i}")

        assert resolver._locks == {}
        assert fetch.calls == 5

    async def test_concurrent_misses_release_lock(self, clock):
        fetch = FakeFetcher([_jwk("k1")], delay=0.01)
        resolver = JWKSKeyResolver(JWKS_URI, fetch=fetch, clock=clock)

        await asyncio.gather(*(resolver.get_key("k1") for _ in range(10)))

        assert resolver._locks == {}

    async def test_fetch_error_mapped(self, clock):
        fetch = FakeFetcher([], error=httpx.ConnectError("unreachable"))
        resolver = JWKSKeyResolver(JWKS_URI, fetch=fetch, clock=clock)

        with pytest.raises(KeyMaterialException, match="Unable to fetch key set"):
            await resolver.get_key("k1")


class TestKeyMaterialProvider:
    async def test_local_keys_loaded_once(self, key_paths):
        provider = KeyMaterialProvider(key_paths["private"], key_paths["public"])

        assert "PRIVATE KEY" in provider.get_signing_key()
        assert "PUBLIC KEY" in await provider.get_verification_key(None)
        assert provider.get_signing_key() is provider.get_signing_key()

    async def test_jwks_preferred_for_verification(self, key_paths, clock):
        fetch = FakeFetcher([_jwk("k1")])
        provider = KeyMaterialProvider(
            key_paths["private"],
            key_paths["public"],
            jwks_resolver=JWKSKeyResolver(JWKS_URI, fetch=fetch, clock=clock),
        )

        key = await provider.get_verification_key("k1")
        assert key["kid"] == "k1"

    def test_build_without_jwks_uses_public_key(self, key_paths):
        config = Settings(JWT_PRIVATE_KEY_PATH=key_paths["private"], JWT_PUBLIC_KEY_PATH=key_paths["public"])

        provider = build_key_provider(config)
        assert provider.jwks_resolver is None
        assert provider.public_key_path == key_paths["public"]

    def test_build_with_jwks(self, key_paths):
        config = Settings(JWT_PRIVATE_KEY_PATH=key_paths["private"], JWKS_URI=JWKS_URI)

        provider = build_key_provider(config)
        assert provider.jwks_resolver is not None
        assert provider.jwks_resolver.requests_per_minute == 5
        assert provider.public_key_path is None
