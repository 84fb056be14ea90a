# brain_tracker/adapters/outbound/security/key_provider.py

"""
Key material for signing and verifying access tokens.

The private key always comes from a local PEM file. Verification uses
either the local public key or, when ``JWKS_URI`` is configured, keys
resolved from the remote key set. With neither available every
verification fails.
"""

import asyncio
import logging
import time
from collections import OrderedDict, deque
from pathlib import Path
from typing import Any, Awaitable, Callable, Deque, Dict, Optional

import httpx

from brain_tracker.adapters.configuration.config import Settings
from brain_tracker.application.ports.outbound import IKeyProvider
from brain_tracker.domain.exceptions import KeyMaterialException

logger = logging.getLogger(__name__)

JWKSFetcher = Callable[[str], Awaitable[Dict[str, Any]]]


def _read_pem(path: Optional[str], kind: str) -> str:
    if not path:
        raise KeyMaterialException(detail=f"No {kind} key configured")
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Unable to read {kind} key from {path}: {e}")
        raise KeyMaterialException(detail=f"Unable to load {kind} key")


class JWKSKeyResolver:
    """
    Resolves verification keys by ``kid`` from a remote JWKS endpoint.

    Keys are cached (LRU, ``cache_max_entries`` keys for ``cache_max_age``
    seconds). Fetches are capped at ``requests_per_minute`` and concurrent
    misses for the same ``kid`` share a single fetch.
    """

    def __init__(
            self,
            jwks_uri: str,
            requests_per_minute: int = 5,
            cache_max_entries: int = 5,
            cache_max_age: float = 10 * 60 * 60,
            timeout: float = 5.0,
            fetch: Optional[JWKSFetcher] = None,
            clock: Callable[[], float] = time.monotonic,
    ):
        self.jwks_uri = jwks_uri
        self.requests_per_minute = requests_per_minute
        self.cache_max_entries = cache_max_entries
        self.cache_max_age = cache_max_age
        self.timeout = timeout
        self._fetch = fetch or self._http_fetch
        self._clock = clock
        self._cache: "OrderedDict[Optional[str], tuple]" = OrderedDict()
        self._request_times: Deque[float] = deque()
        self._locks: Dict[Optional[str], list] = {}

    async def _http_fetch(self, uri: str) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(uri)
            response.raise_for_status()
            return response.json()

    def _cached(self, kid: Optional[str]) -> Optional[Dict[str, Any]]:
        entry = self._cache.get(kid)
        if entry is None:
            return None
        key, stored_at = entry
        if self._clock() - stored_at > self.cache_max_age:
            del self._cache[kid]
            return None
        self._cache.move_to_end(kid)
        return key

    def _store(self, kid: Optional[str], key: Dict[str, Any]) -> None:
        self._cache[kid] = (key, self._clock())
        self._cache.move_to_end(kid)
        while len(self._cache) > self.cache_max_entries:
            self._cache.popitem(last=False)

    def _acquire_request_slot(self) -> bool:
        now = self._clock()
        while self._request_times and now - self._request_times[0] >= 60:
            self._request_times.popleft()
        if len(self._request_times) >= self.requests_per_minute:
            return False
        self._request_times.append(now)
        return True

    async def get_key(self, kid: Optional[str]) -> Dict[str, Any]:
        key = self._cached(kid)
        if key is not None:
            return key

        # Entries live only while a request for that kid is in flight
        entry = self._locks.get(kid)
        if entry is None:
            entry = self._locks[kid] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                return await self._resolve(kid)
        finally:
            entry[1] -= 1
            if entry[1] == 0 and self._locks.get(kid) is entry:
                del self._locks[kid]

    async def _resolve(self, kid: Optional[str]) -> Dict[str, Any]:
        # Another request may have fetched while we waited
        key = self._cached(kid)
        if key is not None:
            return key

        if not self._acquire_request_slot():
            logger.warning("JWKS request rate limit reached, refusing to fetch")
            raise KeyMaterialException(detail="Key set rate limit exceeded")

        try:
            jwks = await self._fetch(self.jwks_uri)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error fetching JWKS from {self.jwks_uri}: {e}")
            raise KeyMaterialException(detail="Unable to fetch key set")

        signing_keys = [
            k for k in jwks.get("keys", [])
            if isinstance(k, dict) and k.get("use", "sig") == "sig" and k.get("kty") in ("RSA", "EC")
        ]
        if kid is None and len(signing_keys) == 1:
            match = signing_keys[0]
        else:
            match = next((k for k in signing_keys if k.get("kid") == kid), None)
        if match is None:
            logger.warning(f"No signing key found in JWKS for kid={kid!r}")
            raise KeyMaterialException(detail="Signing key not found")

        self._store(kid, match)
        return match


class KeyMaterialProvider(IKeyProvider):
    """
    Local private key for signing; local public key or JWKS for verification.
    """

    def __init__(
            self,
            private_key_path: Optional[str],
            public_key_path: Optional[str] = None,
            jwks_resolver: Optional[JWKSKeyResolver] = None,
    ):
        self.private_key_path = private_key_path
        self.public_key_path = public_key_path
        self.jwks_resolver = jwks_resolver
        self._private_key: Optional[str] = None
        self._public_key: Optional[str] = None

    def get_signing_key(self) -> str:
        if self._private_key is None:
            self._private_key = _read_pem(self.private_key_path, "private")
        return self._private_key

    async def get_verification_key(self, kid: Optional[str]) -> Any:
        if self.jwks_resolver is not None:
            return await self.jwks_resolver.get_key(kid)
        if self._public_key is None:
            self._public_key = _read_pem(self.public_key_path, "public")
        return self._public_key


def build_key_provider(config: Settings) -> KeyMaterialProvider:
    resolver = None
    if config.JWKS_URI:
        resolver = JWKSKeyResolver(
            config.JWKS_URI,
            requests_per_minute=config.JWKS_REQUESTS_PER_MINUTE,
            cache_max_entries=config.JWKS_CACHE_MAX_ENTRIES,
            timeout=config.JWKS_FETCH_TIMEOUT_SECONDS,
        )
        logger.info(f"Verifying access tokens against JWKS at {config.JWKS_URI}")
    return KeyMaterialProvider(
        private_key_path=config.JWT_PRIVATE_KEY_PATH,
        public_key_path=None if resolver else config.JWT_PUBLIC_KEY_PATH,
        jwks_resolver=resolver,
    )
