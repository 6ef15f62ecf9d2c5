"""
Remote JWKS resolution with caching, failure cooldown and fetch coalescing.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from .errors import KeyFetchError, KeyFetchTimeout

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_S = 300.0
DEFAULT_COOLDOWN_S = 30.0
DEFAULT_TIMEOUT_S = 10.0


@dataclass
class _CacheEntry:
    fetched_at: float
    keys: dict[str, Any] | None = None
    error: KeyFetchError | None = None


class KeySetResolver:
    """
    Fetches and caches JSON Web Key Sets by URI.

    A successful fetch is served from memory for ``cache_ttl_s``. A failed
    fetch is remembered for ``cooldown_s`` and re-raised without touching the
    network, so an unreachable endpoint is not hammered once per signature.
    Concurrent resolutions of the same URI share one in-flight request.

    Args:
        cache_ttl_s: Lifetime of a successfully fetched key set. Default: 300
        cooldown_s: How long a fetch failure is replayed. Default: 30
        clock: Monotonic time source, injectable for tests

    Example:
        >>> resolver = KeySetResolver()
        >>> jwks = await resolver.resolve("https://example.com/.well-known/jwks.json")
        >>> [key["kid"] for key in jwks["keys"]]
        ['key-1']
    """

    def __init__(
        self,
        cache_ttl_s: float = DEFAULT_CACHE_TTL_S,
        cooldown_s: float = DEFAULT_COOLDOWN_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cache_ttl_s = cache_ttl_s
        self.cooldown_s = cooldown_s
        self._clock = clock
        self._cache: dict[str, _CacheEntry] = {}
        self._inflight: dict[str, asyncio.Future[dict[str, Any]]] = {}

    def clear(self) -> None:
        """Drop every cached key set and remembered failure."""
        self._cache.clear()

    def _lookup(self, uri: str) -> _CacheEntry | None:
        entry = self._cache.get(uri)
        if entry is None:
            return None

        age = self._clock() - entry.fetched_at
        lifetime = self.cooldown_s if entry.error is not None else self.cache_ttl_s
        if age < lifetime:
            return entry

        del self._cache[uri]
        return None

    async def resolve(self, uri: str, timeout_s: float = DEFAULT_TIMEOUT_S) -> dict[str, Any]:
        """
        Return the key set published at ``uri``.

        Args:
            uri: Key set URL (policy checks happen before this call)
            timeout_s: Upper bound for the whole fetch

        Returns:
            The parsed JWKS document, guaranteed to hold a ``keys`` list

        Raises:
            KeyFetchTimeout: If the fetch did not finish within ``timeout_s``
            KeyFetchError: On transport errors, non-2xx responses or a body
                that is not a key set, including replays during cooldown
        """
        entry = self._lookup(uri)
        if entry is not None:
            if entry.error is not None:
                logger.debug("JWKS %s in failure cooldown", uri)
                raise entry.error.with_traceback(None)
            logger.debug("JWKS cache hit for %s", uri)
            return entry.keys

        pending = self._inflight.get(uri)
        if pending is None:
            pending = asyncio.ensure_future(self._refresh(uri, timeout_s))
            self._inflight[uri] = pending
            pending.add_done_callback(lambda done: self._forget(uri, done))
        else:
            logger.debug("Joining in-flight JWKS fetch for %s", uri)

        # One caller giving up must not cancel the fetch the others await
        return await asyncio.shield(pending)

    def _forget(self, uri: str, done: asyncio.Future[dict[str, Any]]) -> None:
        if self._inflight.get(uri) is done:
            del self._inflight[uri]
        if not done.cancelled():
            # Mark the exception retrieved when every waiter was cancelled
            done.exception()

    async def _refresh(self, uri: str, timeout_s: float) -> dict[str, Any]:
        try:
            keys = await asyncio.wait_for(self._fetch(uri, timeout_s), timeout_s)
        except asyncio.TimeoutError:
            error: KeyFetchError = KeyFetchTimeout(uri, timeout_s)
        except KeyFetchError as e:
            error = e
        else:
            self._cache[uri] = _CacheEntry(fetched_at=self._clock(), keys=keys)
            logger.info("Fetched JWKS from %s (%d keys)", uri, len(keys["keys"]))
            return keys

        logger.warning("%s", error.message)
        self._cache[uri] = _CacheEntry(fetched_at=self._clock(), error=error)
        raise error

    async def _fetch(self, uri: str, timeout_s: float) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=timeout_s, follow_redirects=False) as client:
                response = await client.get(uri, headers={"Accept": "application/json"})
        except httpx.TimeoutException as e:
            raise KeyFetchTimeout(uri, timeout_s) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise KeyFetchError(uri, str(e) or type(e).__name__) from e

        if not response.is_success:
            raise KeyFetchError(uri, f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise KeyFetchError(uri, "response is not valid JSON") from e

        if not isinstance(data, dict) or not isinstance(data.get("keys"), list):
            raise KeyFetchError(uri, "response is not a JSON Web Key Set")

        return data
