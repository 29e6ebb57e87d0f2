"""
Weather cache — Upstash Redis over its REST API, keyed by city.

Cache key:  the city path parameter, verbatim (percent-encoded on the wire)
TTL:        12 hours by default, enforced by the store itself

Read:   GET  {base}/get/{key}          -> {"result": "<json text>" | null}
Write:  POST {base}/set/{key}?EX={ttl}    body = json text

The provider's JSON is cached verbatim so a hit can be served byte-for-byte
without decoding. Any failure (store down, bad token, garbage response)
degrades to a cache miss on read and a logged no-op on write.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 12 * 60 * 60


def _key_path(command: str, key: str) -> str:
    """Build '/get/<key>' with the key escaped as a single path segment."""
    return f"/{command}/{quote(key, safe='')}"


class WeatherCache:
    """
    Upstash REST cache client.

    Usage:
        cache = WeatherCache(base_url, token, http=client)
        raw = await cache.get("London")
        if raw is None:
            raw = await fetch_from_provider(...)
            await cache.set("London", raw)
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        http: httpx.AsyncClient,
        ttl_s: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        """
        Args:
            base_url: Upstash REST endpoint (UPSTASH_REDIS_URL).
            token:    Upstash REST bearer token (UPSTASH_REDIS_TOKEN).
            http:     Shared async HTTP client; owned by the caller.
            ttl_s:    Default expiry for writes.
        """
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {token}"}
        self._http = http
        self.ttl_s = ttl_s

    async def get(self, key: str) -> str | None:
        """Return the cached value for key, or None on miss / unavailable."""
        url = self._base_url + _key_path("get", key)
        try:
            resp = await self._http.get(url, headers=self._headers)
            resp.raise_for_status()
            result = resp.json().get("result")
        except Exception:
            logger.warning("Weather cache GET failed for key=%r", key, exc_info=True)
            return None

        if not isinstance(result, str) or not result:
            logger.debug("Weather cache miss: %r", key)
            return None
        logger.debug("Weather cache hit: %r", key)
        return result

    async def set(self, key: str, value: str | bytes, ttl_s: int | None = None) -> bool:
        """Store value under key with an expiry. Returns False if the write failed."""
        ttl = ttl_s if ttl_s is not None else self.ttl_s
        url = self._base_url + _key_path("set", key)
        try:
            resp = await self._http.post(
                url,
                params={"EX": ttl},
                content=value,
                headers=self._headers,
            )
            resp.raise_for_status()
        except Exception:
            logger.warning("Weather cache SET failed for key=%r", key, exc_info=True)
            return False

        logger.debug("Weather cached: key=%r ttl=%ds", key, ttl)
        return True
