"""
WeatherService — cache-aside lookup for a single city.

Cache strategy:
  - Check the cache first (key: city, verbatim)
  - On hit: hand back the cached JSON text untouched
  - On miss: call Visual Crossing, decode the body, cache it (TTL 12h), return it

Only a successfully decoded payload is ever written to the cache, so a hit is
always valid JSON. Cache write failures never change the outcome of a lookup.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from services.weather_api.weather.cache import WeatherCache
from services.weather_api.weather.errors import PayloadDecodeError
from services.weather_api.weather.provider import WeatherClient

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> Any:
    """json.loads hook: NaN and Infinity are not JSON and cannot be re-encoded."""
    raise ValueError(f"non-standard JSON constant {name!r}")


@dataclass(frozen=True)
class WeatherLookup:
    """Result of a lookup: either raw cached text or a freshly decoded payload."""

    cached: bool
    raw: str | None = None
    data: Any = None


class WeatherService:
    """
    Usage:
        service = WeatherService(provider=WeatherClient(...), cache=WeatherCache(...))
        lookup = await service.get_weather("London")
    """

    def __init__(self, provider: WeatherClient, cache: WeatherCache) -> None:
        self._provider = provider
        self._cache = cache

    async def get_weather(self, city: str) -> WeatherLookup:
        """
        Return weather for a city, serving from cache when possible.

        Raises:
            UpstreamError (or a subclass) when the provider fails or returns
            a body that is not strict JSON. Nothing is cached in that case.
        """
        cached = await self._cache.get(city)
        if cached is not None:
            return WeatherLookup(cached=True, raw=cached)

        body = await self._provider.fetch(city)

        try:
            data = json.loads(body, parse_constant=_reject_constant)
        except ValueError as exc:
            logger.error("Visual Crossing returned invalid JSON for city=%r: %s", city, exc)
            raise PayloadDecodeError(str(exc)) from exc

        stored = await self._cache.set(city, body)
        if not stored:
            logger.info("Serving uncached weather for city=%r", city)

        return WeatherLookup(cached=False, data=data)
