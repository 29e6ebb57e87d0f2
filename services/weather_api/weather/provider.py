"""
Visual Crossing timeline client.

GET {base}/timeline/{city}?unitGroup=metric&key={api_key}&contentType=json

Returns the raw response body. The payload is not inspected here; callers
decide whether and how to parse it.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from services.weather_api.weather.errors import UpstreamStatusError, UpstreamTransportError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://weather.visualcrossing.com/VisualCrossingWebServices/rest/services"


class WeatherClient:
    def __init__(self, api_key: str, http: httpx.AsyncClient, base_url: str = DEFAULT_BASE_URL) -> None:
        self._api_key = api_key
        self._http = http
        self._base_url = base_url.rstrip("/")

    def timeline_url(self, city: str) -> str:
        return f"{self._base_url}/timeline/{quote(city, safe='')}"

    async def fetch(self, city: str) -> bytes:
        """
        Fetch the timeline forecast for a city.

        Raises:
            UpstreamTransportError: the request never got a response.
            UpstreamStatusError:    the provider answered with a non-2xx status.
        """
        try:
            resp = await self._http.get(
                self.timeline_url(city),
                params={
                    "unitGroup": "metric",
                    "key": self._api_key,
                    "contentType": "json",
                },
            )
        except httpx.HTTPError as exc:
            logger.warning("Visual Crossing fetch failed for city=%r: %s", city, exc)
            raise UpstreamTransportError(str(exc)) from exc

        if not resp.is_success:
            logger.warning(
                "Visual Crossing returned %d for city=%r: %s",
                resp.status_code,
                city,
                resp.text[:200],
            )
            raise UpstreamStatusError(resp.status_code, resp.text[:200])

        return resp.content
