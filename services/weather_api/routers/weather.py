"""
Weather lookup endpoint.

GET /weather/{city} — cache-aside proxy to Visual Crossing

A cache hit is returned byte-for-byte; a fresh fetch is returned as decoded
JSON. Any upstream failure is flattened to a single 502 message.
"""

import logging

from fastapi import APIRouter, Request, Response
from starlette.responses import JSONResponse

from services.weather_api.weather import (
    PayloadDecodeError,
    UpstreamError,
    UpstreamStatusError,
    WeatherService,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/weather", tags=["weather"])

FETCH_FAILED = "failed to fetch weather data"
DECODE_FAILED = "failed to decode weather data"


def _service(request: Request) -> WeatherService:
    return request.app.state.weather_service


@router.get("/{city}")
async def get_weather(city: str, request: Request) -> Response:
    """Current forecast for a city, served from cache for up to 12 hours."""
    try:
        lookup = await _service(request).get_weather(city)
    except PayloadDecodeError:
        return JSONResponse(status_code=502, content={"error": DECODE_FAILED})
    except UpstreamError as exc:
        upstream_status = exc.status_code if isinstance(exc, UpstreamStatusError) else None
        logger.info(
            "Weather lookup failed for city=%r (%s, upstream_status=%s)",
            city,
            type(exc).__name__,
            upstream_status,
        )
        return JSONResponse(status_code=502, content={"error": FETCH_FAILED})

    if lookup.cached:
        return Response(content=lookup.raw, media_type="application/json")
    return JSONResponse(content=lookup.data)
