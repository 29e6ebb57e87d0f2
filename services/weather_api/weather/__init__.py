"""
Weather service package.

Visual Crossing integration with an Upstash Redis (REST) cache-aside layer.
The city name is the cache key; entries live for 12 hours.
"""

from services.weather_api.weather.cache import WeatherCache
from services.weather_api.weather.errors import (
    PayloadDecodeError,
    UpstreamError,
    UpstreamStatusError,
    UpstreamTransportError,
)
from services.weather_api.weather.provider import WeatherClient
from services.weather_api.weather.service import WeatherLookup, WeatherService

__all__ = [
    "WeatherCache",
    "WeatherClient",
    "WeatherLookup",
    "WeatherService",
    "UpstreamError",
    "UpstreamTransportError",
    "UpstreamStatusError",
    "PayloadDecodeError",
]
