"""
Shared test fixtures for the weather proxy test suite.

Provides:
- settings: a Settings object with fake credentials (no .env read)
- upstream: in-memory stand-ins for Visual Crossing and Upstash REST,
  served through httpx.MockTransport so no network is touched
- app / client: the FastAPI app wired to those fakes + an async test client
"""

import json
import os
from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

# Ensure test env vars before any app imports
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("VISUAL_CROSSING_API_KEY", "test-vc-key")
os.environ.setdefault("UPSTASH_REDIS_URL", "https://cache.test")
os.environ.setdefault("UPSTASH_REDIS_TOKEN", "test-upstash-token")
os.environ.setdefault("RATE_LIMIT_REDIS_URL", "")
os.environ.setdefault("SENTRY_DSN", "")

from services.weather_api.config import Settings  # noqa: E402
from services.weather_api.main import create_app  # noqa: E402

CACHE_HOST = "cache.test"
PROVIDER_HOST = "weather.test"
API_KEY = "test-vc-key"
CACHE_TOKEN = "test-upstash-token"


class FakeUpstream:
    """
    Visual Crossing + Upstash REST, in memory.

    Knobs:
      provider[city] = (status, body)   — missing cities answer 404
      provider_down / cache_down        — raise httpx.ConnectError
      cache_set_status                  — status returned by /set (default 200)
    """

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.provider: dict[str, tuple[int, bytes]] = {}
        self.provider_down = False
        self.cache_down = False
        self.cache_set_status = 200
        self.provider_calls: list[httpx.Request] = []
        self.cache_gets: list[httpx.Request] = []
        self.cache_sets: list[httpx.Request] = []

    # -- helpers ---------------------------------------------------------

    def seed(self, key: str, value: Any, ttl: int = 43200) -> None:
        self.store[key] = value if isinstance(value, str) else json.dumps(value)
        self.ttls[key] = ttl

    def expire(self, key: str) -> None:
        """Simulate the store's TTL running out."""
        self.store.pop(key, None)
        self.ttls.pop(key, None)

    def respond(self, city: str, payload: Any, status: int = 200) -> None:
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        self.provider[city] = (status, body)

    # -- transport -------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == PROVIDER_HOST:
            return self._provider(request)
        if request.url.host == CACHE_HOST:
            return self._cache(request)
        return httpx.Response(500, json={"error": f"unexpected host {request.url.host}"})

    def _provider(self, request: httpx.Request) -> httpx.Response:
        self.provider_calls.append(request)
        if self.provider_down:
            raise httpx.ConnectError("provider unreachable", request=request)
        city = _last_segment(request)
        status, body = self.provider.get(city, (404, b"Bad API Request:Invalid location parameter value."))
        return httpx.Response(status, content=body)

    def _cache(self, request: httpx.Request) -> httpx.Response:
        if self.cache_down:
            raise httpx.ConnectError("cache unreachable", request=request)
        if request.headers.get("authorization") != f"Bearer {CACHE_TOKEN}":
            return httpx.Response(401, json={"error": "Unauthorized"})

        command = request.url.path.split("/")[1]
        key = _last_segment(request)
        if command == "get" and request.method == "GET":
            self.cache_gets.append(request)
            return httpx.Response(200, json={"result": self.store.get(key)})
        if command == "set" and request.method == "POST":
            self.cache_sets.append(request)
            if self.cache_set_status != 200:
                return httpx.Response(self.cache_set_status, json={"error": "write failed"})
            self.store[key] = request.content.decode()
            self.ttls[key] = int(request.url.params["EX"])
            return httpx.Response(200, json={"result": "OK"})
        return httpx.Response(400, json={"error": "unknown command"})


def _last_segment(request: httpx.Request) -> str:
    # url.path is already percent-decoded
    return request.url.path.rsplit("/", 1)[-1]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        visual_crossing_api_key=API_KEY,
        visual_crossing_base_url=f"https://{PROVIDER_HOST}/rest/services",
        upstash_redis_url=f"https://{CACHE_HOST}",
        upstash_redis_token=CACHE_TOKEN,
        rate_limit_redis_url="",
        sentry_dsn="",
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
async def http_client(upstream):
    """Outbound HTTP client routed to the in-memory upstreams."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)) as client:
        yield client


@pytest.fixture
def app(settings, http_client):
    """FastAPI app wired to the fake upstreams."""
    return create_app(settings, http=http_client)


@pytest.fixture
async def client(app):
    """Async HTTP client bound to the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
