"""
Weather proxy FastAPI service — cached, rate-limited Visual Crossing lookups.

Entrypoint: weather-proxy
        or: uvicorn services.weather_api.main:create_app --factory --port 51000
"""

import logging
import uuid
from contextlib import asynccontextmanager

import httpx
import redis.asyncio as aioredis
from fastapi import FastAPI, Request, Response
from pydantic import ValidationError
from starlette.responses import JSONResponse

from services.weather_api.config import Settings, get_settings
from services.weather_api.middleware.rate_limit import MemoryStore, RateLimitMiddleware, RedisStore
from services.weather_api.middleware.sentry import setup_sentry
from services.weather_api.routers import weather
from services.weather_api.weather import WeatherCache, WeatherClient, WeatherService

logger = logging.getLogger(__name__)


def _build_limiter_store(settings: Settings, redis_client=None):
    if redis_client is not None:
        return RedisStore(redis_client)
    if settings.rate_limit_redis_url:
        return RedisStore(
            aioredis.from_url(
                settings.rate_limit_redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
            )
        )
    return MemoryStore()


def create_app(
    settings: Settings | None = None,
    http: httpx.AsyncClient | None = None,
    redis_client=None,
) -> FastAPI:
    """
    Build the app with every collaborator wired from one Settings object.

    `http` and `redis_client` let callers (tests, mostly) inject their own
    transports; when omitted they are created here and closed on shutdown.
    """
    settings = settings or get_settings()
    owns_http = http is None
    if http is None:
        http = httpx.AsyncClient(timeout=settings.http_timeout_s)

    limiter_store = _build_limiter_store(settings, redis_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle."""
        setup_sentry(settings)
        logger.info(
            "%s %s starting (env=%s, rate limit %d/%ds, store=%s)",
            settings.app_name,
            settings.app_version,
            settings.environment,
            settings.rate_limit_per_window,
            settings.rate_limit_window_s,
            type(limiter_store).__name__,
        )

        yield

        if owns_http:
            await http.aclose()
        if isinstance(limiter_store, RedisStore) and redis_client is None:
            await limiter_store.redis.aclose()

    app = FastAPI(
        title="Weather Proxy",
        version=settings.app_version,
        docs_url="/docs" if settings.environment == "development" else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    cache = WeatherCache(
        settings.upstash_redis_url,
        settings.upstash_redis_token,
        http=http,
        ttl_s=settings.cache_ttl_s,
    )
    provider = WeatherClient(
        settings.visual_crossing_api_key,
        http=http,
        base_url=settings.visual_crossing_base_url,
    )
    app.state.settings = settings
    app.state.http = http
    app.state.weather_service = WeatherService(provider=provider, cache=cache)

    app.include_router(weather.router)

    # -- Middleware (order matters: last added = outermost in Starlette) --

    app.add_middleware(
        RateLimitMiddleware,
        limit=settings.rate_limit_per_window,
        window_s=settings.rate_limit_window_s,
        store=limiter_store,
        trust_forwarded_for=settings.rate_limit_trust_forwarded_for,
    )

    # Request ID injection, outermost so 429s carry it too
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    # -- Exception Handlers --

    @app.exception_handler(404)
    async def not_found_handler(request: Request, exc) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": "not found"})

    @app.exception_handler(500)
    async def internal_error_handler(request: Request, exc) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "internal server error"})

    return app


def run() -> None:
    """Console entrypoint: load settings, configure logging, serve."""
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    try:
        settings = get_settings()
    except ValidationError as exc:
        missing = ", ".join(str(err["loc"][0]).upper() for err in exc.errors())
        logger.critical("Invalid configuration, refusing to start: %s", missing)
        raise SystemExit(1) from exc

    logging.getLogger().setLevel(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
