"""
Fixed-window rate limiter.

Default quota: 10 requests per 60-second window per client IP. The IP is the
remote address; X-Forwarded-For is only honoured when
RATE_LIMIT_TRUST_FORWARDED_FOR is on.

Counters live in-process by default. With RATE_LIMIT_REDIS_URL set they live
in Redis (INCR + EXPIRE on a per-window key) so every worker shares one quota.
A Redis outage fails open: the request is let through and a warning logged.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Protocol

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)


def _get_client_key(request: Request, trust_forwarded_for: bool = False) -> str:
    """Extract the client identifier.

    The remote address, unless the service sits behind a proxy that sets
    X-Forwarded-For; only then does the first hop win.
    """
    client_ip = request.client.host if request.client else "unknown"
    forwarded = request.headers.get("x-forwarded-for") if trust_forwarded_for else None
    if forwarded:
        client_ip = forwarded.split(",")[0].strip()
    return f"ip:{client_ip}"


def _window_bounds(now: float, window_s: int) -> tuple[int, int]:
    """Return (window_index, reset_epoch_seconds) for a timestamp."""
    index = int(now // window_s)
    return index, (index + 1) * window_s


class CounterStore(Protocol):
    async def incr(self, key: str, window_index: int, window_s: int) -> int:
        """Count one hit for key in the given window; return the new total."""
        ...


class MemoryStore:
    """Per-process counters. Only the current window per key is kept."""

    def __init__(self) -> None:
        self._counters: dict[str, tuple[int, int]] = {}
        self._lock = asyncio.Lock()

    async def incr(self, key: str, window_index: int, window_s: int) -> int:
        async with self._lock:
            index, count = self._counters.get(key, (window_index, 0))
            if index != window_index:
                count = 0
            count += 1
            self._counters[key] = (window_index, count)
            if len(self._counters) > 10_000:
                self._prune(window_index)
            return count

    def _prune(self, window_index: int) -> None:
        stale = [k for k, (idx, _) in self._counters.items() if idx != window_index]
        for key in stale:
            del self._counters[key]


class RedisStore:
    """Shared counters in Redis, one key per client per window."""

    def __init__(self, redis_client) -> None:
        self.redis = redis_client

    async def incr(self, key: str, window_index: int, window_s: int) -> int:
        window_key = f"ratelimit:{key}:{window_index}"
        pipe = self.redis.pipeline()
        pipe.incr(window_key)
        # Keep the key a little past the window so late INCRs never resurrect it
        pipe.expire(window_key, window_s * 2)
        results = await pipe.execute()
        return int(results[0])


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects requests over quota with 429 before they reach any route."""

    def __init__(
        self,
        app,
        limit: int = 10,
        window_s: int = 60,
        store: CounterStore | None = None,
        trust_forwarded_for: bool = False,
    ):
        super().__init__(app)
        self.limit = limit
        self.trust_forwarded_for = trust_forwarded_for
        self.window_s = window_s
        self.store = store if store is not None else MemoryStore()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        client_key = _get_client_key(request, self.trust_forwarded_for)
        now = time.time()
        window_index, reset_at = _window_bounds(now, self.window_s)

        try:
            current_count = await self.store.incr(client_key, window_index, self.window_s)
        except Exception:
            logger.warning("Rate limit store unavailable; letting %s through", client_key, exc_info=True)
            return await call_next(request)

        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(max(0, self.limit - current_count)),
            "X-RateLimit-Reset": str(reset_at),
        }

        if current_count > self.limit:
            headers["Retry-After"] = str(max(1, int(reset_at - now)))
            logger.info("Rate limited %s (%d/%d)", client_key, current_count, self.limit)
            return JSONResponse(
                status_code=429,
                content={"error": "rate limit exceeded"},
                headers=headers,
            )

        response = await call_next(request)
        for key, value in headers.items():
            response.headers[key] = value
        return response
