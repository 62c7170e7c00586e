from __future__ import annotations

import time
from functools import lru_cache

import structlog
from fastapi import Request
from redis.exceptions import RedisError
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from app.core.config import settings
from app.redis_client import get_redis

logger = structlog.get_logger(__name__)

_WINDOWS = {
    "sec": 1,
    "second": 1,
    "seconds": 1,
    "min": 60,
    "minute": 60,
    "minutes": 60,
    "hour": 3600,
    "hours": 3600,
    "day": 86400,
    "days": 86400,
}


@lru_cache(maxsize=8)
def parse_rate(rate: str) -> tuple[int, int]:
    """
    Parse formats like "60/minute", "120/hour" or "10/second".
    Returns: (limit, window_seconds)
    """
    raw = rate.strip().lower()
    if "/" not in raw:
        raise ValueError(f"Invalid rate format: {rate}")

    limit_str, window_str = raw.split("/", 1)
    limit = int(limit_str)
    if limit < 1:
        raise ValueError(f"Invalid rate limit: {rate}")

    window = _WINDOWS.get(window_str.strip())
    if window is None:
        raise ValueError(f"Invalid rate window: {window_str}")
    return limit, window


def _is_exempt(path: str) -> bool:
    return any(path == p or path.startswith(p.rstrip("/") + "/") for p in settings.rate_limit_exempt_paths)


def count_hit(key: str, window_seconds: int) -> int:
    """Increment the window counter; the first hit sets its expiry."""
    r = get_redis()
    count = int(r.incr(key))
    if count == 1:
        r.expire(key, window_seconds)
    return count


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window limiter per client IP and route, counted in Redis."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if not settings.rate_limit_enabled:
            return await call_next(request)

        # Don't rate-limit CORS preflight
        if request.method == "OPTIONS":
            return await call_next(request)

        path = request.url.path
        if _is_exempt(path):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"

        try:
            limit, window_seconds = parse_rate(settings.rate_limit_default)
        except ValueError:
            # Misconfigured rate => fail open
            return await call_next(request)

        now = int(time.time())
        bucket = now // window_seconds
        key = f"rides:rl:{client_ip}:{request.method}:{path}:{window_seconds}:{bucket}"

        try:
            # redis-py is blocking
            count = await run_in_threadpool(count_hit, key, window_seconds)
        except RedisError:
            # Fail open if Redis is unavailable
            logger.warning("rate_limit_unavailable", path=path)
            return await call_next(request)

        remaining = max(0, limit - count)
        reset = (bucket + 1) * window_seconds

        if count > limit:
            return JSONResponse(
                status_code=429,
                content={"detail": "rate limit exceeded"},
                headers={
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(reset),
                    "Retry-After": str(max(0, reset - now)),
                },
            )

        response = await call_next(request)
        response.headers.setdefault("X-RateLimit-Limit", str(limit))
        response.headers.setdefault("X-RateLimit-Remaining", str(remaining))
        response.headers.setdefault("X-RateLimit-Reset", str(reset))
        return response
