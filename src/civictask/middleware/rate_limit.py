"""Redis fixed-window rate limiting middleware."""

import time
from typing import Any

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from civictask.redis_client import get_redis_or_none

logger = structlog.get_logger()

_EXEMPT_PATHS = frozenset({"/health", "/ready", "/version"})


def rate_key(client: str, window: int) -> str:
    return f"ratelimit:{client}:{window}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Limit requests per client IP and window.

    Requests pass through unlimited when Redis is not initialized or fails.
    """

    def __init__(self, app: Any, requests_per_window: int = 100, window_seconds: int = 60) -> None:  # noqa: ANN401
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds

    async def _count(self, client: str) -> int | None:
        redis = get_redis_or_none()
        if redis is None:
            return None
        key = rate_key(client, int(time.time()) // self.window_seconds)
        try:
            pipe = redis.pipeline()
            pipe.incr(key)
            pipe.expire(key, self.window_seconds + 1)
            results: list[Any] = await pipe.execute()
        except RedisError:
            logger.warning("rate_limit_unavailable", client=client, exc_info=True)
            return None
        return int(results[0])

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        client = request.client.host if request.client else "unknown"
        count = await self._count(client)
        if count is None:
            return await call_next(request)

        limit_headers = {"X-RateLimit-Limit": str(self.requests_per_window)}
        if count > self.requests_per_window:
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later.", "code": "rate_limited"},
                headers={**limit_headers, "Retry-After": str(self.window_seconds), "X-RateLimit-Remaining": "0"},
            )

        response = await call_next(request)
        response.headers.update(limit_headers)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self.requests_per_window - count))
        return response
