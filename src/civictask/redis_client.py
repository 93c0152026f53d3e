"""Shared Redis client for issue event push and rate limiting.

Redis is optional at runtime: when it was never initialized, callers that use
``get_redis_or_none`` skip event publishing and rate limiting instead of
failing the request.
"""

import redis.asyncio as redis

_client: redis.Redis | None = None


async def init_redis(url: str) -> None:
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
    _client = None


def get_redis() -> redis.Redis:
    """Client for callers that need Redis (readiness probe). Raises when absent."""
    if _client is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _client


def get_redis_or_none() -> redis.Redis | None:
    return _client
