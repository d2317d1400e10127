"""Optional Redis connection used for rate limiting and readiness.

The service runs without Redis; callers check ``redis_enabled()`` or handle
the RuntimeError from ``get_redis()``.
"""

import redis.asyncio as redis
from redis.exceptions import RedisError

_client: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Connect to Redis. An empty URL leaves Redis disabled."""
    global _client  # noqa: PLW0603
    if not url:
        _client = None
        return
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
        socket_timeout=1.0,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def redis_enabled() -> bool:
    return _client is not None


def get_redis() -> redis.Redis:
    """The shared client. Raises RuntimeError when Redis is disabled."""
    if _client is None:
        msg = "Redis is not configured"
        raise RuntimeError(msg)
    return _client


async def ping_redis() -> str:
    """Readiness status string: ``ok``, ``disabled`` or ``error: ...``."""
    if _client is None:
        return "disabled"
    try:
        await _client.ping()
    except RedisError as exc:
        return f"error: {exc}"
    return "ok"
