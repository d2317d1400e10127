"""Fixed-window rate limiting backed by Redis.

Authenticated requests are counted per bearer token so users behind one NAT
do not share a budget; anonymous requests are counted per client IP. The
limiter fails open: without Redis, or when Redis errors, requests pass.
"""

import hashlib
import time
from typing import Any

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from gatedchat.redis_client import get_redis, redis_enabled

logger = structlog.get_logger()

_EXEMPT_PATHS = frozenset({"/health", "/ready", "/version"})


def rate_limit_key(request: Request, window: int) -> str:
    """Redis counter key for the request's caller in ``window``."""
    authorization = request.headers.get("Authorization", "")
    if authorization.lower().startswith("bearer "):
        digest = hashlib.sha256(authorization[7:].encode()).hexdigest()[:32]
        subject = f"token:{digest}"
    else:
        subject = f"ip:{request.client.host if request.client else 'unknown'}"
    return f"gatedchat:ratelimit:{subject}:{window}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: Any, requests_per_window: int = 100, window_seconds: int = 60) -> None:  # noqa: ANN401
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _EXEMPT_PATHS or not redis_enabled():
            return await call_next(request)

        key = rate_limit_key(request, int(time.time()) // self.window_seconds)
        try:
            pipe = get_redis().pipeline()
            pipe.incr(key)
            pipe.expire(key, self.window_seconds + 1)
            count, _ = await pipe.execute()
        except RedisError as exc:
            logger.warning("rate_limit_unavailable", error=str(exc))
            return await call_next(request)

        limit_headers = {"X-RateLimit-Limit": str(self.requests_per_window)}
        if count > self.requests_per_window:
            logger.warning("rate_limited", key=key, count=count)
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later.", "code": "rate_limited"},
                headers={**limit_headers, "X-RateLimit-Remaining": "0", "Retry-After": str(self.window_seconds)},
            )

        response = await call_next(request)
        response.headers.update(limit_headers)
        response.headers["X-RateLimit-Remaining"] = str(max(0, self.requests_per_window - count))
        return response
