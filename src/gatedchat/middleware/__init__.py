"""Middleware registration."""

from fastapi import FastAPI

from gatedchat.config import Settings
from gatedchat.middleware.cors import setup_cors
from gatedchat.middleware.error_handler import setup_error_handlers
from gatedchat.middleware.logging import setup_logging
from gatedchat.middleware.rate_limit import RateLimitMiddleware
from gatedchat.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install logging, error handlers and the middleware stack.

    Starlette runs middleware outermost-last-added: CORS wraps everything so
    429 and error responses still carry CORS headers, and the request id is
    bound before rate limiting logs anything.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    if settings.rate_limit_requests > 0:
        app.add_middleware(
            RateLimitMiddleware,
            requests_per_window=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
