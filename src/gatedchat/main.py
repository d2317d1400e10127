"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from gatedchat.access.router import router as access_router
from gatedchat.blocking.router import router as blocking_router
from gatedchat.config import get_settings
from gatedchat.database import close_db, create_schema, init_db
from gatedchat.health.router import router as health_router
from gatedchat.messaging.router import router as messaging_router
from gatedchat.middleware import setup_middleware
from gatedchat.redis_client import close_redis, init_redis
from gatedchat.users.router import router as users_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.auto_create_schema:
        await create_schema()
    await init_redis(settings.redis_url)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Gated Chat API",
        description="Access-gated direct messaging",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(access_router)
    app.include_router(blocking_router)
    app.include_router(messaging_router)

    return app


app = create_app()
