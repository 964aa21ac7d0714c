"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from lifescore.config import get_settings
from lifescore.database import close_db, create_schema, init_db
from lifescore.games.router import router as games_router
from lifescore.groups.router import router as groups_router
from lifescore.health.router import router as health_router
from lifescore.middleware import setup_middleware
from lifescore.redis_client import close_redis, init_redis
from lifescore.scores.router import router as scores_router
from lifescore.social.connections_router import router as connections_router
from lifescore.social.router import router as social_router
from lifescore.users.router import router as users_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.auto_create_schema:
        await create_schema()
    await init_redis(settings.redis_url)
    logger.info("LifeScore API started (environment=%s)", settings.environment)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="LifeScore API",
        description="Backend API for LifeScore: daily scores shared with groups",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(groups_router)
    app.include_router(scores_router)
    app.include_router(social_router)
    app.include_router(connections_router)
    app.include_router(games_router)

    return app


app = create_app()
