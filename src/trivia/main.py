"""FastAPI application factory."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from trivia.config import get_settings
from trivia.database import close_db, init_db
from trivia.friends.router import router as friends_router
from trivia.health.router import router as health_router
from trivia.leagues.router import router as leagues_router
from trivia.middleware import setup_middleware
from trivia.quiz.router import router as quiz_router
from trivia.realtime.bridge import PubSubBridge
from trivia.realtime.router import router as ws_router
from trivia.redis_client import close_redis, get_redis, init_redis
from trivia.social.router import router as social_router
from trivia.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Redis pub/sub -> event hub -> websocket clients
    bridge = PubSubBridge(get_redis())
    bridge_task = asyncio.create_task(bridge.start())
    logger.info("startup_complete", environment=settings.environment, version=settings.app_version)

    yield

    await bridge.stop()
    bridge_task.cancel()
    try:
        await bridge_task
    except asyncio.CancelledError:
        pass

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Daily Trivia API",
        description="Backend API for the daily trivia app: quizzes, scoring, friends, leagues and feed",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(quiz_router)
    app.include_router(friends_router)
    app.include_router(leagues_router)
    app.include_router(social_router)
    app.include_router(ws_router)

    return app


app = create_app()
