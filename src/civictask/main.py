"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from civictask.config import get_settings
from civictask.database import close_db, init_db
from civictask.health.router import router as health_router
from civictask.lifecycle.router import router as issues_router
from civictask.middleware import setup_middleware
from civictask.notifications.router import router as notifications_router
from civictask.notifications.ws import router as ws_router
from civictask.ranking.router import router as leaderboard_router
from civictask.redis_client import close_redis, init_redis
from civictask.reports.router import router as reports_router
from civictask.scoring.router import router as scoring_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Civic Task API",
        description="Issue lifecycle, worker scoring and leaderboards for municipal field work",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(issues_router)
    app.include_router(scoring_router)
    app.include_router(leaderboard_router)
    app.include_router(notifications_router)
    app.include_router(reports_router)
    app.include_router(ws_router)

    return app


app = create_app()
