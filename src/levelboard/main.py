"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from levelboard.config import get_settings
from levelboard.database import close_db, init_db
from levelboard.health.router import router as health_router
from levelboard.middleware import setup_middleware
from levelboard.notifications.router import router as notifications_router
from levelboard.redis_client import close_redis, init_redis
from levelboard.shifts.router import router as shifts_router
from levelboard.submissions.router import router as submissions_router


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
        title="Levelboard Review API",
        description="Submission review queue, claims and reviewer shifts",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(submissions_router)
    app.include_router(shifts_router)
    app.include_router(notifications_router)

    return app


app = create_app()
