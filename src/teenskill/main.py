"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from teenskill.config import get_settings
from teenskill.database import close_db, get_engine, init_db
from teenskill.db.bootstrap import ensure_schema
from teenskill.health.router import router as health_router
from teenskill.messages.router import router as messages_router
from teenskill.middleware import setup_middleware
from teenskill.redis_client import close_redis, init_redis
from teenskill.safety.classifier import build_safety_screen
from teenskill.safety.router import router as safety_router
from teenskill.tasks.router import router as tasks_router
from teenskill.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)

    # Idempotent; /ready retries if this fails
    if settings.auto_bootstrap_schema:
        try:
            await ensure_schema(get_engine())
        except Exception:
            logger.warning("schema_bootstrap_failed", exc_info=True)

    if settings.redis_url:
        await init_redis(settings.redis_url)
    else:
        logger.info("rate_limiting_disabled", reason="no redis_url configured")

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="TeenSkill API",
        description="Supervised micro-task marketplace for teen freelancers",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.safety_screen = build_safety_screen(settings)

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(tasks_router)
    app.include_router(messages_router)
    app.include_router(safety_router)

    return app


app = create_app()
