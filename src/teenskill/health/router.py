"""Health, readiness, and version endpoints."""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from teenskill.config import get_settings
from teenskill.database import get_engine, get_session
from teenskill.db.bootstrap import ensure_schema, schema_ready
from teenskill.redis_client import get_redis, redis_enabled

logger = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe: checks the schema, the database and Redis.

    If the startup bootstrap failed, this retries it.
    """
    checks: dict[str, object] = {}

    # Schema check
    try:
        if not schema_ready():
            await ensure_schema(get_engine())
        checks["schema"] = "ok"
    except Exception as exc:
        logger.warning("schema_bootstrap_failed", error=str(exc))
        checks["schema"] = f"error: {exc}"

    # Database check
    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    # Redis check (optional dependency)
    if redis_enabled():
        try:
            redis = get_redis()
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"
    else:
        checks["redis"] = "disabled"

    all_ok = all(v in ("ok", "disabled") for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
