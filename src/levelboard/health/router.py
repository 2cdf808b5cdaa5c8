"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from levelboard.config import get_settings
from levelboard.database import get_session
from levelboard.db.models import ListVariant
from levelboard.redis_client import get_redis
from levelboard.submissions.gate_service import is_enabled

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe.

    The database check reads each variant's submissions gate, so it fails if
    migrations have not run. Redis only carries pushes and the optional queue
    cache, so losing it reports ``degraded`` rather than failing.
    """
    checks: dict[str, object] = {}
    gates: dict[str, bool] = {}

    try:
        for variant in ListVariant:
            gates[variant.value] = await is_enabled(db, variant)
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    try:
        await get_redis().ping()
        checks["redis"] = "ok"
    except Exception as exc:
        checks["redis"] = f"error: {exc}"

    all_ok = all(v == "ok" for v in checks.values())
    return {
        "status": "ready" if all_ok else "degraded",
        "checks": checks,
        "submissions_enabled": gates,
    }


@router.get("/version")
async def version() -> dict[str, object]:
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
        "list_variants": [variant.value for variant in ListVariant],
    }
