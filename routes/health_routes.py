"""
Health check endpoint.

GET /health checks MongoDB, Redis and event-store configuration.
Rules:
- MongoDB failure → "unhealthy" (503): click counters cannot be written.
- Redis failure or absence → "degraded" (200): dedup fails open.
- Event store without credentials → "degraded" (200): event writes fail
  per request but counters still update.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from config import AppSettings
from dependencies import get_db, get_redis, get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    db=Depends(get_db),
    redis=Depends(get_redis),
    settings: AppSettings = Depends(get_settings),
) -> JSONResponse:
    checks: dict[str, str] = {}
    overall = "healthy"

    try:
        await db.client.admin.command("ping")
        checks["mongodb"] = "ok"
    except Exception:
        checks["mongodb"] = "error"
        overall = "unhealthy"

    if redis is None:
        checks["redis"] = "not_configured"
        if overall == "healthy":
            overall = "degraded"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception:
            checks["redis"] = "error"
            if overall == "healthy":
                overall = "degraded"

    if settings.event_store.is_configured:
        checks["event_store"] = "configured"
    else:
        checks["event_store"] = "not_configured"
        if overall == "healthy":
            overall = "degraded"

    status_code = 503 if overall == "unhealthy" else 200
    return JSONResponse(
        status_code=status_code,
        content={"status": overall, "checks": checks},
    )
