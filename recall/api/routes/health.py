"""
Health check endpoints.

- GET /health        liveness: the process is up (no dependency checks)
- GET /health/ready  readiness: database and vector index are reachable
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from recall.core.auth import get_services
from recall.services.container import ServiceContainer

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check() -> JSONResponse:
    """
    Liveness probe.

    Example response:
        {"status": "OK", "ts": "2026-01-05T10:12:00.000Z"}
    """
    ts = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return JSONResponse(content={"status": "OK", "ts": ts})


@router.get("/ready")
async def readiness_check(services: ServiceContainer = Depends(get_services)) -> JSONResponse:
    """
    Readiness probe for monitoring.
    Includes database and vector index connectivity checks.
    """
    checks = await services.check_health()
    healthy = all(checks.values())

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "ready" if healthy else "unavailable",
            "database": "connected" if checks["database"] else "disconnected",
            "vectorIndex": "connected" if checks["vector_index"] else "disconnected",
        },
    )
