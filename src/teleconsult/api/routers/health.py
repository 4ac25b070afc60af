"""
Health check endpoints.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from ...application.ports.services.cache_service import CacheService
from ...core.config import get_settings
from ..deps import DiagnosisOrchestratorDep, get_cache_service
from ..schemas.common import ApiResponse
from ..utils.responses import ok

router = APIRouter(prefix="/health", tags=["health"])
logger = logging.getLogger("teleconsult")


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    timestamp: datetime
    version: str
    service: str


@router.get("/", response_model=ApiResponse[HealthResponse])
async def health_check(request: Request):
    """
    Health check endpoint.

    Returns the current status of the service.
    """
    settings = get_settings()
    return ok(request, data=HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        service=settings.app_name,
    ), message="OK")


@router.get("/ready", response_model=ApiResponse[dict])
async def readiness_check(
    request: Request,
    orchestrator: DiagnosisOrchestratorDep,
    cache: Annotated[CacheService, Depends(get_cache_service)],
):
    """
    Readiness check endpoint.

    Checks the database, the cache and the diagnosis service. The diagnosis
    service is reported but does not make the instance unready, since
    diagnosis requests degrade to the rule-based fallback.
    """
    checks = {}
    all_ok = True

    client = getattr(request.app.state, "mongo_client", None)
    if client is None:
        checks["database"] = "not_initialized"
        all_ok = False
    else:
        try:
            await client.admin.command("ping")
            checks["database"] = "ok"
        except Exception as e:
            checks["database"] = f"error: {str(e)[:50]}"
            all_ok = False

    try:
        checks["cache"] = "ok" if await cache.ping() else "unreachable"
    except Exception as e:
        checks["cache"] = f"error: {str(e)[:50]}"
    if checks["cache"] != "ok":
        all_ok = False

    checks["diagnosis_service"] = "ok" if await orchestrator.health_check() else "degraded"

    return ok(request, data={
        "status": "ready" if all_ok else "degraded",
        "timestamp": datetime.now(timezone.utc),
        "checks": checks,
    }, message="OK" if all_ok else "Some services unavailable")


@router.get("/live", response_model=ApiResponse[dict])
async def liveness_check(request: Request):
    """
    Liveness check endpoint.
    """
    return ok(request, data={"status": "alive", "timestamp": datetime.now(timezone.utc)}, message="OK")
