"""Health, liveness and readiness endpoints (never rate limited)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from restapi.common.exceptions import ServiceUnavailableException
from restapi.common.responses import success_response
from restapi.config import settings
from restapi.database import get_db, ping_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
async def health_check(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    services = {"database": "ok" if await ping_db(db) else "error"}
    status = "ok" if all(v == "ok" for v in services.values()) else "degraded"
    if status != "ok":
        logger.error("Health check degraded", extra={"services": services})

    return success_response(
        {
            "status": status,
            "timestamp": _now(),
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "services": services,
        },
        "Health check completed",
        status_code=200 if status == "ok" else 503,
    )


@router.get("/live")
async def liveness_check() -> JSONResponse:
    return success_response({"status": "alive", "timestamp": _now()}, "Service is alive")


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    if not await ping_db(db):
        raise ServiceUnavailableException("Service not ready", "Database connection failed")
    return success_response({"status": "ready", "timestamp": _now()}, "Service is ready")
