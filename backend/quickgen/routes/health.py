"""
QuickGen Backend: Health Check Route
====================================

What:  Liveness and readiness for load balancers and monitoring.
How:   Runs SELECT 1 against the database and reports which vendor
       credentials are configured. Vendors are not called: a probe every
       few seconds would spend rate-limited quota.

Status:
    healthy    database reachable, every vendor configured   (200)
    degraded   database reachable, some vendor key missing   (200)
    unhealthy  database unreachable                           (503)
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from quickgen import __version__
from quickgen.config import settings
from quickgen.database import engine
from quickgen.schemas.creation import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check():
    db_status = "connected"
    detail = None
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        detail = "Database unreachable"
        logger.warning("Health check: database unreachable: %s", str(e))

    vendors = {
        name: "configured" if ok else "missing"
        for name, ok in settings.vendor_status().items()
    }

    if db_status != "connected":
        overall = "unhealthy"
    elif "missing" in vendors.values():
        overall = "degraded"
    else:
        overall = "healthy"

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        vendors=vendors,
        uptime_seconds=round(time.time() - _start_time, 2),
        detail=detail,
    )
    return JSONResponse(
        status_code=503 if overall == "unhealthy" else 200,
        content=body.model_dump(),
    )
