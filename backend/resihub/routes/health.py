"""
ResiHub Backend — Health Check Routes
=======================================

What:  Liveness text at GET / and a dependency-aware probe at GET /api/health.
How:   The probe runs SELECT 1 on the central database. Tenant databases are
       opened on demand during login and are not probed here.
Who:   Called by Docker health checks, load balancers and uptime monitors.

Status levels:
    - healthy:   central database reachable (HTTP 200)
    - unhealthy: central database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends, Response
from fastapi.responses import PlainTextResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from resihub import __version__
from resihub.database import DatabaseRegistry, get_databases
from resihub.schemas.auth import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Track when the service started for uptime reporting
_start_time = time.time()


@router.get("/", response_class=PlainTextResponse, summary="Liveness")
async def root() -> str:
    return "Backend is running"


@router.get(
    "/api/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    response: Response,
    databases: DatabaseRegistry = Depends(get_databases),
) -> HealthResponse:
    """
    Probe the central database.

    Returns:
        HealthResponse with database status and uptime; 503 when unhealthy.
    """
    db_status = "connected"
    overall = "healthy"

    try:
        async with databases.central_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
