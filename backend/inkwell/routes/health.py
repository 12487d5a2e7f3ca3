"""
Inkwell Backend — Health Check Route
======================================

What:  GET /health for container health checks and load balancers.
How:   SELECT 1 against the database; content generation status comes from
       the generator's configuration and circuit breaker (no network call).

Status levels:
    - healthy:   database up, AI generation available
    - degraded:  database up, AI not configured or circuit open (HTTP 200;
                 everything except /api/posts/generate still works)
    - unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from inkwell import __version__
from inkwell.database import engine
from inkwell.schemas.common import HealthResponse
from inkwell.services.gemini_service import gemini_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    ai_status = gemini_service.status
    if ai_status != "available" and overall == "healthy":
        overall = "degraded"

    if overall == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        ai_service=ai_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
