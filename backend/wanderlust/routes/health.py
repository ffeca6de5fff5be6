"""
Wanderlust: Health Check Route
==============================

What:  Liveness/readiness probe for container health checks and load balancers.
How:   One `SELECT 1` through the shared engine. `healthy` (200) when it
       answers, `unhealthy` (503) when it does not.
"""

import logging
import time

from fastapi import APIRouter, Request, Response

from wanderlust import __version__
from wanderlust.context import get_context
from wanderlust.schemas.health import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    if not await get_context(request).database.ping():
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: database unreachable")

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
