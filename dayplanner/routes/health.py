"""
Day Planner Backend — Health Check Route
=========================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Checks the database, the session cache and the CMS.

Status levels:
    - healthy:   all dependencies operational (HTTP 200)
    - degraded:  CMS down or circuit open; auth still works (HTTP 200)
    - unhealthy: database or session cache down (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from dayplanner import __version__
from dayplanner.schemas.user import HealthResponse
from dayplanner.services.cms_client import CircuitBreaker, sanity_client
from dayplanner.services.session_cache import session_cache

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
    cache_status = "connected"
    cms_status = "available"
    overall = "healthy"

    # ── Database ──────────────────────────────────────────────────────────
    try:
        from dayplanner.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    # ── Session cache ─────────────────────────────────────────────────────
    if not await session_cache.ping():
        cache_status = "disconnected"
        overall = "unhealthy"

    # ── CMS ───────────────────────────────────────────────────────────────
    if sanity_client.circuit_breaker.state == CircuitBreaker.OPEN:
        cms_status = "circuit_open"
    elif not await sanity_client.health_check():
        cms_status = "unavailable"
    if cms_status != "available" and overall == "healthy":
        overall = "degraded"

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        cache=cache_status,
        cms=cms_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
