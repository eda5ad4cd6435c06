"""
RecipeShare Backend — Health Check Routes
===========================================

What:  GET /health for Docker and load balancer probes, GET /api/test as a
       plain liveness ping for the dashboard.

Status levels:
    - healthy:   database reachable, TheMealDB circuit closed
    - degraded:  database reachable, TheMealDB circuit open (external
                 search is failing fast; user recipes still work)
    - unhealthy: database unreachable

The upstream check only reads the circuit breaker state; probing
TheMealDB on every health check would spend its rate limit.
"""

import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from recipeshare import __version__, database
from recipeshare.schemas.common import HealthResponse, MessageResponse
from recipeshare.services.mealdb_service import CircuitBreaker, MealDBClient, get_mealdb_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/api/test", response_model=MessageResponse, summary="Liveness ping")
async def test_endpoint() -> MessageResponse:
    return MessageResponse(message="Server is working!")


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Database connectivity and TheMealDB circuit breaker state.",
)
async def health_check(
    client: MealDBClient = Depends(get_mealdb_client),
) -> HealthResponse:
    db_status = "connected"
    upstream_status = "available"
    overall = "healthy"

    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    if client.circuit_breaker.state == CircuitBreaker.OPEN:
        upstream_status = "circuit_open"
        if overall != "unhealthy":
            overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        upstream=upstream_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
