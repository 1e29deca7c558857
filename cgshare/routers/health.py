# cgshare/routers/health.py
# Health check endpoints for monitoring and load balancers
# Provides liveness and readiness probes

import time
import logging
from typing import Dict, Any
from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from cgshare.db.base import get_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


class HealthStatus(BaseModel):
    """Health check response model."""
    status: str  # "healthy", "unhealthy"
    timestamp: float
    version: str = "1.0.0"
    checks: Dict[str, Dict[str, Any]] = {}


class ComponentHealth(BaseModel):
    """Individual component health."""
    status: str
    latency_ms: float = 0.0
    message: str = ""


async def check_database_health() -> ComponentHealth:
    """Run a trivial query against the entry store."""
    start = time.time()

    try:
        async with get_session() as session:
            result = await session.scalar(text("SELECT 1"))
        if result != 1:
            return ComponentHealth(
                status="unhealthy",
                latency_ms=(time.time() - start) * 1000,
                message="Database query returned unexpected result"
            )
        return ComponentHealth(
            status="healthy",
            latency_ms=(time.time() - start) * 1000,
        )

    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database health check failed: {e}")
        return ComponentHealth(
            status="unhealthy",
            latency_ms=(time.time() - start) * 1000,
            message=f"Database error: {type(e).__name__}"
        )


@router.get("/health", response_model=HealthStatus)
async def health_check(response: Response):
    """
    Full health check endpoint.
    Returns status of all components.
    """
    db_health = await check_database_health()
    checks = {
        "database": {
            "status": db_health.status,
            "latency_ms": round(db_health.latency_ms, 2),
            "message": db_health.message
        }
    }

    overall_status = "healthy"
    if db_health.status == "unhealthy":
        overall_status = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthStatus(
        status=overall_status,
        timestamp=time.time(),
        checks=checks
    )


@router.get("/health/live")
async def liveness_probe():
    """
    Liveness probe.
    Returns 200 if the application is running.
    Does NOT check external dependencies.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_probe(response: Response):
    """
    Readiness probe.
    Returns 200 only if the entry store answers.
    """
    db_health = await check_database_health()

    if db_health.status == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {
            "status": "not_ready",
            "reason": db_health.message
        }

    return {"status": "ready"}
