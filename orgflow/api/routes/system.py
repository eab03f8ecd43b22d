"""System health endpoints.

Endpoints:
- /health - Liveness probe (no dependency checks)
- /ready  - Readiness probe (checks the database)
"""

import logging

from fastapi import APIRouter, HTTPException
from sqlalchemy import text

from orgflow.api.schemas import HealthResponse, HealthStatus

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse, summary="Health Check (Liveness)")
async def health_check() -> HealthResponse:
    """Return healthy whenever the process is serving requests."""
    return HealthResponse(status=HealthStatus.HEALTHY)


@router.get("/ready", response_model=HealthResponse, summary="Readiness Probe")
async def readiness_check() -> HealthResponse:
    """Return healthy once the database answers, 503 otherwise."""
    from orgflow.storage import get_session

    try:
        async with get_session() as session:
            await session.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Readiness check failed: database unavailable", exc_info=True)
        raise HTTPException(status_code=503, detail="Not ready: database unavailable") from None

    return HealthResponse(status=HealthStatus.HEALTHY)
