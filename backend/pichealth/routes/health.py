"""
PicHealth API — Health Check Route
===================================

What:  GET /health for Docker health checks and load balancer probes.
How:   Probes the log database (SELECT 1) and Gemini (circuit state, then
       list_models) and reports an aggregate status.

Status levels:
    - healthy:   database and Gemini reachable
    - degraded:  Gemini unavailable or its circuit is open; OCR and insight
                 calls will return `success: false` until it recovers
    - unhealthy: log database unreachable

The database only backs the best-effort scan log, so "unhealthy" still
answers 200: the OCR routes keep working without it.
"""

import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from pichealth import __version__
from pichealth.database import engine
from pichealth.routes.dependencies import get_llm_service
from pichealth.schemas.common import HealthResponse
from pichealth.services.llm_base import LLMService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(llm: LLMService = Depends(get_llm_service)) -> HealthResponse:
    db_status = "connected"
    gemini_status = "available"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", e)

    breaker = getattr(llm, "circuit_breaker", None)
    if breaker is not None and breaker.state == "open":
        gemini_status = "circuit_open"
    elif not await llm.health_check():
        gemini_status = "unavailable"
    if gemini_status != "available" and overall == "healthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        gemini=gemini_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
