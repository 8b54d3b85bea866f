"""
PicHealth API — Health Insight Route Handlers
==============================================

What:  POST /api/v1/health-advice and POST /api/v1/health-summary.
Who:   The mobile app, with its partner API key.

Both routes return 200 whenever the request itself is usable; an AI or
parsing failure shows up as `success: false` with the neutral fallback
status. The summary route also logs the request and result to
health_summary_log in the background.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from pichealth.middleware.logging import client_ip
from pichealth.routes.dependencies import (
    enforce_rate_limit,
    get_insight_service,
    get_scan_log_service,
)
from pichealth.schemas.common import ErrorResponse
from pichealth.schemas.insights import (
    HealthAdviceRequest,
    HealthAdviceResponse,
    HealthSummaryRequest,
    HealthSummaryResponse,
)
from pichealth.services.insight_service import InsightService
from pichealth.services.scan_log_service import ScanLogService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1",
    tags=["Insights"],
    dependencies=[Depends(enforce_rate_limit)],
    responses={
        400: {"description": "Missing device_id or no analyzable data", "model": ErrorResponse},
        401: {"description": "Missing or unknown API key", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
    },
)


@router.post(
    "/health-advice",
    response_model=HealthAdviceResponse,
    summary="Advice from the last 7 days of readings",
)
async def health_advice(
    body: HealthAdviceRequest,
    insights: InsightService = Depends(get_insight_service),
) -> HealthAdviceResponse:
    return await insights.advise(body)


@router.post(
    "/health-summary",
    response_model=HealthSummaryResponse,
    summary="Overall health summary, optionally answering a free-text note",
)
async def health_summary(
    body: HealthSummaryRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    insights: InsightService = Depends(get_insight_service),
    scan_log: ScanLogService = Depends(get_scan_log_service),
) -> HealthSummaryResponse:
    result = await insights.summarize(body)

    background_tasks.add_task(
        scan_log.record_health_summary,
        summary_result=result.model_dump(mode="json"),
        health_data=_dump(body.health_data),
        user_profile=_dump(body.user_profile),
        custom_note=body.custom_note,
        device_id=body.device_id,
        remaining_credits=body.remaining_credits,
        ip_address=body.ip_address or client_ip(request),
        country_code=body.country_code,
        client_info=_dump(body.client_info),
    )
    return result


def _dump(model):
    return None if model is None else model.model_dump(mode="json", exclude_none=True)
