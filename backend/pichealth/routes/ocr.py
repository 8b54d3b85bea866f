"""
PicHealth API — OCR Route Handlers
===================================

What:  Invoice and health-device OCR over base64 images.
Who:   /api/ocr-*     the first-party web pages (same origin, no key)
       /api/v1/ocr-*  partner apps (x-api-key + per-key rate limit)

Request Flow:
    1. Decode + validate the image (400 MISSING_IMAGE / INVALID_IMAGE / ...)
    2. OCRService: Gemini → extractor → normalizer → validator
    3. Return the typed result (200, `success` reflects AI / parse outcome)
    4. /api/v1/ocr-health only: upload the photo and log the scan in the
       background; failures there are logged, never returned

A 400 body keeps the endpoint's empty shape (`items: []` or
`deviceType: "unknown"`, plus `rawText: ""`) so clients can render it as-is.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request

from pichealth.middleware.logging import client_ip
from pichealth.routes.dependencies import (
    enforce_rate_limit,
    get_image_store,
    get_ocr_service,
    get_scan_log_service,
)
from pichealth.schemas.common import ErrorResponse
from pichealth.schemas.ocr import (
    HealthOCRRequest,
    HealthOCRResult,
    InvoiceOCRResult,
    OCRRequest,
)
from pichealth.services.image_service import decode_image
from pichealth.services.ocr_service import OCRService
from pichealth.services.scan_log_service import ScanLogService
from pichealth.services.storage_service import ImageStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["OCR"])

INVOICE_ERROR_SHAPE = {"items": [], "rawText": ""}
HEALTH_ERROR_SHAPE = {"deviceType": "unknown", "rawText": ""}

_COMMON_RESPONSES = {
    400: {"description": "Missing, undecodable or oversized image", "model": ErrorResponse},
}
_GATED_RESPONSES = {
    **_COMMON_RESPONSES,
    401: {"description": "Missing or unknown API key", "model": ErrorResponse},
    429: {"description": "Rate limit exceeded", "model": ErrorResponse},
}


# ── First-party (no key) ──────────────────────────────────────────────────

@router.post(
    "/ocr-ai",
    response_model=InvoiceOCRResult,
    responses=_COMMON_RESPONSES,
    summary="Read a receipt or invoice",
)
async def ocr_invoice(
    body: OCRRequest,
    ocr: OCRService = Depends(get_ocr_service),
) -> InvoiceOCRResult:
    image = decode_image(body.image, payload=INVOICE_ERROR_SHAPE)
    return await ocr.read_invoice(image)


@router.post(
    "/ocr-health",
    response_model=HealthOCRResult,
    responses=_COMMON_RESPONSES,
    summary="Read a health-device display",
)
async def ocr_health(
    body: OCRRequest,
    ocr: OCRService = Depends(get_ocr_service),
) -> HealthOCRResult:
    image = decode_image(body.image, payload=HEALTH_ERROR_SHAPE)
    return await ocr.read_health_device(image)


# ── Partner API (x-api-key + rate limit) ──────────────────────────────────

@router.post(
    "/v1/ocr-ai",
    response_model=InvoiceOCRResult,
    responses=_GATED_RESPONSES,
    dependencies=[Depends(enforce_rate_limit)],
    summary="Read a receipt or invoice (partner API)",
)
async def ocr_invoice_v1(
    body: OCRRequest,
    ocr: OCRService = Depends(get_ocr_service),
) -> InvoiceOCRResult:
    image = decode_image(body.image, payload=INVOICE_ERROR_SHAPE)
    return await ocr.read_invoice(image)


@router.post(
    "/v1/ocr-health",
    response_model=HealthOCRResult,
    responses=_GATED_RESPONSES,
    dependencies=[Depends(enforce_rate_limit)],
    summary="Read a health-device display (partner API)",
    description=(
        "Same result as /api/ocr-health. The photo is also uploaded to the "
        "scan bucket and the result logged to health_scan; neither affects "
        "the response."
    ),
)
async def ocr_health_v1(
    body: HealthOCRRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    ocr: OCRService = Depends(get_ocr_service),
    store: ImageStore = Depends(get_image_store),
    scan_log: ScanLogService = Depends(get_scan_log_service),
) -> HealthOCRResult:
    image = decode_image(body.image, payload=HEALTH_ERROR_SHAPE)
    result = await ocr.read_health_device(image)

    # Runs after the response is sent
    background_tasks.add_task(
        scan_log.record_health_scan,
        store=store,
        image=image,
        ocr_result=result.model_dump(mode="json", by_alias=True),
        country_code=body.country_code,
        device_type=body.device_type or result.device_type,
        add_from=body.add_from,
        ip_address=body.ip_address or client_ip(request),
    )
    return result
