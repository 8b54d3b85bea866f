"""
PicHealth API — OCR Service (Orchestrator)
===========================================

What:  Runs one OCR request end to end: prompt + image → model → extractor
       → normalizer → validator → typed result.
Who:   Called by the internal (/api/ocr-*) and external (/api/v1/ocr-*) routes.
When:  After the image has been decoded and validated.

Failure policy:
    AI failures (LLMServiceError, CircuitBreakerOpenError) are caught here and
    turned into the domain's empty record with `success: false` and
    `error: "AI_ERROR"`. Unparsable model output gives the same empty record
    with `error: "EXTRACTION_FAILED"` and the raw text preserved. Neither
    reaches the client as a 5xx.
"""

import logging
from datetime import date
from typing import Optional

from pichealth.config import settings
from pichealth.core.normalizer import normalize_health_ocr, normalize_invoice_ocr
from pichealth.exceptions import LLMServiceError
from pichealth.schemas.ocr import HealthOCRResult, InvoiceOCRResult
from pichealth.services.image_service import DecodedImage
from pichealth.services.llm_base import LLMService
from pichealth.services.prompts import HEALTH_OCR_PROMPT, INVOICE_OCR_PROMPT

logger = logging.getLogger(__name__)


class OCRService:
    """
    Invoice and health-device OCR on top of an LLMService.

    Args:
        llm: Model client (GeminiService in production, a fake in tests).
        temperature: Sampling temperature for OCR calls.
    """

    def __init__(self, llm: LLMService, temperature: Optional[float] = None):
        self.llm = llm
        self.temperature = settings.ocr_temperature if temperature is None else temperature

    async def read_invoice(self, image: DecodedImage, today: Optional[date] = None) -> InvoiceOCRResult:
        try:
            text = await self.llm.generate(
                INVOICE_OCR_PROMPT,
                image=image.as_model_input(),
                temperature=self.temperature,
            )
        except LLMServiceError as e:
            logger.warning("Invoice OCR degraded: %s", e.message)
            return InvoiceOCRResult(success=False, error=e.code, message=e.message)

        result = normalize_invoice_ocr(text, today=today)
        logger.info("Invoice OCR: success=%s, %d item(s)", result.success, len(result.items))
        return result

    async def read_health_device(
        self, image: DecodedImage, today: Optional[date] = None
    ) -> HealthOCRResult:
        try:
            text = await self.llm.generate(
                HEALTH_OCR_PROMPT,
                image=image.as_model_input(),
                temperature=self.temperature,
            )
        except LLMServiceError as e:
            logger.warning("Health OCR degraded: %s", e.message)
            return HealthOCRResult(success=False, error=e.code, message=e.message)

        result = normalize_health_ocr(text, today=today)
        logger.info("Health OCR: success=%s, deviceType=%s", result.success, result.device_type)
        return result
