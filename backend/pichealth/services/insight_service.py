"""
PicHealth API — Health Insight Service
=======================================

What:  Generates health advice (7-day aggregates) and health summaries
       (overall aggregates, recent records, optional free-text question).
How:   validate request → build prompt → model → extractor → normalizer →
       response with analyzed_types and a disclaimer in the request language.
Who:   Called by the /api/v1/health-advice and /api/v1/health-summary routes.

Failure policy:
    - Bad requests raise ValidationError (400): MISSING_DEVICE_ID,
      MISSING_HEALTH_DATA (advice only), NO_ANALYZABLE_DATA.
    - AI failures return `success: false`, `error: "AI_ERROR"` with the
      neutral fallback status and the disclaimer.
    - Unreadable model output returns the same fallback with
      `error: "EXTRACTION_FAILED"`.
"""

import logging
from typing import List, Optional

from pichealth.config import settings
from pichealth.core.extractor import extract_json
from pichealth.core.normalizer import (
    fallback_health_advice,
    fallback_health_summary,
    normalize_health_advice,
    normalize_health_summary,
)
from pichealth.exceptions import ExtractionFailed, LLMServiceError, ValidationError
from pichealth.schemas.insights import (
    AdviceHealthData,
    HealthAdviceRequest,
    HealthAdviceResponse,
    HealthSummaryRequest,
    HealthSummaryResponse,
    SummaryHealthData,
)
from pichealth.services.llm_base import LLMService
from pichealth.services.prompts import build_advice_prompt, build_summary_prompt

logger = logging.getLogger(__name__)

ADVICE_DISCLAIMERS = {
    "zh-TW": "此建議由 AI 生成，僅供參考，不能替代專業醫療診斷。如有健康疑慮，請諮詢醫生。",
    "en": (
        "This advice is AI-generated for reference only and cannot replace "
        "professional medical diagnosis. Please consult a doctor if you have health concerns."
    ),
}
SUMMARY_DISCLAIMERS = {
    "zh-TW": "此摘要由 AI 生成，僅供參考，不能替代專業醫療診斷。如有健康疑慮，請諮詢醫生。",
    "en": (
        "This summary is AI-generated for reference only and cannot replace "
        "professional medical diagnosis. Please consult a doctor if you have health concerns."
    ),
}
ADVICE_ERROR_MESSAGES = {"zh-TW": "無法生成健康建議", "en": "Unable to generate health advice"}
SUMMARY_ERROR_MESSAGES = {"zh-TW": "無法生成健康摘要", "en": "Unable to generate health summary"}


def _localized(table: dict, language: str) -> str:
    return table["zh-TW"] if language == "zh-TW" else table["en"]


def advice_analyzed_types(data: Optional[AdviceHealthData]) -> List[str]:
    if data is None:
        return []
    types = []
    for name in ("blood_pressure", "heart_rate", "blood_glucose"):
        section = getattr(data, name)
        if section is not None and section.record_count > 0:
            types.append(name)
    return types


def summary_analyzed_types(
    data: Optional[SummaryHealthData], custom_note: Optional[str] = None
) -> List[str]:
    """Data types with records; "custom_note" only when there are none."""
    types = []
    if data is not None:
        for name in ("blood_pressure", "heart_rate", "blood_glucose", "body_fat", "blood_oxygen"):
            section = getattr(data, name)
            if section is not None and section.record_count > 0:
                types.append(name)
    if not types and custom_note and custom_note.strip():
        types.append("custom_note")
    return types


def _require_device_id(device_id: Optional[str]) -> None:
    if not device_id or not device_id.strip():
        raise ValidationError(
            message="device_id is required",
            code="MISSING_DEVICE_ID",
            field="device_id",
        )


class InsightService:
    """Health advice and summary generation on top of an LLMService."""

    def __init__(self, llm: LLMService, temperature: Optional[float] = None):
        self.llm = llm
        self.temperature = settings.insight_temperature if temperature is None else temperature

    # ── Validation ────────────────────────────────────────────────────────

    @staticmethod
    def validate_advice_request(request: HealthAdviceRequest) -> List[str]:
        """Raise ValidationError for an unusable request; return analyzed types."""
        _require_device_id(request.device_id)
        if request.health_data is None:
            raise ValidationError(
                message="health_data is required",
                code="MISSING_HEALTH_DATA",
                field="health_data",
            )
        types = advice_analyzed_types(request.health_data)
        if not types:
            raise ValidationError(
                message="No blood pressure, heart rate, or blood glucose data provided",
                code="NO_ANALYZABLE_DATA",
                field="health_data",
            )
        return types

    @staticmethod
    def validate_summary_request(request: HealthSummaryRequest) -> List[str]:
        _require_device_id(request.device_id)
        types = summary_analyzed_types(request.health_data, request.custom_note)
        if not types:
            raise ValidationError(
                message="No health data or custom note provided",
                code="NO_ANALYZABLE_DATA",
                field="health_data",
            )
        return types

    # ── Generation ────────────────────────────────────────────────────────

    async def advise(self, request: HealthAdviceRequest) -> HealthAdviceResponse:
        analyzed_types = self.validate_advice_request(request)
        language = request.language or settings.default_language
        disclaimer = _localized(ADVICE_DISCLAIMERS, language)

        prompt = build_advice_prompt(language, request.user_profile, request.health_data)
        try:
            text = await self.llm.generate(prompt, temperature=self.temperature)
        except LLMServiceError as e:
            logger.warning("Health advice degraded: %s", e.message)
            return HealthAdviceResponse(
                success=False,
                error=e.code,
                message=_localized(ADVICE_ERROR_MESSAGES, language),
                analyzed_types=analyzed_types,
                disclaimer=disclaimer,
                **fallback_health_advice().model_dump(),
            )

        try:
            advice = normalize_health_advice(extract_json(text))
        except ExtractionFailed as e:
            logger.warning("Health advice response unreadable (%d chars)", len(text))
            return HealthAdviceResponse(
                success=False,
                error=e.code,
                message=_localized(ADVICE_ERROR_MESSAGES, language),
                analyzed_types=analyzed_types,
                disclaimer=disclaimer,
                **fallback_health_advice().model_dump(),
            )

        logger.info(
            "Health advice generated (%s), level=%s",
            "+".join(analyzed_types),
            advice.status.level,
        )
        return HealthAdviceResponse(
            success=True,
            analyzed_types=analyzed_types,
            disclaimer=disclaimer,
            **advice.model_dump(),
        )

    async def summarize(self, request: HealthSummaryRequest) -> HealthSummaryResponse:
        analyzed_types = self.validate_summary_request(request)
        language = request.language or settings.default_language
        disclaimer = _localized(SUMMARY_DISCLAIMERS, language)

        prompt = build_summary_prompt(
            language, request.user_profile, request.health_data, request.custom_note
        )
        try:
            text = await self.llm.generate(prompt, temperature=self.temperature)
        except LLMServiceError as e:
            logger.warning("Health summary degraded: %s", e.message)
            return HealthSummaryResponse(
                success=False,
                error=e.code,
                message=_localized(SUMMARY_ERROR_MESSAGES, language),
                analyzed_types=analyzed_types,
                disclaimer=disclaimer,
                **fallback_health_summary().model_dump(),
            )

        try:
            summary = normalize_health_summary(extract_json(text))
        except ExtractionFailed as e:
            logger.warning("Health summary response unreadable (%d chars)", len(text))
            return HealthSummaryResponse(
                success=False,
                error=e.code,
                message=_localized(SUMMARY_ERROR_MESSAGES, language),
                analyzed_types=analyzed_types,
                disclaimer=disclaimer,
                **fallback_health_summary().model_dump(),
            )

        logger.info(
            "Health summary generated (%s), level=%s",
            "+".join(analyzed_types),
            summary.status.level,
        )
        return HealthSummaryResponse(
            success=True,
            analyzed_types=analyzed_types,
            disclaimer=disclaimer,
            **summary.model_dump(),
        )
