"""
PicHealth API — Domain Normalizer
==================================

What:  Maps a loosely-typed payload recovered from model output onto the
       typed record of one of four domains.
How:   Each domain has a `normalize_*` function that reads every key it
       knows about, coerces values (numbers, unit tags, strings, lists) and
       fills anything absent with null / "" / []. Unknown keys are ignored.
Who:   Called by the OCR and insight services after `extract_json()`.

Neutral variants:
    - an unknown or missing deviceType   → "unknown"
    - an unknown or missing status.level → "normal"

Domains:
    invoice         → InvoiceOCRResult
    health_device   → HealthOCRResult
    health_advice   → HealthAdvice
    health_summary  → HealthSummary
"""

import enum
import logging
import math
import re
from datetime import date as date_type
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from pichealth.core.datetime_normalizer import normalize_date, normalize_time
from pichealth.core.extractor import extract_json
from pichealth.core.validator import validate_reading
from pichealth.exceptions import ExtractionFailed
from pichealth.schemas.insights import (
    FALLBACK_COLOR,
    LEVEL_COLORS,
    AdviceBody,
    HealthAdvice,
    HealthStatus,
    HealthSummary,
    SummaryBody,
)
from pichealth.schemas.ocr import (
    BloodGlucoseReading,
    BloodOxygenReading,
    BloodPressureReading,
    BodyFatReading,
    BodyMeasurementReading,
    HealthOCRResult,
    InvoiceItem,
    InvoiceOCRResult,
    UnknownReading,
)

logger = logging.getLogger(__name__)

Number = Union[int, float]

MAX_DESCRIPTION_LENGTH = 99

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")
_MULTIPLY_RE = re.compile(r"(\d+(?:\.\d+)?)\s*[*xX×]\s*(\d+(?:\.\d+)?)")


class Domain(str, enum.Enum):
    INVOICE = "invoice"
    HEALTH_DEVICE = "health_device"
    HEALTH_ADVICE = "health_advice"
    HEALTH_SUMMARY = "health_summary"


# ══════════════════════════════════════════════════════════════════════════
# Value Coercion
# ══════════════════════════════════════════════════════════════════════════


def coerce_number(value: Any) -> Optional[Number]:
    """
    Read a number from a JSON value.

    Accepts ints, floats and numeric strings ("120", "70.5 kg", "1,200").
    Booleans, NaN/inf and text without digits give None. Whole values come
    back as int so 120.0 is reported as 120.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        match = _NUMBER_RE.search(value.replace(",", ""))
        if not match:
            return None
        number = float(match.group(0))
    else:
        return None

    if isinstance(number, float):
        if math.isnan(number) or math.isinf(number):
            return None
        if number.is_integer():
            return int(number)
    return number


def coerce_numeric_string(value: Any) -> Optional[str]:
    """
    Reduce a price/quantity cell to its number: "40 TX" → "40",
    "$1,200" → "1200", "NT$ 35.50" → "35.50", "-10" → "-10" (discount).
    No digits → None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = coerce_number(value)
        return None if number is None else str(number)
    if not isinstance(value, str):
        return None

    match = _NUMBER_RE.search(value.replace(",", ""))
    if not match:
        return None
    return match.group(0)


def coerce_quantity(value: Any) -> Optional[str]:
    """Like coerce_numeric_string(), but "20*2" (unit price × count) gives "2"."""
    if isinstance(value, str):
        match = _MULTIPLY_RE.search(value)
        if match:
            return match.group(2)
    return coerce_numeric_string(value)


def coerce_choice(value: Any, choices: Mapping[str, str]) -> Optional[str]:
    """Map a free-form tag onto a fixed enumeration (case-insensitive)."""
    if not isinstance(value, str):
        return None
    return choices.get(value.strip().lower())


def coerce_text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


def coerce_text_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if not isinstance(value, (list, tuple)):
        return []
    return [coerce_text(item) for item in value if coerce_text(item)]


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1"}
    return False


def _section(payload: Mapping[str, Any], *keys: str) -> Dict[str, Any]:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, dict):
            return value
    return {}


# ── Enumerations ──────────────────────────────────────────────────────────

HEIGHT_UNITS = {
    "cm": "cm", "centimeter": "cm", "centimeters": "cm", "公分": "cm",
    "ft": "ft", "feet": "ft", "foot": "ft",
    "in": "in", "inch": "in", "inches": "in",
}
WEIGHT_UNITS = {
    "kg": "kg", "kgs": "kg", "kilogram": "kg", "kilograms": "kg", "公斤": "kg",
    "lb": "lbs", "lbs": "lbs", "pound": "lbs", "pounds": "lbs", "磅": "lbs",
}
GLUCOSE_UNITS = {
    "mg/dl": "mg/dL", "mgdl": "mg/dL",
    "mmol/l": "mmol/L", "mmol": "mmol/L",
}
GLUCOSE_MEASUREMENT_TYPES = {
    "fasting": "fasting", "空腹": "fasting",
    "postprandial": "postprandial", "after_meal": "postprandial", "餐後": "postprandial",
    "random": "random", "隨機": "random",
}
DEVICE_TYPES = {
    "blood_pressure", "body_measurement", "blood_glucose", "body_fat", "blood_oxygen",
}

# What: Key under which the model nests each device's values
_SECTION_KEYS = {
    "blood_pressure": ("bloodPressure", "blood_pressure"),
    "body_measurement": ("bodyMeasurement", "body_measurement"),
    "blood_glucose": ("bloodGlucose", "blood_glucose"),
    "body_fat": ("bodyFat", "body_fat"),
    "blood_oxygen": ("bloodOxygen", "blood_oxygen"),
}


def normalize_device_type(value: Any) -> str:
    if not isinstance(value, str):
        return "unknown"
    key = re.sub(r"[\s\-]+", "_", value.strip().lower())
    return key if key in DEVICE_TYPES else "unknown"


# ══════════════════════════════════════════════════════════════════════════
# Health Device
# ══════════════════════════════════════════════════════════════════════════


def normalize_device_reading(payload: Mapping[str, Any]):
    """
    Build the DeviceReading variant named by payload["deviceType"].

    Values are read from the device's nested section (e.g. "bloodPressure");
    when the model flattened them onto the top level, those are used instead.
    """
    device_type = normalize_device_type(payload.get("deviceType", payload.get("device_type")))
    if device_type == "unknown":
        return UnknownReading()

    fields = _section(payload, *_SECTION_KEYS[device_type]) or dict(payload)

    if device_type == "blood_pressure":
        return BloodPressureReading(
            systolic=coerce_number(fields.get("systolic")),
            diastolic=coerce_number(fields.get("diastolic")),
            pulse=coerce_number(fields.get("pulse")),
        )
    if device_type == "body_measurement":
        return BodyMeasurementReading(
            height=coerce_number(fields.get("height")),
            height_unit=coerce_choice(fields.get("heightUnit", fields.get("height_unit")), HEIGHT_UNITS),
            weight=coerce_number(fields.get("weight")),
            weight_unit=coerce_choice(fields.get("weightUnit", fields.get("weight_unit")), WEIGHT_UNITS),
        )
    if device_type == "blood_glucose":
        return BloodGlucoseReading(
            value=coerce_number(fields.get("value", fields.get("glucose"))),
            unit=coerce_choice(fields.get("unit"), GLUCOSE_UNITS),
            measurement_type=coerce_choice(
                fields.get("measurementType", fields.get("measurement_type", fields.get("type"))),
                GLUCOSE_MEASUREMENT_TYPES,
            ),
        )
    if device_type == "body_fat":
        return BodyFatReading(
            percentage=coerce_number(fields.get("percentage", fields.get("bodyFat"))),
        )
    return BloodOxygenReading(
        saturation=coerce_number(fields.get("saturation", fields.get("spo2"))),
        pulse=coerce_number(fields.get("pulse")),
    )


def _date_and_time(payload: Mapping[str, Any], today: Optional[date_type]):
    date_text = coerce_text(payload.get("date"))
    time_text = coerce_text(payload.get("time"))
    # "2024-01-15 09:30" in the date field carries the time as well
    return normalize_date(date_text, today=today), normalize_time(time_text or date_text)


def normalize_health_device(
    payload: Mapping[str, Any],
    raw_text: str = "",
    today: Optional[date_type] = None,
) -> HealthOCRResult:
    reading = normalize_device_reading(payload)
    date, time = _date_and_time(payload, today)
    return HealthOCRResult(
        success=True,
        device_type=reading.device_type,
        reading=reading,
        date=date,
        time=time,
        raw_text=raw_text,
    )


# ══════════════════════════════════════════════════════════════════════════
# Invoice
# ══════════════════════════════════════════════════════════════════════════


def normalize_invoice_item(value: Any) -> Optional[InvoiceItem]:
    """Return the item, or None when its description is empty or too long."""
    if not isinstance(value, dict):
        return None
    description = coerce_text(value.get("description"))
    if not description or len(description) > MAX_DESCRIPTION_LENGTH:
        return None
    return InvoiceItem(
        description=description,
        quantity=coerce_quantity(value.get("quantity")),
        unit_price=coerce_numeric_string(value.get("unitPrice", value.get("unit_price"))),
        price=coerce_numeric_string(value.get("price")),
    )


def normalize_invoice(
    payload: Mapping[str, Any],
    raw_text: str = "",
    today: Optional[date_type] = None,
) -> InvoiceOCRResult:
    raw_items = payload.get("items")
    items: Sequence[Any] = raw_items if isinstance(raw_items, list) else []
    kept = [item for item in map(normalize_invoice_item, items) if item is not None]
    if len(kept) < len(items):
        logger.debug("Dropped %d invoice item(s) with invalid descriptions", len(items) - len(kept))

    date, time = _date_and_time(payload, today)
    return InvoiceOCRResult(success=True, date=date, time=time, items=kept, raw_text=raw_text)


# ══════════════════════════════════════════════════════════════════════════
# Health Advice / Summary
# ══════════════════════════════════════════════════════════════════════════


def normalize_status(value: Any) -> HealthStatus:
    data = value if isinstance(value, dict) else {}
    level = coerce_text(data.get("level")).lower()
    if level not in LEVEL_COLORS:
        level = "normal"
    return HealthStatus(
        level=level,
        title=coerce_text(data.get("title")),
        description=coerce_text(data.get("description")),
        color=coerce_text(data.get("color")) or LEVEL_COLORS[level],
    )


def _guidance(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "details": coerce_text_list(data.get("details")),
        "lifestyle": coerce_text_list(data.get("lifestyle")),
        "dietary": coerce_text_list(data.get("dietary")),
        "warnings": coerce_text_list(data.get("warnings")),
        "should_see_doctor": coerce_bool(data.get("should_see_doctor")),
    }


def normalize_health_advice(payload: Mapping[str, Any]) -> HealthAdvice:
    advice = _section(payload, "advice")
    return HealthAdvice(
        status=normalize_status(payload.get("status")),
        advice=AdviceBody(summary=coerce_text(advice.get("summary")), **_guidance(advice)),
    )


def normalize_health_summary(payload: Mapping[str, Any]) -> HealthSummary:
    summary = _section(payload, "summary")
    return HealthSummary(
        status=normalize_status(payload.get("status")),
        summary=SummaryBody(overview=coerce_text(summary.get("overview")), **_guidance(summary)),
    )


def _unreadable_status() -> HealthStatus:
    return HealthStatus(
        level="normal",
        title="無法分析",
        description="無法解析健康數據",
        color=FALLBACK_COLOR,
    )


def fallback_health_advice() -> HealthAdvice:
    """Neutral advice shown when the model output could not be read."""
    return HealthAdvice(
        status=_unreadable_status(),
        advice=AdviceBody(
            summary="無法生成建議",
            warnings=["建議諮詢醫療專業人員"],
            should_see_doctor=True,
        ),
    )


def fallback_health_summary() -> HealthSummary:
    """Neutral summary shown when the model output could not be read."""
    return HealthSummary(
        status=_unreadable_status(),
        summary=SummaryBody(
            overview="無法生成摘要",
            warnings=["如有疑慮請諮詢醫療專業人員"],
            should_see_doctor=True,
        ),
    )


# ══════════════════════════════════════════════════════════════════════════
# Dispatch
# ══════════════════════════════════════════════════════════════════════════

_NORMALIZERS: Dict[Domain, Callable[..., Any]] = {
    Domain.INVOICE: normalize_invoice,
    Domain.HEALTH_DEVICE: normalize_health_device,
    Domain.HEALTH_ADVICE: normalize_health_advice,
    Domain.HEALTH_SUMMARY: normalize_health_summary,
}


def normalize(domain: Union[Domain, str], payload: Mapping[str, Any]):
    """Normalize `payload` into the typed record for `domain`."""
    return _NORMALIZERS[Domain(domain)](payload)


# ══════════════════════════════════════════════════════════════════════════
# Raw text → validated result
# ══════════════════════════════════════════════════════════════════════════


def normalize_health_ocr(raw_text: str, today: Optional[date_type] = None) -> HealthOCRResult:
    """
    Extract, normalize and range-check a health-device OCR response.

    Never raises: unreadable output gives deviceType "unknown",
    success False and error EXTRACTION_FAILED, with rawText preserved.
    """
    try:
        payload = extract_json(raw_text)
    except ExtractionFailed as exc:
        return HealthOCRResult(
            success=False,
            raw_text=raw_text or "",
            error=exc.code,
            message=exc.message,
        )

    result = normalize_health_device(payload, raw_text=raw_text, today=today)
    reading = validate_reading(result.reading)
    return result.model_copy(update={"reading": reading})


def normalize_invoice_ocr(raw_text: str, today: Optional[date_type] = None) -> InvoiceOCRResult:
    """Extract and normalize an invoice OCR response. Never raises."""
    try:
        payload = extract_json(raw_text)
    except ExtractionFailed as exc:
        return InvoiceOCRResult(
            success=False,
            raw_text=raw_text or "",
            error=exc.code,
            message=exc.message,
        )
    return normalize_invoice(payload, raw_text=raw_text, today=today)
