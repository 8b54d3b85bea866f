"""
PicHealth API — Model Prompts
==============================

What:  Prompt text for the four model tasks: invoice OCR, health-device OCR,
       health advice and health summary.
How:   OCR prompts are constants. Advice/summary prompts are built from the
       request: one section per data type that has records, followed by the
       reference tables the model grades against and the exact JSON shape
       expected back.

Every prompt ends with "JSON only". That is a request, not a guarantee; the
response still goes through the extractor.
"""

import json
from typing import List, Optional

from pichealth.schemas.insights import (
    AdviceHealthData,
    SummaryHealthData,
    UserProfile,
)

# ══════════════════════════════════════════════════════════════════════════
# OCR
# ══════════════════════════════════════════════════════════════════════════

INVOICE_OCR_PROMPT = """Analyze this receipt / invoice image carefully and extract:

1. The invoice date and time (usually near the top)
2. Every purchased item: name, quantity, unit price, line total

Instructions:
1. Read every Chinese character carefully; watch for look-alike characters
   (e.g. 氛/魚/煎, 蠟/臘) and use context to confirm the item name makes sense.
2. date: YYYY-MM-DD (e.g. 2017-07-04); time: HH:MM:SS or HH:MM (e.g. 18:06:16)
3. For each item:
   - description: full item name including size/variant
   - quantity: digits only ("20*2" means quantity 2)
   - unitPrice: digits only (same sign rule as price)
   - price: digits only, drop TX, 元, $ and similar marks; keep a leading "-"
     on discount lines (e.g. "-10")
4. Only item lines. Ignore headers (品名, 單價, 數量, 金額), store details,
   tax IDs, phone numbers, and totals / subtotals.

Return format (plain JSON, no markdown fence):
{
  "date": "2017-07-04",
  "time": "18:06:16",
  "items": [
    {"description": "商品名稱", "quantity": "2", "unitPrice": "20", "price": "40"}
  ]
}

Example line: "香氛蠟燭(海洋) 20*2 40 TX"
  → {"description": "香氛蠟燭(海洋)", "quantity": "2", "unitPrice": "20", "price": "40"}

Use null for any field you cannot find. Return only the JSON, no other text."""


HEALTH_OCR_PROMPT = """Analyze this photo of a health device, identify the device type and extract its readings.

Supported devices:
1. blood_pressure   - SYS / DIA / PULSE
2. body_measurement - height and weight
3. blood_glucose    - glucose value, mg/dL or mmol/L
4. body_fat         - body fat percentage
5. blood_oxygen     - SpO2 % and pulse

Instructions:
1. Decide the device type first.
2. Read the digits on the display carefully.
3. Extract the measurement date and time if shown.
4. Report units exactly as displayed:
   - heightUnit: "cm" | "ft" | "in"
   - weightUnit: "kg" | "lbs"
   - unit (glucose): "mg/dL" | "mmol/L"

Return format (plain JSON, no markdown fence), one of:

{"deviceType": "blood_pressure",
 "bloodPressure": {"systolic": 120, "diastolic": 80, "pulse": 75},
 "date": "2024-01-15", "time": "09:30"}

{"deviceType": "body_measurement",
 "bodyMeasurement": {"height": 170.5, "heightUnit": "cm", "weight": 65.2, "weightUnit": "kg"},
 "date": "2024-01-15", "time": "09:30"}

{"deviceType": "blood_glucose",
 "bloodGlucose": {"value": 98, "unit": "mg/dL", "measurementType": "fasting"},
 "date": "2024-01-15", "time": "07:10"}

{"deviceType": "body_fat", "bodyFat": {"percentage": 22.4}}

{"deviceType": "blood_oxygen", "bloodOxygen": {"saturation": 97, "pulse": 68}}

{"deviceType": "unknown"}

Examples:
- Display "SYS 130 DIA 85 PULSE 72"
  → {"deviceType": "blood_pressure", "bloodPressure": {"systolic": 130, "diastolic": 85, "pulse": 72}}
- Display "Height 5.7 ft Weight 154 lbs"
  → {"deviceType": "body_measurement", "bodyMeasurement": {"height": 5.7, "heightUnit": "ft", "weight": 154, "weightUnit": "lbs"}}

Important:
- Values must be JSON numbers, not strings.
- Use null for any value you cannot read.
- Return only the JSON, no other text."""


# ══════════════════════════════════════════════════════════════════════════
# Advice / Summary
# ══════════════════════════════════════════════════════════════════════════

COLOR_CODES = "normal=#4CAF50, elevated=#FFA500, high=#FF5722, critical=#F44336"

_BASE_REFERENCES = """
## Reference ranges

### Blood pressure (mmHg)
| Grade          | Systolic | Diastolic | level    |
|----------------|----------|-----------|----------|
| Normal         | < 120    | < 80      | normal   |
| Elevated       | 120-129  | < 80      | elevated |
| Stage 1        | 130-139  | 80-89     | high     |
| Stage 2        | >= 140   | >= 90     | high     |
| Crisis         | > 180    | > 120     | critical |

### Heart rate (bpm)
| Grade  | Range    | level    |
|--------|----------|----------|
| Low    | < 60     | elevated |
| Normal | 60-100   | normal   |
| High   | 100-120  | elevated |
| Very   | > 120    | high     |

### Blood glucose (mg/dL)
| Type          | Normal | Elevated | Diabetic |
|---------------|--------|----------|----------|
| Fasting       | < 100  | 100-125  | >= 126   |
| Postprandial  | < 140  | 140-199  | >= 200   |"""

_EXTRA_REFERENCES = """

### Body fat (%)
| Grade       | Male   | Female | level    |
|-------------|--------|--------|----------|
| Too low     | < 6    | < 14   | elevated |
| Athletic    | 6-13   | 14-20  | normal   |
| Fit         | 14-17  | 21-24  | normal   |
| Acceptable  | 18-24  | 25-31  | elevated |
| High        | > 25   | > 32   | high     |

### Blood oxygen (SpO2 %)
| Grade         | Range   | level    |
|---------------|---------|----------|
| Normal        | 95-100  | normal   |
| Low           | 90-94   | elevated |
| Hypoxaemia    | < 90    | high     |
| Severe        | < 85    | critical |"""

_GLUCOSE_TYPE_LABELS = {"fasting": "fasting", "postprandial": "after meal", "random": "random"}


def language_name(language: Optional[str]) -> str:
    return "Traditional Chinese (繁體中文)" if language == "zh-TW" else "English"


def _profile_block(profile: Optional[UserProfile]) -> str:
    if profile is None:
        return "Not provided"
    return json.dumps(profile.model_dump(exclude_none=True), ensure_ascii=False, indent=2)


def _fmt(value, digits: int = 0) -> str:
    return f"{value:.{digits}f}"


def _glucose_label(kind: Optional[str]) -> str:
    label = _GLUCOSE_TYPE_LABELS.get(kind or "")
    return f" ({label})" if label else ""


def describe_advice_data(data: AdviceHealthData) -> List[str]:
    """One markdown section per data type with at least one record."""
    sections = []

    bp = data.blood_pressure
    if bp and bp.record_count:
        text = f"### Blood pressure ({bp.record_count} records)\n"
        if bp.latest:
            text += f"- Latest: {bp.latest.systolic}/{bp.latest.diastolic} mmHg"
            if bp.latest.pulse:
                text += f", pulse {bp.latest.pulse} bpm"
            text += f" ({bp.latest.timestamp})\n"
        if bp.avg_systolic_7days:
            diastolic = _fmt(bp.avg_diastolic_7days) if bp.avg_diastolic_7days else "?"
            text += f"- 7-day average: {_fmt(bp.avg_systolic_7days)}/{diastolic} mmHg\n"
        if bp.min_systolic_7days and bp.max_systolic_7days:
            text += f"- 7-day systolic range: {bp.min_systolic_7days} ~ {bp.max_systolic_7days} mmHg\n"
        sections.append(text)

    hr = data.heart_rate
    if hr and hr.record_count:
        text = f"### Heart rate ({hr.record_count} records)\n"
        if hr.latest:
            text += f"- Latest: {hr.latest.value} bpm ({hr.latest.timestamp})\n"
        if hr.avg_7days:
            text += f"- 7-day average: {_fmt(hr.avg_7days)} bpm\n"
        if hr.min_7days and hr.max_7days:
            text += f"- 7-day range: {hr.min_7days} ~ {hr.max_7days} bpm\n"
        sections.append(text)

    bg = data.blood_glucose
    if bg and bg.record_count:
        text = f"### Blood glucose ({bg.record_count} records)\n"
        if bg.latest:
            text += (
                f"- Latest: {bg.latest.value} mg/dL{_glucose_label(bg.latest.type)}"
                f" ({bg.latest.timestamp})\n"
            )
        if bg.avg_7days:
            text += f"- 7-day average: {_fmt(bg.avg_7days)} mg/dL\n"
        sections.append(text)

    return sections


def describe_summary_data(data: Optional[SummaryHealthData]) -> List[str]:
    """Like describe_advice_data(), with per-record trend lines (newest first)."""
    if data is None:
        return []
    sections = []

    bp = data.blood_pressure
    if bp and bp.record_count:
        text = f"### Blood pressure ({bp.record_count} records)\n**Statistics:**\n"
        if bp.avg_systolic:
            diastolic = _fmt(bp.avg_diastolic) if bp.avg_diastolic else "?"
            text += f"- Average: {_fmt(bp.avg_systolic)}/{diastolic} mmHg\n"
        if bp.min_systolic and bp.max_systolic:
            text += f"- Systolic range: {bp.min_systolic} ~ {bp.max_systolic} mmHg\n"
        if bp.recent_records:
            text += "\n**Recent records (newest first):**\n"
            for i, r in enumerate(bp.recent_records, 1):
                text += f"{i}. {r.systolic}/{r.diastolic} mmHg"
                if r.pulse:
                    text += f", pulse {r.pulse} bpm"
                text += f" ({r.timestamp})\n"
        sections.append(text)

    hr = data.heart_rate
    if hr and hr.record_count:
        text = f"### Heart rate ({hr.record_count} records)\n**Statistics:**\n"
        if hr.avg:
            text += f"- Average: {_fmt(hr.avg)} bpm\n"
        if hr.min and hr.max:
            text += f"- Range: {hr.min} ~ {hr.max} bpm\n"
        if hr.recent_records:
            text += "\n**Recent records (newest first):**\n"
            for i, r in enumerate(hr.recent_records, 1):
                text += f"{i}. {r.value} bpm ({r.timestamp})\n"
        sections.append(text)

    bg = data.blood_glucose
    if bg and bg.record_count:
        text = f"### Blood glucose ({bg.record_count} records)\n**Statistics:**\n"
        if bg.avg:
            text += f"- Average: {_fmt(bg.avg)} mg/dL\n"
        if bg.recent_records:
            text += "\n**Recent records (newest first):**\n"
            for i, r in enumerate(bg.recent_records, 1):
                text += f"{i}. {r.value} mg/dL{_glucose_label(r.type)} ({r.timestamp})\n"
        sections.append(text)

    bf = data.body_fat
    if bf and bf.record_count:
        text = f"### Body fat ({bf.record_count} records)\n**Statistics:**\n"
        if bf.avg:
            text += f"- Average: {_fmt(bf.avg, 1)}%\n"
        if bf.min is not None and bf.max is not None:
            text += f"- Range: {_fmt(bf.min, 1)}% ~ {_fmt(bf.max, 1)}%\n"
        if bf.recent_records:
            text += "\n**Recent records (newest first):**\n"
            for i, r in enumerate(bf.recent_records, 1):
                text += f"{i}. {_fmt(r.percentage, 1)}% ({r.timestamp})\n"
        sections.append(text)

    bo = data.blood_oxygen
    if bo and bo.record_count:
        text = f"### Blood oxygen ({bo.record_count} records)\n**Statistics:**\n"
        if bo.avg:
            text += f"- Average: {_fmt(bo.avg, 1)}%\n"
        if bo.min is not None and bo.max is not None:
            text += f"- Range: {_fmt(bo.min)}% ~ {_fmt(bo.max)}%\n"
        if bo.recent_records:
            text += "\n**Recent records (newest first):**\n"
            for i, r in enumerate(bo.recent_records, 1):
                text += f"{i}. {_fmt(r.saturation)}%"
                if r.pulse:
                    text += f", pulse {_fmt(r.pulse)} bpm"
                text += f" ({r.timestamp})\n"
        sections.append(text)

    return sections


def _response_shape(body_key: str, lead_key: str, lead_hint: str) -> str:
    return f"""## Response format (strict JSON)
{{
  "status": {{
    "level": "normal|elevated|high|critical",
    "title": "Overall status title",
    "description": "Assessment covering each indicator briefly",
    "color": "#colour code"
  }},
  "{body_key}": {{
    "{lead_key}": "{lead_hint}",
    "details": ["analysis 1", "analysis 2"],
    "lifestyle": ["lifestyle tip 1", "lifestyle tip 2"],
    "dietary": ["dietary tip 1", "dietary tip 2"],
    "warnings": ["warnings, or an empty array"],
    "should_see_doctor": false
  }}
}}

Output only the JSON, no other text."""


def build_advice_prompt(
    language: str,
    profile: Optional[UserProfile],
    data: AdviceHealthData,
) -> str:
    sections = "\n".join(describe_advice_data(data))
    return f"""You are a professional health advisor AI. Give combined advice based on the health data below.

## User profile
{_profile_block(profile)}

## Health data
{sections}
{_BASE_REFERENCES}

## Requirements
1. Reply in {language_name(language)}
2. Assess all of the data provided together
3. Grade the overall status: normal, elevated (needs attention), high (high risk), critical (dangerous)
4. Give concrete, actionable advice
5. If anything is abnormal, explain it in warnings and recommend seeing a doctor
6. Colour codes: {COLOR_CODES}

{_response_shape("advice", "summary", "short summary (under 50 words)")}"""


def build_summary_prompt(
    language: str,
    profile: Optional[UserProfile],
    data: Optional[SummaryHealthData],
    custom_note: Optional[str] = None,
) -> str:
    """
    Summary prompt. With no health data and only a custom note, the model
    is asked to answer that question and nothing else.
    """
    sections = describe_summary_data(data)
    references = _BASE_REFERENCES + _EXTRA_REFERENCES
    note = (custom_note or "").strip()

    if not sections and note:
        return f"""You are a professional health consultation AI. The user asked a health question; answer it directly.

## User profile
{_profile_block(profile)}

## User question
{note}
{references}

## Principles
1. Answer only what the user asked; do not branch into other topics
2. For a simple data question (e.g. "is my height normal"), just answer it
3. Do not analyse indicators the user did not ask about
4. Only give lifestyle/dietary advice when the user asks or describes symptoms
5. For a simple question, details needs 1-2 items; lifestyle/dietary/warnings may be empty

## Requirements
1. Reply in {language_name(language)}
2. Grade: normal (general information), elevated (needs attention), high (see a doctor), critical (urgent)
3. Colour codes: {COLOR_CODES}

{_response_shape("summary", "overview", "one-sentence answer")}"""

    note_section = f"\n## Additional notes from the user\n{note}\n" if note else ""
    return f"""You are a professional health data analysis AI. Summarize the health data below.

## User profile
{_profile_block(profile)}
{note_section}
## Health data
{chr(10).join(sections)}
{references}

## Requirements
1. Reply in {language_name(language)}
2. Assess all of the data together and note trends across the records over time
3. Grade the overall status: normal, elevated (needs attention), high (high risk), critical (dangerous)
4. Give concrete, actionable lifestyle tips
5. If anything is abnormal or trending worse, explain it in warnings and suggest seeing a doctor
6. Colour codes: {COLOR_CODES}

{_response_shape("summary", "overview", "short summary (under 50 words)")}"""
