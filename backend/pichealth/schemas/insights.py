"""
PicHealth API — Health Advice / Summary Schemas
================================================

What:  Request and response models for /api/v1/health-advice and
       /api/v1/health-summary.
How:   Keys are snake_case on the wire (the apps already send them that way).
       Request models ignore unknown keys and keep every field optional, so
       a missing `device_id` or `health_data` is reported with its own error
       code instead of a generic schema error.

Advice works on 7-day aggregates (latest + avg/min/max); summary works on
overall aggregates plus the most recent records, adds body fat and blood
oxygen, and accepts a free-text `custom_note`.
"""

from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

Number = Union[int, float]

StatusLevel = Literal["normal", "elevated", "high", "critical"]

# What: Display colour for each status level
LEVEL_COLORS: Dict[str, str] = {
    "normal": "#4CAF50",
    "elevated": "#FFA500",
    "high": "#FF5722",
    "critical": "#F44336",
}
FALLBACK_COLOR = "#9E9E9E"


class _Lenient(BaseModel):
    model_config = {"extra": "ignore"}


# ══════════════════════════════════════════════════════════════════════════
# User Profile
# ══════════════════════════════════════════════════════════════════════════


class UserProfile(_Lenient):
    """
    Optional background passed verbatim to the model.

    Lifestyle categories follow CDC (smoking), WHO AUDIT-C (drinking) and
    WHO 2020 (physical activity). Values are free strings so that a newer
    app version sending a new category does not get a 400.
    """

    age: Optional[int] = None
    gender: Optional[str] = None
    height: Optional[Number] = None
    weight: Optional[Number] = None
    has_hypertension: Optional[bool] = None
    has_diabetes: Optional[bool] = None
    has_heart_disease: Optional[bool] = None
    has_high_cholesterol: Optional[bool] = None
    is_smoker: Optional[bool] = None
    exercise_frequency: Optional[str] = None
    smoking_status: Optional[str] = None
    drinking_frequency: Optional[str] = None
    physical_activity_level: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Health Data — advice (7-day window)
# ══════════════════════════════════════════════════════════════════════════


class BloodPressureLatest(_Lenient):
    systolic: Number
    diastolic: Number
    pulse: Optional[Number] = None
    timestamp: str = ""


class HeartRateLatest(_Lenient):
    value: Number
    timestamp: str = ""


class BloodGlucoseLatest(_Lenient):
    value: Number
    type: Optional[str] = None
    timestamp: str = ""


class AdviceBloodPressure(_Lenient):
    latest: Optional[BloodPressureLatest] = None
    avg_systolic_7days: Optional[Number] = None
    avg_diastolic_7days: Optional[Number] = None
    min_systolic_7days: Optional[Number] = None
    max_systolic_7days: Optional[Number] = None
    record_count: int = 0


class AdviceHeartRate(_Lenient):
    latest: Optional[HeartRateLatest] = None
    avg_7days: Optional[Number] = None
    min_7days: Optional[Number] = None
    max_7days: Optional[Number] = None
    record_count: int = 0


class AdviceBloodGlucose(_Lenient):
    latest: Optional[BloodGlucoseLatest] = None
    avg_7days: Optional[Number] = None
    record_count: int = 0


class AdviceHealthData(_Lenient):
    blood_pressure: Optional[AdviceBloodPressure] = None
    heart_rate: Optional[AdviceHeartRate] = None
    blood_glucose: Optional[AdviceBloodGlucose] = None


class HealthAdviceRequest(_Lenient):
    device_id: Optional[str] = None
    language: Optional[str] = None
    user_profile: Optional[UserProfile] = None
    health_data: Optional[AdviceHealthData] = None


# ══════════════════════════════════════════════════════════════════════════
# Health Data — summary (overall aggregates + recent records)
# ══════════════════════════════════════════════════════════════════════════


class BloodPressureRecord(BloodPressureLatest):
    pass


class HeartRateRecord(HeartRateLatest):
    pass


class BloodGlucoseRecord(BloodGlucoseLatest):
    pass


class BodyFatRecord(_Lenient):
    percentage: Number
    timestamp: str = ""


class BloodOxygenRecord(_Lenient):
    saturation: Number
    pulse: Optional[Number] = None
    timestamp: str = ""


class SummaryBloodPressure(_Lenient):
    avg_systolic: Optional[Number] = None
    avg_diastolic: Optional[Number] = None
    min_systolic: Optional[Number] = None
    max_systolic: Optional[Number] = None
    record_count: int = 0
    recent_records: List[BloodPressureRecord] = Field(default_factory=list)


class SummaryHeartRate(_Lenient):
    avg: Optional[Number] = None
    min: Optional[Number] = None
    max: Optional[Number] = None
    record_count: int = 0
    recent_records: List[HeartRateRecord] = Field(default_factory=list)


class SummaryBloodGlucose(_Lenient):
    avg: Optional[Number] = None
    record_count: int = 0
    recent_records: List[BloodGlucoseRecord] = Field(default_factory=list)


class SummaryBodyFat(_Lenient):
    avg: Optional[Number] = None
    min: Optional[Number] = None
    max: Optional[Number] = None
    record_count: int = 0
    recent_records: List[BodyFatRecord] = Field(default_factory=list)


class SummaryBloodOxygen(_Lenient):
    avg: Optional[Number] = None
    min: Optional[Number] = None
    max: Optional[Number] = None
    record_count: int = 0
    recent_records: List[BloodOxygenRecord] = Field(default_factory=list)


class SummaryHealthData(_Lenient):
    blood_pressure: Optional[SummaryBloodPressure] = None
    heart_rate: Optional[SummaryHeartRate] = None
    blood_glucose: Optional[SummaryBloodGlucose] = None
    body_fat: Optional[SummaryBodyFat] = None
    blood_oxygen: Optional[SummaryBloodOxygen] = None


class ClientInfo(_Lenient):
    os: Optional[str] = None
    device: Optional[str] = None
    browser: Optional[str] = None


class HealthSummaryRequest(_Lenient):
    device_id: Optional[str] = None
    language: Optional[str] = None
    user_profile: Optional[UserProfile] = None
    health_data: Optional[SummaryHealthData] = None
    custom_note: Optional[str] = None
    remaining_credits: Optional[int] = None
    ip_address: Optional[str] = None
    country_code: Optional[str] = None
    client_info: Optional[ClientInfo] = None


# ══════════════════════════════════════════════════════════════════════════
# Responses
# ══════════════════════════════════════════════════════════════════════════


class HealthStatus(BaseModel):
    level: StatusLevel = "normal"
    title: str = ""
    description: str = ""
    color: str = LEVEL_COLORS["normal"]


class _Guidance(BaseModel):
    details: List[str] = Field(default_factory=list)
    lifestyle: List[str] = Field(default_factory=list)
    dietary: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    should_see_doctor: bool = False


class AdviceBody(_Guidance):
    summary: str = ""


class SummaryBody(_Guidance):
    overview: str = ""


class HealthAdvice(BaseModel):
    """Normalized model output for the advice endpoint."""

    status: HealthStatus = Field(default_factory=HealthStatus)
    advice: AdviceBody = Field(default_factory=AdviceBody)


class HealthSummary(BaseModel):
    """Normalized model output for the summary endpoint."""

    status: HealthStatus = Field(default_factory=HealthStatus)
    summary: SummaryBody = Field(default_factory=SummaryBody)


class HealthAdviceResponse(HealthAdvice):
    """
    What:  Body of a 200 response from /api/v1/health-advice.

    On AI failure `success` is false, `error` is "AI_ERROR" and
    status/advice carry the neutral fallback; the disclaimer is always set.
    """

    success: bool = True
    analyzed_types: List[str] = Field(default_factory=list)
    disclaimer: str = ""
    error: Optional[str] = None
    message: Optional[str] = None


class HealthSummaryResponse(HealthSummary):
    """Body of a 200 response from /api/v1/health-summary."""

    success: bool = True
    analyzed_types: List[str] = Field(default_factory=list)
    disclaimer: str = ""
    error: Optional[str] = None
    message: Optional[str] = None
