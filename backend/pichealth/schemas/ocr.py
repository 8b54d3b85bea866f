"""
PicHealth API — OCR Request/Response Schemas
=============================================

What:  Pydantic models for the invoice and health-device OCR endpoints.
Why:   Every field of the response is always present (null or empty, never
       missing), so mobile clients only ever check `success`.
How:   Field names are snake_case in Python and camelCase on the wire
       (`alias_generator=to_camel`), matching the JSON the apps already parse.

DeviceReading is a tagged union keyed on `deviceType`:

    blood_pressure    systolic, diastolic, pulse
    body_measurement  height + heightUnit, weight + weightUnit
    blood_glucose     value + unit, measurementType
    body_fat          percentage
    blood_oxygen      saturation, pulse
    unknown           (no fields)
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Number = Union[int, float]

DeviceType = Literal[
    "blood_pressure",
    "body_measurement",
    "blood_glucose",
    "body_fat",
    "blood_oxygen",
    "unknown",
]

HeightUnit = Literal["cm", "ft", "in"]
WeightUnit = Literal["kg", "lbs"]
GlucoseUnit = Literal["mg/dL", "mmol/L"]
GlucoseMeasurementType = Literal["fasting", "postprandial", "random"]


class CamelModel(BaseModel):
    """Base for models serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ══════════════════════════════════════════════════════════════════════════
# Device Readings — one variant per supported device
# ══════════════════════════════════════════════════════════════════════════


class BloodPressureReading(CamelModel):
    device_type: Literal["blood_pressure"] = "blood_pressure"
    systolic: Optional[Number] = None
    diastolic: Optional[Number] = None
    pulse: Optional[Number] = None


class BodyMeasurementReading(CamelModel):
    device_type: Literal["body_measurement"] = "body_measurement"
    height: Optional[Number] = None
    height_unit: Optional[HeightUnit] = None
    weight: Optional[Number] = None
    weight_unit: Optional[WeightUnit] = None


class BloodGlucoseReading(CamelModel):
    """A null unit is read as mg/dL, the unit most meters display."""

    device_type: Literal["blood_glucose"] = "blood_glucose"
    value: Optional[Number] = None
    unit: Optional[GlucoseUnit] = None
    measurement_type: Optional[GlucoseMeasurementType] = None


class BodyFatReading(CamelModel):
    device_type: Literal["body_fat"] = "body_fat"
    percentage: Optional[Number] = None


class BloodOxygenReading(CamelModel):
    device_type: Literal["blood_oxygen"] = "blood_oxygen"
    saturation: Optional[Number] = None
    pulse: Optional[Number] = None


class UnknownReading(CamelModel):
    device_type: Literal["unknown"] = "unknown"


DeviceReading = Annotated[
    Union[
        BloodPressureReading,
        BodyMeasurementReading,
        BloodGlucoseReading,
        BodyFatReading,
        BloodOxygenReading,
        UnknownReading,
    ],
    Field(discriminator="device_type"),
]


# ══════════════════════════════════════════════════════════════════════════
# Results
# ══════════════════════════════════════════════════════════════════════════


class HealthOCRResult(CamelModel):
    """
    What:  Result of reading a health-device display.
    Who:   Returned by POST /api/ocr-health and /api/v1/ocr-health.

    `device_type` mirrors `reading.device_type` at the top level so clients
    can switch on it without unwrapping the reading.
    """

    success: bool = True
    device_type: DeviceType = "unknown"
    reading: DeviceReading = Field(default_factory=UnknownReading)
    date: Optional[str] = Field(default=None, description="YYYY-MM-DD")
    time: Optional[str] = Field(default=None, description="HH:MM or HH:MM:SS, 24-hour")
    raw_text: str = Field(default="", description="Model response, verbatim")
    error: Optional[str] = None
    message: Optional[str] = None


class InvoiceItem(CamelModel):
    """
    One purchased line. Numeric-like fields stay strings (digits with an
    optional leading minus for discounts and an optional decimal point) so
    "0.50" does not turn into 0.5.
    """

    description: str = Field(min_length=1, max_length=99)
    quantity: Optional[str] = None
    unit_price: Optional[str] = None
    price: Optional[str] = None


class InvoiceOCRResult(CamelModel):
    """
    What:  Result of reading a printed receipt / invoice.
    Who:   Returned by POST /api/ocr-ai and /api/v1/ocr-ai.
    """

    success: bool = True
    date: Optional[str] = None
    time: Optional[str] = None
    items: List[InvoiceItem] = Field(default_factory=list)
    raw_text: str = ""
    error: Optional[str] = None
    message: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Requests
# ══════════════════════════════════════════════════════════════════════════


class OCRRequest(BaseModel):
    """
    Body of the OCR endpoints.

    `image` is base64, optionally prefixed with a data URI
    (`data:image/jpeg;base64,...`). It is optional here so that a missing
    image is reported as MISSING_IMAGE rather than a generic schema error.
    """

    image: Optional[str] = None

    model_config = {"extra": "ignore"}


class HealthOCRRequest(OCRRequest):
    """Adds the metadata stored with each external health scan."""

    country_code: Optional[str] = Field(default=None, max_length=8)
    device_type: Optional[str] = Field(default=None, max_length=64)
    add_from: Optional[str] = Field(default=None, max_length=64)
    ip_address: Optional[str] = Field(default=None, max_length=64)
