"""
PicHealth API — Plausibility Validator
=======================================

What:  Nulls any DeviceReading field whose value is physiologically impossible.
Why:   OCR misreads produce values like systolic 1280 or weight 0.7. The
       bounds are wide on purpose: they cover pathological extremes, so a
       clinically unusual but real reading is kept and only garbage is dropped.
How:   Field-level filter. One bad field becomes None; the rest of the record
       is kept. Units are converted to cm / kg before the check, so
       "5.7 ft" and "154 lbs" are judged on the same scale as metric input.

Bounds (inclusive):
    systolic      50 – 300 mmHg
    diastolic     30 – 180 mmHg
    pulse         30 – 220 bpm   (blood-pressure and blood-oxygen readings)
    height        40 – 280 cm    (ft × 30.48, in × 2.54)
    weight         1 – 650 kg    (lbs × 0.45359237)
    glucose       20 – 800 mg/dL, 1.1 – 44.4 mmol/L (no unit → mg/dL)
    body fat       1 – 75 %
    saturation    50 – 100 %

validate_reading() returns a new record and is idempotent.
"""

from typing import Dict, Optional, Tuple, Union

from pichealth.schemas.ocr import (
    BloodGlucoseReading,
    BloodOxygenReading,
    BloodPressureReading,
    BodyFatReading,
    BodyMeasurementReading,
)

Number = Union[int, float]
Bounds = Tuple[float, float]

SYSTOLIC_BOUNDS: Bounds = (50, 300)
DIASTOLIC_BOUNDS: Bounds = (30, 180)
PULSE_BOUNDS: Bounds = (30, 220)
HEIGHT_CM_BOUNDS: Bounds = (40, 280)
WEIGHT_KG_BOUNDS: Bounds = (1, 650)
GLUCOSE_MG_DL_BOUNDS: Bounds = (20, 800)
GLUCOSE_MMOL_L_BOUNDS: Bounds = (1.1, 44.4)
BODY_FAT_BOUNDS: Bounds = (1, 75)
SATURATION_BOUNDS: Bounds = (50, 100)

CM_PER_UNIT: Dict[str, float] = {"cm": 1.0, "ft": 30.48, "in": 2.54}
KG_PER_UNIT: Dict[str, float] = {"kg": 1.0, "lbs": 0.45359237}


def within(value: Optional[Number], bounds: Bounds, scale: float = 1.0) -> Optional[Number]:
    """Return `value` if value × scale lies in bounds, else None."""
    if value is None:
        return None
    low, high = bounds
    return value if low <= value * scale <= high else None


def _check_blood_pressure(reading: BloodPressureReading) -> dict:
    return {
        "systolic": within(reading.systolic, SYSTOLIC_BOUNDS),
        "diastolic": within(reading.diastolic, DIASTOLIC_BOUNDS),
        "pulse": within(reading.pulse, PULSE_BOUNDS),
    }


def _check_body_measurement(reading: BodyMeasurementReading) -> dict:
    return {
        "height": within(reading.height, HEIGHT_CM_BOUNDS, CM_PER_UNIT[reading.height_unit or "cm"]),
        "weight": within(reading.weight, WEIGHT_KG_BOUNDS, KG_PER_UNIT[reading.weight_unit or "kg"]),
    }


def _check_blood_glucose(reading: BloodGlucoseReading) -> dict:
    bounds = GLUCOSE_MMOL_L_BOUNDS if reading.unit == "mmol/L" else GLUCOSE_MG_DL_BOUNDS
    return {"value": within(reading.value, bounds)}


def _check_body_fat(reading: BodyFatReading) -> dict:
    return {"percentage": within(reading.percentage, BODY_FAT_BOUNDS)}


def _check_blood_oxygen(reading: BloodOxygenReading) -> dict:
    return {
        "saturation": within(reading.saturation, SATURATION_BOUNDS),
        "pulse": within(reading.pulse, PULSE_BOUNDS),
    }


_CHECKS = {
    "blood_pressure": _check_blood_pressure,
    "body_measurement": _check_body_measurement,
    "blood_glucose": _check_blood_glucose,
    "body_fat": _check_body_fat,
    "blood_oxygen": _check_blood_oxygen,
}


def validate_reading(reading):
    """
    Return a copy of `reading` with implausible fields set to None.

    UnknownReading has no fields and is returned unchanged.
    """
    check = _CHECKS.get(reading.device_type)
    if check is None:
        return reading
    return reading.model_copy(update=check(reading))
