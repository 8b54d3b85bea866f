"""
PicHealth API — Plausibility Validator Tests
=============================================
"""

import pytest

from pichealth.core.validator import validate_reading, within
from pichealth.schemas.ocr import (
    BloodGlucoseReading,
    BloodOxygenReading,
    BloodPressureReading,
    BodyFatReading,
    BodyMeasurementReading,
    UnknownReading,
)


class TestWithin:

    def test_bounds_are_inclusive(self):
        assert within(50, (50, 300)) == 50
        assert within(300, (50, 300)) == 300
        assert within(49, (50, 300)) is None

    def test_scale_is_applied(self):
        assert within(6, (40, 280), 30.48) == 6
        assert within(10, (40, 280), 30.48) is None

    def test_none_passes_through(self):
        assert within(None, (0, 1)) is None


class TestBloodPressure:

    def test_plausible_reading_is_unchanged(self):
        reading = BloodPressureReading(systolic=120, diastolic=80, pulse=72)
        assert validate_reading(reading) == reading

    def test_only_the_bad_field_is_dropped(self):
        checked = validate_reading(BloodPressureReading(systolic=1280, diastolic=82, pulse=71))
        assert checked.systolic is None
        assert checked.diastolic == 82
        assert checked.pulse == 71

    @pytest.mark.parametrize("field, value", [
        ("systolic", 49), ("systolic", 301),
        ("diastolic", 29), ("diastolic", 181),
        ("pulse", 29), ("pulse", 221),
    ])
    def test_out_of_range(self, field, value):
        reading = BloodPressureReading(systolic=120, diastolic=80, pulse=70).model_copy(update={field: value})
        assert getattr(validate_reading(reading), field) is None

    def test_original_is_not_modified(self):
        reading = BloodPressureReading(systolic=1280)
        validate_reading(reading)
        assert reading.systolic == 1280


class TestBodyMeasurement:

    def test_imperial_height_and_weight(self):
        reading = BodyMeasurementReading(height=5.7, height_unit="ft", weight=154, weight_unit="lbs")
        assert validate_reading(reading) == reading

    def test_height_checked_in_cm(self):
        checked = validate_reading(BodyMeasurementReading(height=170, height_unit="in"))
        assert checked.height is None

    def test_missing_unit_means_metric(self):
        checked = validate_reading(BodyMeasurementReading(height=170, weight=0.5))
        assert checked.height == 170
        assert checked.weight is None

    def test_heavy_weight_in_lbs(self):
        checked = validate_reading(BodyMeasurementReading(weight=1500, weight_unit="lbs"))
        assert checked.weight is None


class TestBloodGlucose:

    def test_mmol(self):
        reading = BloodGlucoseReading(value=5.6, unit="mmol/L")
        assert validate_reading(reading).value == 5.6

    def test_mmol_value_read_as_mg_dl(self):
        assert validate_reading(BloodGlucoseReading(value=5.6, unit="mg/dL")).value is None

    def test_no_unit_uses_mg_dl_bounds(self):
        assert validate_reading(BloodGlucoseReading(value=110)).value == 110
        assert validate_reading(BloodGlucoseReading(value=5.6)).value is None

    def test_mg_dl_value_with_mmol_unit(self):
        assert validate_reading(BloodGlucoseReading(value=110, unit="mmol/L")).value is None


class TestOtherDevices:

    def test_body_fat(self):
        assert validate_reading(BodyFatReading(percentage=22.5)).percentage == 22.5
        assert validate_reading(BodyFatReading(percentage=0.5)).percentage is None
        assert validate_reading(BodyFatReading(percentage=76)).percentage is None

    def test_blood_oxygen(self):
        checked = validate_reading(BloodOxygenReading(saturation=101, pulse=65))
        assert checked.saturation is None
        assert checked.pulse == 65
        assert validate_reading(BloodOxygenReading(saturation=98)).saturation == 98

    def test_unknown_is_returned_as_is(self):
        reading = UnknownReading()
        assert validate_reading(reading) is reading

    def test_idempotent(self):
        reading = BloodPressureReading(systolic=1280, diastolic=82, pulse=300)
        once = validate_reading(reading)
        assert validate_reading(once) == once
