"""
PicHealth API — Domain Normalizer Tests
========================================

What we test:
    ✅ Value coercion (numbers, price cells, quantities, unit tags)
    ✅ Every device variant, nested and flattened payloads
    ✅ Invoice item filtering and numeric-string cleanup
    ✅ Status level / colour defaults and the unreadable fallbacks
    ✅ Raw text → validated result, including the extraction-failure record
"""

import math
from datetime import date

import pytest

from pichealth.core.normalizer import (
    GLUCOSE_UNITS,
    WEIGHT_UNITS,
    Domain,
    coerce_bool,
    coerce_choice,
    coerce_number,
    coerce_numeric_string,
    coerce_quantity,
    coerce_text_list,
    fallback_health_advice,
    fallback_health_summary,
    normalize,
    normalize_device_type,
    normalize_health_advice,
    normalize_health_device,
    normalize_health_ocr,
    normalize_health_summary,
    normalize_invoice,
    normalize_invoice_ocr,
    normalize_status,
)
from pichealth.schemas.insights import HealthAdvice, HealthSummary
from pichealth.schemas.ocr import (
    BloodGlucoseReading,
    BloodOxygenReading,
    BloodPressureReading,
    BodyFatReading,
    BodyMeasurementReading,
    InvoiceOCRResult,
    UnknownReading,
)

TODAY = date(2025, 6, 1)


class TestCoercion:

    @pytest.mark.parametrize("value, expected", [
        (120, 120),
        (120.0, 120),
        (70.5, 70.5),
        ("120", 120),
        ("70.5 kg", 70.5),
        ("1,200", 1200),
        ("-5", -5),
    ])
    def test_coerce_number(self, value, expected):
        result = coerce_number(value)
        assert result == expected
        assert type(result) is type(expected)

    @pytest.mark.parametrize("value", [None, True, False, "abc", [1], {"v": 1}, math.nan, math.inf])
    def test_coerce_number_rejects(self, value):
        assert coerce_number(value) is None

    @pytest.mark.parametrize("value, expected", [
        ("40 TX", "40"),
        ("$1,200", "1200"),
        ("NT$ 35.50", "35.50"),
        ("-10", "-10"),
        ("NT$ -35.5", "-35.5"),
        (35, "35"),
        (35.5, "35.5"),
        ("free", None),
        (None, None),
    ])
    def test_coerce_numeric_string(self, value, expected):
        assert coerce_numeric_string(value) == expected

    @pytest.mark.parametrize("value, expected", [
        ("20*2", "2"),
        ("20 x 3", "3"),
        ("3", "3"),
        (4, "4"),
    ])
    def test_coerce_quantity(self, value, expected):
        assert coerce_quantity(value) == expected

    def test_coerce_choice_is_case_insensitive(self):
        assert coerce_choice(" LB ", WEIGHT_UNITS) == "lbs"
        assert coerce_choice("MMOL/L", GLUCOSE_UNITS) == "mmol/L"
        assert coerce_choice("stone", WEIGHT_UNITS) is None
        assert coerce_choice(5, WEIGHT_UNITS) is None

    def test_coerce_text_list(self):
        assert coerce_text_list(["a", "", None, " b "]) == ["a", "b"]
        assert coerce_text_list("single") == ["single"]
        assert coerce_text_list(None) == []

    def test_coerce_bool(self):
        assert coerce_bool(True) is True
        assert coerce_bool("true") is True
        assert coerce_bool("no") is False
        assert coerce_bool(None) is False


class TestHealthDevice:

    @pytest.mark.parametrize("value, expected", [
        ("blood_pressure", "blood_pressure"),
        ("Blood Pressure", "blood_pressure"),
        ("blood-glucose", "blood_glucose"),
        ("thermometer", "unknown"),
        (None, "unknown"),
        (3, "unknown"),
    ])
    def test_normalize_device_type(self, value, expected):
        assert normalize_device_type(value) == expected

    def test_blood_pressure_nested(self):
        payload = {
            "deviceType": "blood_pressure",
            "bloodPressure": {"systolic": "120", "diastolic": 80, "pulse": "72 bpm"},
            "date": "2024/3/5",
            "time": "1:05 PM",
        }
        result = normalize_health_device(payload, raw_text="raw", today=TODAY)
        assert result.success is True
        assert result.device_type == "blood_pressure"
        assert result.reading == BloodPressureReading(systolic=120, diastolic=80, pulse=72)
        assert result.date == "2024-03-05"
        assert result.time == "13:05"
        assert result.raw_text == "raw"

    def test_flattened_fields_are_used(self):
        payload = {"deviceType": "blood_oxygen", "saturation": "98%", "pulse": 65}
        result = normalize_health_device(payload)
        assert result.reading == BloodOxygenReading(saturation=98, pulse=65)

    def test_body_measurement_units(self):
        payload = {
            "deviceType": "body_measurement",
            "bodyMeasurement": {"height": "170", "heightUnit": "CM", "weight": 150, "weightUnit": "lb"},
        }
        reading = normalize_health_device(payload).reading
        assert reading == BodyMeasurementReading(
            height=170, height_unit="cm", weight=150, weight_unit="lbs"
        )

    def test_unrecognised_unit_becomes_null(self):
        payload = {"deviceType": "body_measurement", "bodyMeasurement": {"weight": 60, "weightUnit": "stone"}}
        reading = normalize_health_device(payload).reading
        assert reading.weight == 60
        assert reading.weight_unit is None

    def test_blood_glucose(self):
        payload = {
            "deviceType": "blood_glucose",
            "bloodGlucose": {"value": "5.6", "unit": "mmol/l", "measurementType": "空腹"},
        }
        reading = normalize_health_device(payload).reading
        assert reading == BloodGlucoseReading(value=5.6, unit="mmol/L", measurement_type="fasting")

    def test_body_fat_with_time_in_date_field(self):
        payload = {"deviceType": "body_fat", "bodyFat": {"percentage": "22.5%"}, "date": "2024-01-15 09:30"}
        result = normalize_health_device(payload)
        assert result.reading == BodyFatReading(percentage=22.5)
        assert result.date == "2024-01-15"
        assert result.time == "09:30"

    def test_unknown_device_is_neutral(self):
        result = normalize_health_device({"deviceType": "scale_of_doom", "weight": 70})
        assert result.device_type == "unknown"
        assert result.reading == UnknownReading()

    def test_every_field_is_present_on_the_wire(self):
        body = normalize_health_device({}).model_dump(by_alias=True)
        assert set(body) == {
            "success", "deviceType", "reading", "date", "time", "rawText", "error", "message",
        }
        assert body["reading"] == {"deviceType": "unknown"}
        assert body["date"] is None

    def test_reading_fields_are_camel_case(self):
        payload = {"deviceType": "blood_glucose", "bloodGlucose": {"value": 110, "type": "random"}}
        body = normalize_health_device(payload).model_dump(by_alias=True)
        assert body["reading"] == {
            "deviceType": "blood_glucose",
            "value": 110,
            "unit": None,
            "measurementType": "random",
        }


class TestInvoice:

    def test_items_are_cleaned(self):
        payload = {
            "date": "2024-03-05",
            "time": "09:12",
            "items": [
                {"description": " Coffee ", "quantity": "20*2", "unitPrice": "NT$20", "price": "40 TX"},
            ],
        }
        result = normalize_invoice(payload, today=TODAY)
        assert result.date == "2024-03-05"
        assert result.time == "09:12"
        item = result.items[0]
        assert item.description == "Coffee"
        assert item.quantity == "2"
        assert item.unit_price == "20"
        assert item.price == "40"

    def test_invalid_descriptions_are_dropped(self):
        payload = {"items": [
            {"description": "ok"},
            {"description": ""},
            {"description": "x" * 100},
            {"description": "y" * 99},
            "not an item",
            {"price": "10"},
        ]}
        result = normalize_invoice(payload)
        assert [item.description for item in result.items] == ["ok", "y" * 99]

    def test_discount_line_keeps_its_sign(self):
        payload = {"items": [{"description": "折扣", "quantity": "1", "unitPrice": "-10", "price": "-10"}]}
        item = normalize_invoice(payload).items[0]
        assert item.unit_price == "-10"
        assert item.price == "-10"

    def test_items_not_a_list(self):
        assert normalize_invoice({"items": "Coffee 40"}).items == []

    def test_wire_keys(self):
        result = normalize_invoice({"items": [{"description": "Tea", "unit_price": "30"}]})
        body = result.model_dump(by_alias=True)
        assert body["rawText"] == ""
        assert body["items"][0] == {
            "description": "Tea", "quantity": None, "unitPrice": "30", "price": None,
        }


class TestInsights:

    def test_status_level_is_normalized(self):
        status = normalize_status({"level": "HIGH", "title": "t"})
        assert status.level == "high"
        assert status.color == "#FF5722"

    def test_unknown_level_becomes_normal(self):
        status = normalize_status({"level": "apocalyptic"})
        assert status.level == "normal"
        assert status.color == "#4CAF50"

    def test_model_color_is_kept(self):
        assert normalize_status({"level": "critical", "color": "#AA0000"}).color == "#AA0000"

    def test_missing_status(self):
        status = normalize_status(None)
        assert status.level == "normal"
        assert status.title == ""

    def test_health_advice(self):
        payload = {
            "status": {"level": "elevated", "title": "注意"},
            "advice": {
                "summary": "ok",
                "details": ["a", ""],
                "lifestyle": "walk daily",
                "should_see_doctor": "true",
                "unexpected": "ignored",
            },
        }
        advice = normalize_health_advice(payload)
        assert advice.status.level == "elevated"
        assert advice.advice.summary == "ok"
        assert advice.advice.details == ["a"]
        assert advice.advice.lifestyle == ["walk daily"]
        assert advice.advice.dietary == []
        assert advice.advice.should_see_doctor is True

    def test_health_summary_defaults(self):
        summary = normalize_health_summary({})
        assert summary.summary.overview == ""
        assert summary.summary.warnings == []
        assert summary.summary.should_see_doctor is False

    def test_fallbacks(self):
        advice = fallback_health_advice()
        assert advice.status.title == "無法分析"
        assert advice.status.description == "無法解析健康數據"
        assert advice.status.color == "#9E9E9E"
        assert advice.advice.summary == "無法生成建議"
        assert advice.advice.warnings == ["建議諮詢醫療專業人員"]
        assert advice.advice.should_see_doctor is True

        summary = fallback_health_summary()
        assert summary.summary.overview == "無法生成摘要"
        assert summary.summary.warnings == ["如有疑慮請諮詢醫療專業人員"]
        assert summary.summary.should_see_doctor is True


class TestDispatch:

    def test_by_enum_and_by_name(self):
        assert isinstance(normalize(Domain.HEALTH_ADVICE, {}), HealthAdvice)
        assert isinstance(normalize("health_summary", {}), HealthSummary)
        assert isinstance(normalize("invoice", {}), InvoiceOCRResult)

    def test_unknown_domain(self):
        with pytest.raises(ValueError):
            normalize("horoscope", {})


class TestRawTextPipeline:

    def test_health_ocr_filters_implausible_values(self):
        raw = '```json\n{"deviceType": "blood_pressure", "bloodPressure": {"systolic": 1280, "diastolic": 82}}\n```'
        result = normalize_health_ocr(raw)
        assert result.success is True
        assert result.reading.systolic is None
        assert result.reading.diastolic == 82
        assert result.raw_text == raw

    def test_health_ocr_extraction_failure(self):
        result = normalize_health_ocr("The display is too blurry to read.")
        assert result.success is False
        assert result.error == "EXTRACTION_FAILED"
        assert result.device_type == "unknown"
        assert result.raw_text == "The display is too blurry to read."

    def test_invoice_ocr_extraction_failure(self):
        result = normalize_invoice_ocr("")
        assert result.success is False
        assert result.error == "EXTRACTION_FAILED"
        assert result.items == []
        assert result.raw_text == ""

    def test_invoice_ocr_partial_date(self):
        result = normalize_invoice_ocr('{"date": "3/5", "items": []}', today=TODAY)
        assert result.success is True
        assert result.date == "2025-03-05"
