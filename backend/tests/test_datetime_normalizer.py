"""
PicHealth API — Date/Time Normalizer Tests
===========================================
"""

from datetime import date

import pytest

from pichealth.core.datetime_normalizer import (
    DateComponents,
    normalize_date,
    normalize_time,
    parse_date_components,
)

TODAY = date(2025, 6, 1)


class TestNormalizeDate:

    @pytest.mark.parametrize("text", [
        "2024-03-05",
        "2024/3/5",
        "2024.03.05",
        "2024年3月5日",
        "2024 / 03 / 05",
        "2024-03-05 13:05",
    ])
    def test_full_dates(self, text):
        assert normalize_date(text, today=TODAY) == "2024-03-05"

    @pytest.mark.parametrize("text", ["03-05", "3/5", "3月5日"])
    def test_year_is_inferred_from_today(self, text):
        assert normalize_date(text, today=TODAY) == "2025-03-05"

    @pytest.mark.parametrize("text, expected", [
        ("01/15/2024", "2024-01-15"),
        ("1-15-2024", "2024-01-15"),
        ("15.01.2024", "2024-01-15"),
        ("3/5/2023 08:10", "2023-03-05"),
    ])
    def test_printed_year_at_the_end_is_kept(self, text, expected):
        assert normalize_date(text, today=date(2026, 10, 19)) == expected

    def test_unreadable_trailing_year_is_not_replaced(self):
        assert normalize_date("01/15/24", today=TODAY) is None

    def test_leap_day(self):
        assert normalize_date("2024-02-29") == "2024-02-29"

    @pytest.mark.parametrize("text", ["2023-02-29", "2024-13-01", "2024-04-31", "13/45"])
    def test_impossible_dates_give_none(self, text):
        assert normalize_date(text, today=TODAY) is None

    @pytest.mark.parametrize("text", [None, "", "no date", "12:30"])
    def test_unreadable_gives_none(self, text):
        assert normalize_date(text, today=TODAY) is None


class TestNormalizeTime:

    @pytest.mark.parametrize("text, expected", [
        ("13:05", "13:05"),
        ("9:30", "09:30"),
        ("1:05 PM", "13:05"),
        ("1:05pm", "13:05"),
        ("1:05 p.m.", "13:05"),
        ("12:30 PM", "12:30"),
        ("12:30 AM", "00:30"),
        ("11:59 am", "11:59"),
        ("01:05:09 pm", "13:05:09"),
        ("下午1:05", "13:05"),
        ("上午 12:30", "00:30"),
        ("上午9:15", "09:15"),
        ("13：05", "13:05"),
        ("2024-01-15 09:30", "09:30"),
    ])
    def test_valid_times(self, text, expected):
        assert normalize_time(text) == expected

    @pytest.mark.parametrize("text", ["25:00", "12:60", "13:00 PM", "0:30 AM", "10:20:75"])
    def test_out_of_range_gives_none(self, text):
        assert normalize_time(text) is None

    @pytest.mark.parametrize("text", [None, "", "noon", "2024-01-15"])
    def test_unreadable_gives_none(self, text):
        assert normalize_time(text) is None


class TestParseDateComponents:

    def test_full_components(self):
        parts = parse_date_components("2024/3/5", "1:05 PM", today=TODAY)
        assert parts == DateComponents(year=2024, month_day="03-05", time="13:05")
        assert parts.date == "2024-03-05"

    def test_missing_date_keeps_time(self):
        parts = parse_date_components(None, "08:00")
        assert parts.year is None
        assert parts.date is None
        assert parts.time == "08:00"
