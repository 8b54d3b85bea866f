"""
PicHealth API — Date/Time Normalizer
=====================================

What:  Turns the heterogeneous date and time strings read off device displays
       and receipts into ISO dates (YYYY-MM-DD) and 24-hour times (HH:MM).
How:   A short list of regexes, tried in order. Dates without a year take the
       current calendar year; 12-hour times with an AM/PM marker are
       converted (PM adds 12 except at 12, 12 AM becomes 00).

Accepted dates:
    2024-03-05   2024/3/5   2024.03.05   2024年3月5日
    01/15/2024   1-15-2024  15.01.2024  (year last; month first unless > 12)
    03-05        3/5        3月5日        (year inferred)

Accepted times:
    13:05   1:05 PM   01:05:09 pm   1:05 p.m.   下午1:05   上午 12:30
"""

import re
from dataclasses import dataclass
from datetime import date as date_type
from typing import Optional

# ── Patterns ──────────────────────────────────────────────────────────────

_FULL_DATE_RE = re.compile(
    r"(?P<year>\d{4})\s*[-/.年]\s*(?P<month>\d{1,2})\s*[-/.月]\s*(?P<day>\d{1,2})\s*日?"
)
_YEAR_LAST_DATE_RE = re.compile(
    r"(?<!\d)(?P<month>\d{1,2})\s*([-/.])\s*(?P<day>\d{1,2})\s*\2\s*(?P<year>\d{4})(?!\d)"
)
# A trailing "/24" or "-2024" means the year is printed, just not in a form we read
_PARTIAL_DATE_RE = re.compile(
    r"(?<!\d)(?P<month>\d{1,2})\s*[-/月]\s*(?P<day>\d{1,2})(?!\d)(?!\s*[-/.]\s*\d)\s*日?"
)

_TIME_RE = re.compile(
    r"(?P<pre>上午|下午)?\s*"
    r"(?P<hour>\d{1,2})\s*[:：]\s*(?P<minute>\d{2})(?:\s*[:：]\s*(?P<second>\d{2}))?"
    r"\s*(?P<post>[AaPp]\.?\s*[Mm]\.?)?"
)


@dataclass(frozen=True)
class DateComponents:
    """
    Optional (year, month-day, time) triple.

    month_day is "MM-DD"; time is "HH:MM" or "HH:MM:SS". Any part may be None
    when it could not be read.
    """

    year: Optional[int] = None
    month_day: Optional[str] = None
    time: Optional[str] = None

    @property
    def date(self) -> Optional[str]:
        if self.year is None or self.month_day is None:
            return None
        return f"{self.year:04d}-{self.month_day}"


def _checked_date(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date_type(year, month, day).isoformat()
    except ValueError:
        return None


def normalize_date(text: Optional[str], today: Optional[date_type] = None) -> Optional[str]:
    """
    Normalize a date string to YYYY-MM-DD.

    Args:
        text:  Date as printed, e.g. "2024/3/5" or "03-05".
        today: Reference date for year inference (defaults to date.today()).

    Returns:
        ISO date, or None when the text holds no valid calendar date.
    """
    if not text:
        return None
    text = str(text).strip()

    match = _FULL_DATE_RE.search(text)
    if match:
        return _checked_date(int(match["year"]), int(match["month"]), int(match["day"]))

    match = _YEAR_LAST_DATE_RE.search(text)
    if match:
        year, first, second = int(match["year"]), int(match["month"]), int(match["day"])
        # Month first (01/15/2024); day first only when that cannot be a month (15/01/2024)
        if first > 12:
            first, second = second, first
        return _checked_date(year, first, second)

    match = _PARTIAL_DATE_RE.search(text)
    if match:
        year = (today or date_type.today()).year
        return _checked_date(year, int(match["month"]), int(match["day"]))

    return None


def normalize_time(text: Optional[str]) -> Optional[str]:
    """
    Normalize a clock reading to 24-hour HH:MM (HH:MM:SS if seconds are shown).

    Returns None for unreadable or out-of-range values such as "25:00" or
    "13:00 PM".
    """
    if not text:
        return None

    match = _TIME_RE.search(str(text).strip())
    if not match:
        return None

    hour = int(match["hour"])
    minute = int(match["minute"])
    second = int(match["second"]) if match["second"] is not None else None

    marker = None
    if match["post"]:
        marker = "pm" if match["post"][0].lower() == "p" else "am"
    elif match["pre"]:
        marker = "pm" if match["pre"] == "下午" else "am"

    if marker is not None:
        if not 1 <= hour <= 12:
            return None
        if marker == "pm" and hour != 12:
            hour += 12
        elif marker == "am" and hour == 12:
            hour = 0

    if hour > 23 or minute > 59 or (second is not None and second > 59):
        return None

    if second is None:
        return f"{hour:02d}:{minute:02d}"
    return f"{hour:02d}:{minute:02d}:{second:02d}"


def parse_date_components(
    date_text: Optional[str],
    time_text: Optional[str] = None,
    today: Optional[date_type] = None,
) -> DateComponents:
    """Build DateComponents from separate date and time strings."""
    iso = normalize_date(date_text, today=today)
    year = int(iso[:4]) if iso else None
    month_day = iso[5:] if iso else None
    return DateComponents(year=year, month_day=month_day, time=normalize_time(time_text))
