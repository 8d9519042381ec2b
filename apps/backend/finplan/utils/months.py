"""Calendar-month helpers.

Months are handled as ``YYYY-MM`` strings everywhere outside this module so
that they sort lexicographically and can be used directly as dict keys.
"""

from __future__ import annotations

import calendar
import re
from datetime import date

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"
_MONTH_RE = re.compile(MONTH_PATTERN)


def month_key(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def parse_month(value: str) -> tuple[int, int]:
    if not isinstance(value, str) or not _MONTH_RE.match(value):
        raise ValueError(f"month must be in YYYY-MM format: {value!r}")
    year, month = value.split("-")
    return int(year), int(month)


def add_month(year: int, month: int, delta: int) -> tuple[int, int]:
    total = year * 12 + (month - 1) + delta
    new_year = total // 12
    new_month = total % 12 + 1
    return new_year, new_month


def shift_month(value: str, delta: int) -> str:
    year, month = add_month(*parse_month(value), delta)
    return f"{year:04d}-{month:02d}"


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date, pulling ``day`` back to the month's last day when it overflows."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def month_diff(later: date, earlier: date) -> int:
    """Whole calendar months between two dates, ignoring the day part."""
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)


def month_span(start: str, end: str) -> list[str]:
    """Inclusive list of months from ``start`` to ``end`` (empty when reversed)."""
    start_year, start_month = parse_month(start)
    end_year, end_month = parse_month(end)
    count = (end_year - start_year) * 12 + (end_month - start_month)
    return [shift_month(start, offset) for offset in range(count + 1)]
