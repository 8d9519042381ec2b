from datetime import date

import pytest

from finplan.utils import add_month, clamp_day, month_diff, month_key, month_span, parse_month, shift_month


def test_month_key_and_parse():
    assert month_key(date(2024, 3, 9)) == "2024-03"
    assert parse_month("2024-03") == (2024, 3)
    for bad in ("2024-3", "2024-00", "2024-13", "24-01", "", None):
        with pytest.raises(ValueError):
            parse_month(bad)


def test_shift_month_rolls_years():
    assert add_month(2024, 12, 1) == (2025, 1)
    assert shift_month("2024-01", -1) == "2023-12"
    assert shift_month("2024-11", 14) == "2026-01"


def test_clamp_day_handles_short_months():
    assert clamp_day(2024, 2, 31) == date(2024, 2, 29)
    assert clamp_day(2023, 2, 30) == date(2023, 2, 28)
    assert clamp_day(2024, 4, 31) == date(2024, 4, 30)
    assert clamp_day(2024, 5, 15) == date(2024, 5, 15)


def test_month_diff_and_span():
    assert month_diff(date(2025, 2, 1), date(2024, 11, 30)) == 3
    assert month_span("2024-11", "2025-02") == ["2024-11", "2024-12", "2025-01", "2025-02"]
    assert month_span("2024-05", "2024-04") == []
