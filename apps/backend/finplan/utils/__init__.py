"""
Utils package
"""

from .months import (
    MONTH_PATTERN,
    add_month,
    clamp_day,
    month_diff,
    month_key,
    month_span,
    parse_month,
    shift_month,
)

__all__ = [
    "MONTH_PATTERN",
    "add_month",
    "clamp_day",
    "month_diff",
    "month_key",
    "month_span",
    "parse_month",
    "shift_month",
]
