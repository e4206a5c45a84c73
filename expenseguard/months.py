"""Helpers for the canonical ``YYYY-MM`` month keys."""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Final

from .errors import ValidationError

MONTH_KEY_PATTERN: Final[re.Pattern[str]] = re.compile(r"([0-9]{4})-(0[1-9]|1[0-2])")


def parse_month_key(month_key: str) -> tuple[int, int]:
    """Split a month key into ``(year, month)``.

    Raises:
        ValidationError: If ``month_key`` is not exactly ``YYYY-MM``.
    """

    if not isinstance(month_key, str):
        raise ValidationError(f"Month key must be a string, got {type(month_key).__name__}")
    match = MONTH_KEY_PATTERN.fullmatch(month_key)
    if match is None:
        raise ValidationError(f"Invalid month key {month_key!r}; expected YYYY-MM")
    year = int(match.group(1))
    if year < 1:
        raise ValidationError(f"Invalid month key {month_key!r}; year must be positive")
    return year, int(match.group(2))


def validate_month_key(month_key: str) -> str:
    parse_month_key(month_key)
    return month_key


def month_key_for(day: date | datetime) -> str:
    """Return the month key of the calendar month containing ``day``."""

    return f"{day.year:04d}-{day.month:02d}"


def current_month_key(today: date | None = None) -> str:
    return month_key_for(today or date.today())


def month_bounds(month_key: str) -> tuple[date, date]:
    """Return ``(first_day, first_day_of_next_month)`` for a month key.

    The upper bound is exclusive so range filters read ``start <= d < end``.
    """

    year, month = parse_month_key(month_key)
    start = date(year, month, 1)
    if month == 12:
        if year == 9999:
            raise ValidationError(f"Month key {month_key!r} is out of range")
        end = date(year + 1, 1, 1)
    else:
        end = date(year, month + 1, 1)
    return start, end


__all__ = [
    "current_month_key",
    "month_bounds",
    "month_key_for",
    "parse_month_key",
    "validate_month_key",
]
