from __future__ import annotations

from datetime import date, datetime

import pytest

from expenseguard.errors import ValidationError
from expenseguard.months import (
    current_month_key,
    month_bounds,
    month_key_for,
    parse_month_key,
    validate_month_key,
)


def test_parse_month_key() -> None:
    assert parse_month_key("2024-06") == (2024, 6)
    assert parse_month_key("0999-12") == (999, 12)


@pytest.mark.parametrize(
    "value",
    ["2024-6", "2024-13", "2024-00", "24-06", "2024-06-01", "", "2024/06", "2024-06\n", " 2024-06"],
)
def test_parse_month_key_rejects_malformed_keys(value: str) -> None:
    with pytest.raises(ValidationError):
        parse_month_key(value)


def test_validate_month_key_rejects_non_strings() -> None:
    with pytest.raises(ValidationError):
        validate_month_key(202406)  # type: ignore[arg-type]


def test_month_key_for_dates_and_datetimes() -> None:
    assert month_key_for(date(2024, 6, 15)) == "2024-06"
    assert month_key_for(datetime(2023, 1, 31, 23, 59)) == "2023-01"
    assert month_key_for(date(987, 3, 1)) == "0987-03"


def test_current_month_key_uses_given_day() -> None:
    assert current_month_key(date(2024, 3, 9)) == "2024-03"


def test_month_bounds_are_half_open() -> None:
    assert month_bounds("2024-06") == (date(2024, 6, 1), date(2024, 7, 1))
    assert month_bounds("2024-12") == (date(2024, 12, 1), date(2025, 1, 1))
    assert month_bounds("2024-02") == (date(2024, 2, 1), date(2024, 3, 1))
