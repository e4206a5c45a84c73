"""Exact decimal helpers for currency amounts.

Amounts are plain :class:`decimal.Decimal` values quantised to cents. Binary
floats never take part in arithmetic: a float handed to :func:`to_money` is
converted through its shortest ``repr`` first.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Final, Union

from .errors import ValidationError

Money = Decimal
MoneyLike = Union[Decimal, int, str, float]

CENT: Final[Decimal] = Decimal("0.01")
RATIO_QUANTUM: Final[Decimal] = Decimal("0.0001")
PERCENT_DISPLAY_QUANTUM: Final[Decimal] = Decimal("0.1")
HUNDRED: Final[Decimal] = Decimal(100)
ZERO: Final[Decimal] = Decimal("0.00")
CURRENCY_SYMBOL: Final[str] = "$"


def to_money(value: MoneyLike) -> Money:
    """Coerce ``value`` to a cent-quantised :class:`Decimal` (half-up)."""

    if isinstance(value, bool):
        raise ValidationError("Amount must be numeric, not a boolean")
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValidationError(f"Amount must be finite: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value: MoneyLike) -> int:
    """Return the amount expressed in integer minor units."""

    return int(to_money(value).scaleb(2))


def from_cents(cents: int) -> Money:
    return (Decimal(int(cents)) * CENT).quantize(CENT)


def usage_percent(spent: Money, limit: Money) -> Decimal:
    """Return ``spent / limit * 100``.

    The ratio is rounded half-up to four places before scaling, so the result
    carries at most two fraction digits. A zero limit yields ``0``.
    """

    if limit == 0:
        return Decimal(0)
    ratio = (Decimal(spent) / Decimal(limit)).quantize(RATIO_QUANTUM, rounding=ROUND_HALF_UP)
    return ratio * HUNDRED


def format_currency(amount: MoneyLike, symbol: str = CURRENCY_SYMBOL) -> str:
    """Format an amount as ``$1,234.56`` (negative values as ``-$5.00``)."""

    value = to_money(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def format_percent(value: Decimal) -> str:
    """Format a percentage with one decimal place, e.g. ``85.0%``."""

    rounded = Decimal(value).quantize(PERCENT_DISPLAY_QUANTUM, rounding=ROUND_HALF_UP)
    return f"{rounded}%"


__all__ = [
    "CENT",
    "HUNDRED",
    "Money",
    "MoneyLike",
    "ZERO",
    "format_currency",
    "format_percent",
    "from_cents",
    "to_cents",
    "to_money",
    "usage_percent",
]
