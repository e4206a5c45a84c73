"""Spend aggregation for a ``(category, month)`` pair."""
from __future__ import annotations

import logging
from decimal import Decimal

from .months import validate_month_key
from .stores import ExpenseStore

LOG = logging.getLogger(__name__)


class BudgetAggregator:
    """Computes spent-to-date from the expense store.

    Nothing is cached: every call reads the store so alerts always reflect the
    latest writes.
    """

    def __init__(self, expenses: ExpenseStore) -> None:
        self._expenses = expenses

    def compute_spend(self, category_id: int, month_key: str) -> Decimal:
        validate_month_key(month_key)
        spent = self._expenses.sum_by_category_and_month(category_id, month_key)
        LOG.debug(
            "Spend for category %s in %s: %s",
            category_id,
            month_key,
            spent,
            extra={"category_id": category_id, "month_key": month_key},
        )
        return spent


__all__ = ["BudgetAggregator"]
