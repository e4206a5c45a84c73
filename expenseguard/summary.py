"""Per-category spend breakdown for a month."""
from __future__ import annotations

import logging

from .months import validate_month_key
from .schemas import MonthlySummary
from .stores import ExpenseStore

LOG = logging.getLogger(__name__)


class MonthlySummaryBuilder:
    """Builds the breakdown shared by the budgets view and the reports view.

    Every existing category gets a row, zero when it has no expenses in the
    month. Rows are ordered by total descending, then by name.
    """

    def __init__(self, expenses: ExpenseStore) -> None:
        self._expenses = expenses

    def summarize(self, month_key: str) -> MonthlySummary:
        validate_month_key(month_key)
        rows = self._expenses.category_totals_for_month(month_key)
        rows = sorted(rows, key=lambda row: (-row.total_spent, row.category_name))
        summary = MonthlySummary(month_key=month_key, rows=rows)
        LOG.debug(
            "Summarised %d categories for %s (total %s)",
            len(rows),
            month_key,
            summary.total_spent,
            extra={"month_key": month_key},
        )
        return summary


__all__ = ["MonthlySummaryBuilder"]
