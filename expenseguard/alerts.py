"""Budget alert classification.

An alert is a tagged union discriminated by ``state``:

* :class:`NoAlert` - no budget configured, or usage below 80%;
* :class:`NearLimitAlert` - usage at or above 80% and below 100%;
* :class:`ExceededAlert` - usage at or above 100%.

The two active alerts carry the :class:`~expenseguard.schemas.BudgetView` they
were classified from, so the amounts in :attr:`message` always agree with the
state.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, computed_field

from .aggregation import BudgetAggregator
from .money import format_currency, format_percent
from .months import validate_month_key
from .schemas import BudgetRead, BudgetStatus, BudgetView
from .stores import BudgetStore

LOG = logging.getLogger(__name__)


class AlertState(str, Enum):
    NONE = "NONE"
    NEAR_LIMIT = "NEAR_LIMIT"
    EXCEEDED = "EXCEEDED"


ALERT_SEVERITY = {AlertState.NONE: 0, AlertState.NEAR_LIMIT: 1, AlertState.EXCEEDED: 2}

_STATUS_TO_ALERT = {
    BudgetStatus.OK: AlertState.NONE,
    BudgetStatus.NEAR_LIMIT: AlertState.NEAR_LIMIT,
    BudgetStatus.EXCEEDED: AlertState.EXCEEDED,
}


class NoAlert(BaseModel):
    state: Literal[AlertState.NONE] = AlertState.NONE
    view: Optional[BudgetView] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def message(self) -> Optional[str]:
        return None


class NearLimitAlert(BaseModel):
    state: Literal[AlertState.NEAR_LIMIT] = AlertState.NEAR_LIMIT
    view: BudgetView

    @computed_field  # type: ignore[prop-decorator]
    @property
    def message(self) -> str:
        budget = self.view.budget
        return (
            f"Budget warning for {budget.category_name}: "
            f"you've used {format_percent(self.view.usage_percent)} of your "
            f"{format_currency(budget.limit_amount)} budget. "
            f"Remaining: {format_currency(self.view.remaining)}"
        )


class ExceededAlert(BaseModel):
    state: Literal[AlertState.EXCEEDED] = AlertState.EXCEEDED
    view: BudgetView

    @computed_field  # type: ignore[prop-decorator]
    @property
    def message(self) -> str:
        budget = self.view.budget
        return (
            f"Budget exceeded for {budget.category_name}! "
            f"Limit: {format_currency(budget.limit_amount)} | "
            f"Spent: {format_currency(self.view.spent_amount)} | "
            f"Over by: {format_currency(self.view.overage)}"
        )


BudgetAlert = Annotated[
    Union[NoAlert, NearLimitAlert, ExceededAlert],
    Field(discriminator="state"),
]


def classify(budget: BudgetRead, spent: Decimal) -> AlertState:
    """Map a budget and its spend to an alert state (80% / 100% thresholds)."""

    view = BudgetView(budget=budget, spent_amount=spent)
    return _STATUS_TO_ALERT[view.status]


def alert_for(view: BudgetView) -> BudgetAlert:
    state = _STATUS_TO_ALERT[view.status]
    if state is AlertState.EXCEEDED:
        return ExceededAlert(view=view)
    if state is AlertState.NEAR_LIMIT:
        return NearLimitAlert(view=view)
    return NoAlert(view=view)


class AlertClassifier:
    """Looks up the budget for a category/month and classifies its spend."""

    def __init__(self, budgets: BudgetStore, aggregator: BudgetAggregator) -> None:
        self._budgets = budgets
        self._aggregator = aggregator

    def check_budget(self, category_id: int, month_key: str) -> BudgetAlert:
        """Return the alert for ``category_id`` in ``month_key``.

        A category without a budget for the month is never alerted. Store
        failures propagate: they are never reported as "no alert".
        """

        validate_month_key(month_key)
        budget = self._budgets.find_by_category_and_month(category_id, month_key)
        if budget is None:
            LOG.debug(
                "No budget for category %s in %s",
                category_id,
                month_key,
                extra={"category_id": category_id, "month_key": month_key},
            )
            return NoAlert()
        spent = self._aggregator.compute_spend(category_id, month_key)
        alert = alert_for(BudgetView(budget=budget, spent_amount=spent))
        if alert.state is not AlertState.NONE:
            LOG.warning(
                "%s",
                alert.message,
                extra={
                    "category_id": category_id,
                    "month_key": month_key,
                    "alert_state": alert.state,
                },
            )
        return alert


__all__ = [
    "ALERT_SEVERITY",
    "AlertClassifier",
    "AlertState",
    "BudgetAlert",
    "ExceededAlert",
    "NearLimitAlert",
    "NoAlert",
    "alert_for",
    "classify",
]
