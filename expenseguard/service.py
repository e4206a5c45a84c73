"""Engine facade consumed by the REST surface and the CLI."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from . import schemas
from .aggregation import BudgetAggregator
from .alerts import AlertClassifier, BudgetAlert
from .database import Database
from .money import ZERO
from .months import month_key_for, validate_month_key
from .stores import (
    BudgetStore,
    CategoryStore,
    ExpenseStore,
    SqlBudgetStore,
    SqlCategoryStore,
    SqlExpenseStore,
)
from .summary import MonthlySummaryBuilder


class ExpenseSaveResult(BaseModel):
    expense: schemas.ExpenseRead
    alert: BudgetAlert


class ExpenseService:
    """Expenses, categories and budgets plus the alerting that ties them together."""

    def __init__(
        self,
        expenses: ExpenseStore,
        budgets: BudgetStore,
        categories: CategoryStore,
    ) -> None:
        self._expenses = expenses
        self._budgets = budgets
        self._categories = categories
        self.aggregator = BudgetAggregator(expenses)
        self.classifier = AlertClassifier(budgets, self.aggregator)
        self.summary_builder = MonthlySummaryBuilder(expenses)

    @classmethod
    def from_database(cls, database: Database) -> "ExpenseService":
        return cls(
            SqlExpenseStore(database),
            SqlBudgetStore(database),
            SqlCategoryStore(database),
        )

    # Expenses

    def save_expense(self, expense_in: schemas.ExpenseCreate) -> ExpenseSaveResult:
        """Persist a new expense and check the budget of the month it belongs to.

        The month comes from the expense date, so back-dated and future-dated
        expenses are checked against their own month.
        """

        expense = self._expenses.create(expense_in)
        alert = self.check_budget(expense_in.category_id, month_key_for(expense.spent_on))
        return ExpenseSaveResult(expense=expense, alert=alert)

    def update_expense(
        self, expense_id: int, update_in: schemas.ExpenseUpdate
    ) -> schemas.ExpenseRead:
        return self._expenses.update(expense_id, update_in)

    def delete_expense(self, expense_id: int) -> None:
        self._expenses.delete(expense_id)

    def get_expense(self, expense_id: int) -> schemas.ExpenseRead:
        return self._expenses.get(expense_id)

    def list_expenses(self, month_key: Optional[str] = None) -> list[schemas.ExpenseRead]:
        if month_key is None:
            return self._expenses.list_all()
        return self._expenses.list_by_month(validate_month_key(month_key))

    # Budgets and alerts

    def check_budget(self, category_id: int, month_key: str) -> BudgetAlert:
        return self.classifier.check_budget(category_id, month_key)

    def get_budgets_for_month(self, month_key: str) -> list[schemas.BudgetView]:
        """Budgets of the month with their spend, taken from the monthly summary."""

        validate_month_key(month_key)
        budgets = self._budgets.find_by_month(month_key)
        if not budgets:
            return []
        totals = self.summary_builder.summarize(month_key).totals_by_category()
        return [
            schemas.BudgetView(
                budget=budget,
                spent_amount=totals.get(budget.category_id, ZERO),
            )
            for budget in budgets
        ]

    def save_budget(self, budget_in: schemas.BudgetCreate) -> schemas.BudgetRead:
        return self._budgets.upsert(budget_in)

    def delete_budget(self, budget_id: int) -> None:
        self._budgets.delete(budget_id)

    def get_monthly_category_summary(self, month_key: str) -> schemas.MonthlySummary:
        return self.summary_builder.summarize(month_key)

    # Categories

    def list_categories(self) -> list[schemas.CategoryRead]:
        return self._categories.list_all()

    def get_category(self, category_id: int) -> schemas.CategoryRead:
        return self._categories.get(category_id)

    def create_category(self, category_in: schemas.CategoryCreate) -> schemas.CategoryRead:
        return self._categories.create(category_in)

    def update_category(
        self, category_id: int, update_in: schemas.CategoryUpdate
    ) -> schemas.CategoryRead:
        return self._categories.update(category_id, update_in)

    def delete_category(self, category_id: int) -> None:
        self._categories.delete(category_id)

    def seed_default_categories(self) -> int:
        return self._categories.seed_defaults()


__all__ = ["ExpenseSaveResult", "ExpenseService"]
