"""Store contracts and their SQLAlchemy implementations.

The engine depends only on the :class:`ExpenseStore`, :class:`BudgetStore` and
:class:`CategoryStore` protocols. The ``Sql*`` classes implement them on top of
a :class:`~expenseguard.database.Database`; each public method runs in its own
transaction and returns detached pydantic read models.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal
from typing import Final, Optional, Protocol

from sqlalchemy import and_, func, select, type_coerce
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.sql.elements import ColumnElement

from . import models, schemas
from .database import Database
from .errors import ConflictError, NotFoundError, StoreError
from .money import ZERO
from .months import month_bounds

LOG = logging.getLogger(__name__)

DEFAULT_CATEGORIES: Final[tuple[tuple[str, str], ...]] = (
    ("Food & Dining", "Restaurants, groceries, and food delivery"),
    ("Transportation", "Fuel, public transit, ride-shares"),
    ("Housing", "Rent, utilities, maintenance"),
    ("Healthcare", "Medical, dental, pharmacy"),
    ("Entertainment", "Movies, games, subscriptions"),
    ("Shopping", "Clothing, electronics, general retail"),
    ("Education", "Tuition, books, courses"),
    ("Miscellaneous", "Other uncategorised expenses"),
)

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class ExpenseStore(Protocol):
    def sum_by_category_and_month(self, category_id: int, month_key: str) -> Decimal: ...

    def category_totals_for_month(self, month_key: str) -> list[schemas.CategorySummary]: ...

    def list_all(self) -> list[schemas.ExpenseRead]: ...

    def list_by_month(self, month_key: str) -> list[schemas.ExpenseRead]: ...

    def list_by_category_and_month(
        self, category_id: int, month_key: str
    ) -> list[schemas.ExpenseRead]: ...

    def get(self, expense_id: int) -> schemas.ExpenseRead: ...

    def create(self, expense_in: schemas.ExpenseCreate) -> schemas.ExpenseRead: ...

    def update(self, expense_id: int, update_in: schemas.ExpenseUpdate) -> schemas.ExpenseRead: ...

    def delete(self, expense_id: int) -> None: ...


class BudgetStore(Protocol):
    def find_by_month(self, month_key: str) -> list[schemas.BudgetRead]: ...

    def find_by_category_and_month(
        self, category_id: int, month_key: str
    ) -> Optional[schemas.BudgetRead]: ...

    def get(self, budget_id: int) -> schemas.BudgetRead: ...

    def upsert(self, budget_in: schemas.BudgetCreate) -> schemas.BudgetRead: ...

    def delete(self, budget_id: int) -> None: ...


class CategoryStore(Protocol):
    def list_all(self) -> list[schemas.CategoryRead]: ...

    def get(self, category_id: int) -> schemas.CategoryRead: ...

    def create(self, category_in: schemas.CategoryCreate) -> schemas.CategoryRead: ...

    def update(
        self, category_id: int, update_in: schemas.CategoryUpdate
    ) -> schemas.CategoryRead: ...

    def delete(self, category_id: int) -> None: ...

    def seed_defaults(self) -> int: ...


def _in_month(month_key: str) -> ColumnElement[bool]:
    """Filter expenses whose date falls inside the calendar month."""

    start, end = month_bounds(month_key)
    return and_(models.Expense.spent_on >= start, models.Expense.spent_on < end)


def _spend_total() -> ColumnElement[Decimal]:
    # The coerced type routes the integer SUM back through ``Cents``.
    return type_coerce(func.coalesce(func.sum(models.Expense.amount), 0), models.Cents())


def _require_category(session: Session, category_id: int) -> models.Category:
    category = session.get(models.Category, category_id)
    if category is None:
        raise NotFoundError(f"Category {category_id} not found")
    return category


def _expense_query():
    return select(models.Expense).options(joinedload(models.Expense.category))


def _to_expense_reads(expenses: Sequence[models.Expense]) -> list[schemas.ExpenseRead]:
    return [schemas.ExpenseRead.model_validate(expense) for expense in expenses]


class SqlExpenseStore:
    """Expense persistence and aggregate queries."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def sum_by_category_and_month(self, category_id: int, month_key: str) -> Decimal:
        stmt = select(_spend_total()).where(
            models.Expense.category_id == category_id,
            _in_month(month_key),
        )
        with self._db.session_scope() as session:
            total = session.scalar(stmt)
        return total if total is not None else ZERO

    def category_totals_for_month(self, month_key: str) -> list[schemas.CategorySummary]:
        """Total per existing category, zero for categories without expenses."""

        total = _spend_total().label("total")
        stmt = (
            select(models.Category.id, models.Category.name, total)
            .outerjoin(
                models.Expense,
                and_(models.Expense.category_id == models.Category.id, _in_month(month_key)),
            )
            .group_by(models.Category.id, models.Category.name)
            .order_by(total.desc(), models.Category.name)
        )
        with self._db.session_scope() as session:
            rows = session.execute(stmt).all()
        return [
            schemas.CategorySummary(category_id=row.id, category_name=row.name, total_spent=row.total)
            for row in rows
        ]

    def list_all(self) -> list[schemas.ExpenseRead]:
        stmt = _expense_query().order_by(models.Expense.spent_on.desc(), models.Expense.id.desc())
        with self._db.session_scope() as session:
            return _to_expense_reads(session.scalars(stmt).unique().all())

    def list_by_month(self, month_key: str) -> list[schemas.ExpenseRead]:
        stmt = (
            _expense_query()
            .where(_in_month(month_key))
            .order_by(models.Expense.spent_on.desc(), models.Expense.id.desc())
        )
        with self._db.session_scope() as session:
            return _to_expense_reads(session.scalars(stmt).unique().all())

    def list_by_category_and_month(
        self, category_id: int, month_key: str
    ) -> list[schemas.ExpenseRead]:
        stmt = (
            _expense_query()
            .where(models.Expense.category_id == category_id, _in_month(month_key))
            .order_by(models.Expense.spent_on.desc(), models.Expense.id.desc())
        )
        with self._db.session_scope() as session:
            return _to_expense_reads(session.scalars(stmt).unique().all())

    def get(self, expense_id: int) -> schemas.ExpenseRead:
        with self._db.session_scope() as session:
            return schemas.ExpenseRead.model_validate(self._get(session, expense_id))

    def create(self, expense_in: schemas.ExpenseCreate) -> schemas.ExpenseRead:
        with self._db.session_scope() as session:
            _require_category(session, expense_in.category_id)
            expense = models.Expense(**expense_in.model_dump())
            session.add(expense)
            session.flush()
            session.refresh(expense)
            LOG.info("Created expense %s", expense.id, extra={"category_id": expense.category_id})
            return schemas.ExpenseRead.model_validate(expense)

    def update(self, expense_id: int, update_in: schemas.ExpenseUpdate) -> schemas.ExpenseRead:
        with self._db.session_scope() as session:
            expense = self._get(session, expense_id)
            changes = update_in.model_dump(exclude_unset=True)
            if changes.get("category_id") is not None:
                _require_category(session, changes["category_id"])
            for field, value in changes.items():
                setattr(expense, field, value)
            session.flush()
            session.refresh(expense)
            LOG.info("Updated expense %s", expense.id, extra={"category_id": expense.category_id})
            return schemas.ExpenseRead.model_validate(expense)

    def delete(self, expense_id: int) -> None:
        with self._db.session_scope() as session:
            session.delete(self._get(session, expense_id))
            session.flush()
        LOG.info("Deleted expense %s", expense_id)

    @staticmethod
    def _get(session: Session, expense_id: int) -> models.Expense:
        expense = session.get(models.Expense, expense_id)
        if expense is None:
            raise NotFoundError(f"Expense {expense_id} not found")
        return expense


def _budget_query():
    return (
        select(models.Budget)
        .join(models.Category, models.Budget.category_id == models.Category.id)
        .options(joinedload(models.Budget.category))
    )


class SqlBudgetStore:
    """Budget persistence keyed on ``(category_id, month_key)``."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def find_by_month(self, month_key: str) -> list[schemas.BudgetRead]:
        stmt = (
            _budget_query()
            .where(models.Budget.month_key == month_key)
            .order_by(models.Category.name)
        )
        with self._db.session_scope() as session:
            budgets = session.scalars(stmt).unique().all()
            return [schemas.BudgetRead.model_validate(budget) for budget in budgets]

    def find_by_category_and_month(
        self, category_id: int, month_key: str
    ) -> Optional[schemas.BudgetRead]:
        stmt = _budget_query().where(
            models.Budget.category_id == category_id,
            models.Budget.month_key == month_key,
        )
        with self._db.session_scope() as session:
            budget = session.scalars(stmt).unique().one_or_none()
            return schemas.BudgetRead.model_validate(budget) if budget is not None else None

    def get(self, budget_id: int) -> schemas.BudgetRead:
        with self._db.session_scope() as session:
            return schemas.BudgetRead.model_validate(self._get(session, budget_id))

    def upsert(self, budget_in: schemas.BudgetCreate) -> schemas.BudgetRead:
        """Insert the budget or overwrite the limit of the existing row.

        A single ``INSERT ... ON CONFLICT DO UPDATE`` keeps the composite key
        unique even when two writers race; the existing id is preserved.
        """

        insert = _UPSERT_DIALECTS.get(self._db.dialect_name)
        if insert is None:
            raise StoreError(f"Budget upsert is not supported on {self._db.dialect_name!r}")
        stmt = insert(models.Budget).values(
            category_id=budget_in.category_id,
            month_key=budget_in.month_key,
            limit_amount=budget_in.limit_amount,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["category_id", "month_key"],
            set_={"limit_amount": stmt.excluded.limit_amount},
        ).returning(models.Budget.id)
        with self._db.session_scope() as session:
            _require_category(session, budget_in.category_id)
            budget_id = session.execute(stmt).scalar_one()
            budget = session.get(models.Budget, budget_id, populate_existing=True)
            LOG.info(
                "Saved budget %s limit=%s",
                budget_id,
                budget_in.limit_amount,
                extra={"category_id": budget_in.category_id, "month_key": budget_in.month_key},
            )
            return schemas.BudgetRead.model_validate(budget)

    def delete(self, budget_id: int) -> None:
        with self._db.session_scope() as session:
            session.delete(self._get(session, budget_id))
            session.flush()
        LOG.info("Deleted budget %s", budget_id)

    @staticmethod
    def _get(session: Session, budget_id: int) -> models.Budget:
        budget = session.get(models.Budget, budget_id)
        if budget is None:
            raise NotFoundError(f"Budget {budget_id} not found")
        return budget


class SqlCategoryStore:
    """Category persistence; deleting a category detaches its expenses."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def list_all(self) -> list[schemas.CategoryRead]:
        stmt = select(models.Category).order_by(models.Category.name)
        with self._db.session_scope() as session:
            return [schemas.CategoryRead.model_validate(c) for c in session.scalars(stmt)]

    def get(self, category_id: int) -> schemas.CategoryRead:
        with self._db.session_scope() as session:
            return schemas.CategoryRead.model_validate(_require_category(session, category_id))

    def create(self, category_in: schemas.CategoryCreate) -> schemas.CategoryRead:
        with self._db.session_scope() as session:
            category = models.Category(**category_in.model_dump())
            session.add(category)
            try:
                session.flush()
            except IntegrityError as exc:
                raise ConflictError("Category name must be unique") from exc
            session.refresh(category)
            LOG.info("Created category %s (%s)", category.id, category.name)
            return schemas.CategoryRead.model_validate(category)

    def update(
        self, category_id: int, update_in: schemas.CategoryUpdate
    ) -> schemas.CategoryRead:
        with self._db.session_scope() as session:
            category = _require_category(session, category_id)
            for field, value in update_in.model_dump(exclude_unset=True).items():
                setattr(category, field, value)
            try:
                session.flush()
            except IntegrityError as exc:
                raise ConflictError("Category name must be unique") from exc
            session.refresh(category)
            return schemas.CategoryRead.model_validate(category)

    def delete(self, category_id: int) -> None:
        """Delete a category with its budgets; its expenses lose the reference."""

        with self._db.session_scope() as session:
            category = _require_category(session, category_id)
            detached = len(category.expenses)
            removed = len(category.budgets)
            session.delete(category)
            session.flush()
        LOG.info(
            "Deleted category %s: %d budget(s) removed, %d expense(s) detached",
            category_id,
            removed,
            detached,
            extra={"category_id": category_id},
        )

    def seed_defaults(self) -> int:
        """Insert the default categories that are missing; returns how many were added."""

        with self._db.session_scope() as session:
            existing = set(session.scalars(select(models.Category.name)))
            missing = [(name, text) for name, text in DEFAULT_CATEGORIES if name not in existing]
            session.add_all(models.Category(name=name, description=text) for name, text in missing)
        if missing:
            LOG.info("Seeded %d default categories", len(missing))
        return len(missing)


__all__ = [
    "BudgetStore",
    "CategoryStore",
    "DEFAULT_CATEGORIES",
    "ExpenseStore",
    "SqlBudgetStore",
    "SqlCategoryStore",
    "SqlExpenseStore",
]
