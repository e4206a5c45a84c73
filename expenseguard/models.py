"""SQLAlchemy models for the expense and budget tables."""
from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    BigInteger,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.types import TypeDecorator

from .database import Base
from .money import from_cents, to_cents


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


class Cents(TypeDecorator):
    """Stores a :class:`~decimal.Decimal` amount as integer minor units.

    Integer storage keeps ``SUM`` exact on every backend, SQLite included.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> Optional[int]:
        if value is None:
            return None
        return to_cents(value)

    def process_result_value(self, value: Any, dialect: Any) -> Optional[Decimal]:
        if value is None:
            return None
        return from_cents(value)


class Category(Base):
    __tablename__ = "categories"

    id: int = Column(Integer, primary_key=True, index=True)
    name: str = Column(String(100), unique=True, nullable=False, index=True)
    description: Optional[str] = Column(Text, nullable=True)
    created_at: datetime = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Expenses survive their category: the ORM nulls ``category_id`` on delete.
    expenses = relationship("Expense", back_populates="category")
    budgets = relationship("Budget", back_populates="category", cascade="all, delete-orphan")


class Expense(Base):
    __tablename__ = "expenses"

    id: int = Column(Integer, primary_key=True, index=True)
    category_id: Optional[int] = Column(
        Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    description: str = Column(String(255), nullable=False)
    amount: Decimal = Column(Cents, nullable=False)
    spent_on: date = Column(Date, nullable=False, index=True)
    notes: Optional[str] = Column(Text, nullable=True)
    created_at: datetime = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: datetime = Column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    category = relationship("Category", back_populates="expenses")

    @property
    def category_name(self) -> Optional[str]:
        return self.category.name if self.category is not None else None


class Budget(Base):
    __tablename__ = "budgets"
    __table_args__ = (UniqueConstraint("category_id", "month_key", name="uq_budget_category_month"),)

    id: int = Column(Integer, primary_key=True, index=True)
    category_id: int = Column(
        Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    month_key: str = Column(String(7), nullable=False, index=True)
    limit_amount: Decimal = Column(Cents, nullable=False)

    category = relationship("Category", back_populates="budgets")

    @property
    def category_name(self) -> Optional[str]:
        return self.category.name if self.category is not None else None


__all__ = ["Budget", "Category", "Cents", "Expense", "utcnow"]
