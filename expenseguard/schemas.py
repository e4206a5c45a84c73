"""Pydantic schemas for the records and derived views of the engine."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, computed_field, field_validator

from .money import ZERO, usage_percent
from .months import validate_month_key

NEAR_LIMIT_PERCENT = Decimal(80)
EXCEEDED_PERCENT = Decimal(100)

PositiveAmount = Annotated[Decimal, Field(gt=0, max_digits=14, decimal_places=2)]


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


def _clean_category_name(value: Optional[str]) -> str:
    if value is None:
        raise ValueError("Category name must not be null")
    stripped = value.strip()
    if not stripped:
        raise ValueError("Category name must not be blank")
    return stripped


class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return _clean_category_name(value)


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None

    # Validators only run for fields the caller sent, so an omitted name stays unset.
    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: Optional[str]) -> str:
        return _clean_category_name(value)


class CategoryRead(CategoryBase, ORMModel):
    id: int
    created_at: datetime


class ExpenseBase(BaseModel):
    description: str = Field(..., min_length=1, max_length=255)
    amount: PositiveAmount
    spent_on: date
    notes: Optional[str] = None


class ExpenseCreate(ExpenseBase):
    category_id: int = Field(..., ge=1)


class ExpenseUpdate(BaseModel):
    description: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[PositiveAmount] = None
    spent_on: Optional[date] = None
    category_id: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = None

    @field_validator("description", "amount", "spent_on", "category_id")
    @classmethod
    def _reject_null(cls, value: object, info: ValidationInfo) -> object:
        if value is None:
            raise ValueError(f"{info.field_name} must not be null")
        return value


class ExpenseRead(ExpenseBase, ORMModel):
    id: int
    category_id: Optional[int]
    category_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BudgetCreate(BaseModel):
    category_id: int = Field(..., ge=1)
    month_key: str
    limit_amount: PositiveAmount

    @field_validator("month_key")
    @classmethod
    def _check_month_key(cls, value: str) -> str:
        return validate_month_key(value)


class BudgetRead(ORMModel):
    id: int
    category_id: int
    category_name: Optional[str] = None
    month_key: str
    limit_amount: Decimal


class BudgetStatus(str, Enum):
    OK = "OK"
    NEAR_LIMIT = "NEAR_LIMIT"
    EXCEEDED = "EXCEEDED"


class BudgetView(BaseModel):
    """A budget paired with the spend computed for its month.

    ``remaining``, ``usage_percent`` and ``status`` are derived on every
    access and never stored.
    """

    budget: BudgetRead
    spent_amount: Decimal = Field(..., ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def remaining(self) -> Decimal:
        return self.budget.limit_amount - self.spent_amount

    @computed_field  # type: ignore[prop-decorator]
    @property
    def usage_percent(self) -> Decimal:
        return usage_percent(self.spent_amount, self.budget.limit_amount)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> BudgetStatus:
        percent = self.usage_percent
        if percent >= EXCEEDED_PERCENT:
            return BudgetStatus.EXCEEDED
        if percent >= NEAR_LIMIT_PERCENT:
            return BudgetStatus.NEAR_LIMIT
        return BudgetStatus.OK

    @property
    def overage(self) -> Decimal:
        return self.spent_amount - self.budget.limit_amount


class CategorySummary(BaseModel):
    category_id: int
    category_name: str
    total_spent: Decimal


class MonthlySummary(BaseModel):
    month_key: str
    rows: List[CategorySummary]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_spent(self) -> Decimal:
        return sum((row.total_spent for row in self.rows), ZERO)

    def totals_by_category(self) -> dict[int, Decimal]:
        return {row.category_id: row.total_spent for row in self.rows}
