from __future__ import annotations

import math
import datetime as dt
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .models import RecurrenceKind, TxnType
from .utils.months import MONTH_PATTERN


def _require_finite_positive(v: float | None, field: str) -> float | None:
    if v is None:
        return v
    if not math.isfinite(v):
        raise ValueError(f"{field} must be finite")
    if v <= 0:
        raise ValueError(f"{field} must be positive")
    return v


def _strip_required(v: str | None, field: str) -> str | None:
    if v is None:
        return v
    stripped = v.strip()
    if not stripped:
        raise ValueError(f"{field} must not be empty")
    return stripped


# Transaction Schemas
class TransactionCreate(BaseModel):
    description: str = Field(min_length=1, max_length=200)
    type: TxnType
    category: str = Field(min_length=1, max_length=100)
    value: float
    date: dt.date
    recurring_id: Optional[int] = None
    is_paid: bool = False
    current_installment: Optional[int] = Field(default=None, ge=1)
    total_installments: Optional[int] = Field(default=None, ge=1)

    @field_validator("description", "category")
    def not_blank(cls, v: str, info):
        return _strip_required(v, info.field_name)

    @field_validator("value")
    def value_positive(cls, v: float):
        return _require_finite_positive(v, "value")


class TransactionUpdate(BaseModel):
    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    type: Optional[TxnType] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    value: Optional[float] = None
    date: Optional[dt.date] = None
    is_paid: Optional[bool] = None
    current_installment: Optional[int] = Field(default=None, ge=1)
    total_installments: Optional[int] = Field(default=None, ge=1)

    @field_validator("description", "category")
    def not_blank(cls, v: str | None, info):
        return _strip_required(v, info.field_name)

    @field_validator("value")
    def value_positive(cls, v: float | None):
        return _require_finite_positive(v, "value")


class TransactionOut(BaseModel):
    id: int
    user_id: int
    description: str
    type: TxnType
    category: str
    value: float
    date: dt.date
    month: str
    recurring_id: Optional[int] = None
    is_paid: bool = False
    is_predicted: bool = False
    current_installment: Optional[int] = None
    total_installments: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class PredictedTransactionOut(BaseModel):
    """Engine-synthesized occurrence of a rule; never persisted."""

    id: str
    user_id: int
    description: str
    type: TxnType
    category: str
    value: float
    date: dt.date
    month: str
    recurring_id: int
    is_paid: bool = False
    is_predicted: bool = True
    current_installment: Optional[int] = None
    total_installments: Optional[int] = None

    model_config = ConfigDict(frozen=True)


class TransactionDeleteResult(BaseModel):
    deleted: str
    excluded: bool = False


# RecurringRule Schemas
class RecurringRuleCreate(BaseModel):
    description: str = Field(min_length=1, max_length=200)
    type: TxnType
    category: str = Field(min_length=1, max_length=100)
    value: float
    recurrence_kind: RecurrenceKind = RecurrenceKind.FIXED
    start_date: dt.date
    end_date: Optional[dt.date] = None
    day_of_month: int
    total_installments: Optional[int] = None
    is_active: bool = True
    selected_income_id: Optional[int] = None

    @field_validator("description", "category")
    def not_blank(cls, v: str, info):
        return _strip_required(v, info.field_name)

    @field_validator("value")
    def value_positive(cls, v: float):
        return _require_finite_positive(v, "value")

    @field_validator("day_of_month")
    def validate_day(cls, v: int):
        if not (1 <= v <= 31):
            raise ValueError("day_of_month must be between 1 and 31")
        return v


class RecurringRuleUpdate(BaseModel):
    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    type: Optional[TxnType] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    value: Optional[float] = None
    recurrence_kind: Optional[RecurrenceKind] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    day_of_month: Optional[int] = None
    total_installments: Optional[int] = None
    is_active: Optional[bool] = None
    selected_income_id: Optional[int] = None

    @field_validator("description", "category")
    def not_blank(cls, v: str | None, info):
        return _strip_required(v, info.field_name)

    @field_validator("value")
    def value_positive(cls, v: float | None):
        return _require_finite_positive(v, "value")

    @field_validator("day_of_month")
    def validate_day(cls, v: int | None):
        if v is not None and not (1 <= v <= 31):
            raise ValueError("day_of_month must be between 1 and 31")
        return v


class RecurringRuleOut(BaseModel):
    id: int
    user_id: int
    description: str
    type: TxnType
    category: str
    value: float
    recurrence_kind: RecurrenceKind
    start_date: dt.date
    end_date: Optional[dt.date] = None
    day_of_month: int
    total_installments: Optional[int] = None
    is_active: bool = True
    selected_income_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RecurringRuleDeleteResult(BaseModel):
    deleted: int
    transactions_removed: int
    exclusions_removed: int


# Prediction Schemas
class PredictionConvertRequest(BaseModel):
    """Optional overrides applied on top of the predicted values."""

    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    value: Optional[float] = None
    date: Optional[dt.date] = None
    is_paid: Optional[bool] = None

    @field_validator("value")
    def value_positive(cls, v: float | None):
        return _require_finite_positive(v, "value")


class PredictionExclusionOut(BaseModel):
    prediction_id: str
    rule_id: int
    month: str
    created_at: Optional[datetime] = None


# Month Schemas
class CurrentMonthIn(BaseModel):
    month: str = Field(pattern=MONTH_PATTERN)


class CurrentMonthOut(BaseModel):
    month: str


class NewMonthRequest(BaseModel):
    copy_previous: bool = False


class NewMonthResult(BaseModel):
    month: str
    copied: int


class MonthSummaryOut(BaseModel):
    month: str
    income: float
    expense: float
    balance: float
    predicted_income: float
    predicted_expense: float
    paid_expense: float
    transaction_count: int
    predicted_count: int


class MonthViewOut(BaseModel):
    month: str
    reference_date: dt.date
    transactions: list[TransactionOut | PredictedTransactionOut]
    summary: MonthSummaryOut


# Budget Schemas
class BudgetUpsert(BaseModel):
    category: str = Field(min_length=1, max_length=100)
    month: str = Field(pattern=MONTH_PATTERN)
    budget_value: float
    alert_threshold: Optional[int] = Field(default=None, ge=1, le=100)

    @field_validator("category")
    def not_blank(cls, v: str):
        return _strip_required(v, "category")

    @field_validator("budget_value")
    def value_positive(cls, v: float):
        return _require_finite_positive(v, "budget_value")


class BudgetOut(BaseModel):
    id: int
    user_id: int
    category: str
    month: str
    budget_value: float
    alert_threshold: int

    model_config = ConfigDict(from_attributes=True)


class BudgetStatusOut(BaseModel):
    category: str
    month: str
    budget_value: float
    spent_value: float
    remaining_value: float
    percentage_used: float
    alert_threshold: int
    is_over_budget: bool
    is_near_limit: bool


# Goal Schemas
class GoalCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: Optional[str] = None
    target_value: float
    current_value: float = Field(default=0, ge=0)
    deadline: Optional[dt.date] = None
    category: Optional[str] = Field(default=None, max_length=100)
    color: str = Field(default="#667eea", max_length=9)
    icon: str = Field(default="target", max_length=20)

    @field_validator("name")
    def not_blank(cls, v: str):
        return _strip_required(v, "name")

    @field_validator("target_value")
    def target_positive(cls, v: float):
        return _require_finite_positive(v, "target_value")


class GoalUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    description: Optional[str] = None
    target_value: Optional[float] = None
    current_value: Optional[float] = Field(default=None, ge=0)
    deadline: Optional[dt.date] = None
    category: Optional[str] = Field(default=None, max_length=100)
    color: Optional[str] = Field(default=None, max_length=9)
    icon: Optional[str] = Field(default=None, max_length=20)

    @field_validator("name")
    def not_blank(cls, v: str | None):
        return _strip_required(v, "name")

    @field_validator("target_value")
    def target_positive(cls, v: float | None):
        return _require_finite_positive(v, "target_value")


class GoalContribution(BaseModel):
    amount: float

    @field_validator("amount")
    def amount_finite(cls, v: float):
        if not math.isfinite(v):
            raise ValueError("amount must be finite")
        if v == 0:
            raise ValueError("amount must not be zero")
        return v


class GoalOut(BaseModel):
    id: int
    user_id: int
    name: str
    description: Optional[str] = None
    target_value: float
    current_value: float
    deadline: Optional[dt.date] = None
    category: Optional[str] = None
    color: str
    icon: str
    is_completed: bool
    progress_percentage: float = 0.0

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def fill_progress(self):
        if self.target_value:
            self.progress_percentage = round(min(self.current_value / self.target_value * 100, 100.0), 2)
        return self


# Category Schemas
class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    max_percentage: Optional[float] = Field(default=None, gt=0, le=100)
    max_value: Optional[float] = None

    @field_validator("name")
    def not_blank(cls, v: str):
        return _strip_required(v, "name")

    @field_validator("max_value")
    def max_value_positive(cls, v: float | None):
        return _require_finite_positive(v, "max_value")


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    max_percentage: Optional[float] = Field(default=None, gt=0, le=100)
    max_value: Optional[float] = None

    @field_validator("name")
    def not_blank(cls, v: str | None):
        return _strip_required(v, "name")

    @field_validator("max_value")
    def max_value_positive(cls, v: float | None):
        return _require_finite_positive(v, "max_value")


class CategoryOut(BaseModel):
    name: str
    is_default: bool
    id: Optional[int] = None
    max_percentage: Optional[float] = None
    max_value: Optional[float] = None


# Maintenance
class ResetResult(BaseModel):
    removed: int
    details: dict[str, int] | None = None
