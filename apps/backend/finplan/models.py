from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Boolean,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from .core.config import settings
from .core.database import Base
from .utils.months import month_key


try:
    LOCAL_ZONE = ZoneInfo(settings.TIMEZONE)
except (ZoneInfoNotFoundError, ValueError):
    LOCAL_ZONE = ZoneInfo("UTC")


def now_local_naive() -> datetime:
    """Return naive datetime normalized to configured local timezone."""
    return datetime.now(LOCAL_ZONE).replace(tzinfo=None)


def today_local() -> date:
    return now_local_naive().date()


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    # persist the lowercase values rather than the member names
    return [member.value for member in enum_cls]


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_local_naive, onupdate=now_local_naive, nullable=False)


class User(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(100))
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    setting: Mapped["UserSetting | None"] = relationship(back_populates="user", uselist=False)


class UserSetting(Base, TimestampMixin):
    """Per-owner client state: the month currently selected for display."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), unique=True, nullable=False)
    current_month: Mapped[str | None] = mapped_column(String(7))

    user: Mapped[User] = relationship(back_populates="setting")


class TxnType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class RecurrenceKind(str, Enum):
    FIXED = "fixed"
    INSTALLMENT = "installment"
    VARIABLE = "variable"
    VARIABLE_BY_INCOME = "variable_by_income"


class RecurringRule(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"), nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[TxnType] = mapped_column(SAEnum(TxnType, name="txn_type", values_callable=_enum_values), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    # For variable_by_income rules this is the percentage applied to the referenced income
    value: Mapped[float] = mapped_column(Numeric(18, 2), nullable=False)
    recurrence_kind: Mapped[RecurrenceKind] = mapped_column(
        SAEnum(RecurrenceKind, name="recurrence_kind", values_callable=_enum_values),
        nullable=False,
        default=RecurrenceKind.FIXED,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date)
    day_of_month: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-31, clamped per month
    total_installments: Mapped[int | None] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # Plain reference (no FK) to avoid a transaction <-> rule cycle; may dangle
    selected_income_id: Mapped[int | None] = mapped_column(Integer)

    __table_args__ = (
        CheckConstraint("day_of_month BETWEEN 1 AND 31", name="ck_recurring_day_of_month"),
        CheckConstraint("value > 0", name="ck_recurring_value_positive"),
        CheckConstraint("end_date IS NULL OR end_date >= start_date", name="ck_recurring_end_after_start"),
        CheckConstraint(
            "recurrence_kind != 'installment' OR (total_installments IS NOT NULL AND total_installments > 0)",
            name="ck_recurring_installments",
        ),
        Index("ix_recurring_user_active", "user_id", "is_active"),
    )


class Transaction(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"), nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[TxnType] = mapped_column(SAEnum(TxnType, name="txn_type", values_callable=_enum_values), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    value: Mapped[float] = mapped_column(Numeric(18, 2), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    month: Mapped[str] = mapped_column(String(7), nullable=False)
    recurring_id: Mapped[int | None] = mapped_column(ForeignKey("recurringrule.id", ondelete="CASCADE"))
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    current_installment: Mapped[int | None] = mapped_column(Integer)
    total_installments: Mapped[int | None] = mapped_column(Integer)

    rule: Mapped["RecurringRule | None"] = relationship("RecurringRule", foreign_keys=[recurring_id])

    @validates("date")
    def _sync_month(self, key: str, value: dt.date) -> dt.date:
        # month is always the calendar-month truncation of date
        self.month = month_key(value)
        return value

    __table_args__ = (
        CheckConstraint("value > 0", name="ck_txn_value_positive"),
        UniqueConstraint("recurring_id", "month", name="uq_txn_rule_month"),
        Index("ix_txn_user_month", "user_id", "month"),
    )


class PredictionExclusion(Base, TimestampMixin):
    """Exclusion Ledger entry: the prediction of ``rule_id`` for ``month`` was dismissed."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    rule_id: Mapped[int] = mapped_column(ForeignKey("recurringrule.id", ondelete="CASCADE"), nullable=False)
    month: Mapped[str] = mapped_column(String(7), nullable=False)

    __table_args__ = (
        UniqueConstraint("rule_id", "month", name="uq_prediction_exclusion_rule_month"),
        Index("ix_prediction_exclusion_user", "user_id"),
    )


class CategoryBudget(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    month: Mapped[str] = mapped_column(String(7), nullable=False)
    budget_value: Mapped[float] = mapped_column(Numeric(18, 2), nullable=False)
    alert_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=80)

    __table_args__ = (
        UniqueConstraint("user_id", "category", "month", name="uq_budget_category_month"),
        CheckConstraint("budget_value > 0", name="ck_budget_value_positive"),
    )


class FinancialGoal(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    target_value: Mapped[float] = mapped_column(Numeric(18, 2), nullable=False)
    current_value: Mapped[float] = mapped_column(Numeric(18, 2), nullable=False, default=0)
    deadline: Mapped[date | None] = mapped_column(Date)
    category: Mapped[str | None] = mapped_column(String(100))
    color: Mapped[str] = mapped_column(String(9), nullable=False, default="#667eea")
    icon: Mapped[str] = mapped_column(String(20), nullable=False, default="target")
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("target_value > 0", name="ck_goal_target_positive"),
    )


class Category(Base, TimestampMixin):
    """Owner-defined category; the built-in defaults are not stored."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    max_percentage: Mapped[float | None] = mapped_column(Float)
    max_value: Mapped[float | None] = mapped_column(Numeric(18, 2))

    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_category_name"),)


class HiddenCategory(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id"), nullable=False)
    category_name: Mapped[str] = mapped_column(String(100), nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "category_name", name="uq_hidden_category_name"),)
