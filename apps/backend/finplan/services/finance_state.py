from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from functools import cached_property
from typing import Iterable, Mapping

from sqlalchemy.orm import Session

from finplan import models
from finplan.core.config import settings
from finplan.core.errors import ValidationError
from finplan.schemas import (
    MonthSummaryOut,
    PredictedTransactionOut,
    RecurringRuleOut,
    TransactionOut,
)
from finplan.services.projection_engine import PredictionKey, generate_predictions, horizon_months
from finplan.services.repository import Repositories
from finplan.utils.months import month_key

logger = logging.getLogger(__name__)

MergedTransaction = TransactionOut | PredictedTransactionOut


@dataclass(frozen=True)
class FinanceState:
    """Snapshot of one owner's rules, exclusion ledger and loaded transactions.

    Instances are never mutated. Services apply a mutation to storage first and
    then derive the next state with one of the ``with_*``/``without_*``
    methods, so a failed write leaves the previous state intact.
    """

    user_id: int
    current_month: str
    reference_date: date
    horizon: int
    rules: tuple[RecurringRuleOut, ...] = ()
    exclusions: frozenset[PredictionKey] = frozenset()
    transactions_by_month: Mapping[str, tuple[TransactionOut, ...]] = field(default_factory=dict)

    @cached_property
    def predictions(self) -> list[PredictedTransactionOut]:
        return generate_predictions(
            self.rules,
            self.exclusions,
            self.transactions_by_month,
            self.horizon,
            self.reference_date,
        )

    @property
    def projected_months(self) -> list[str]:
        return horizon_months(self.reference_date, self.horizon)

    def predictions_for_month(self, month: str) -> list[PredictedTransactionOut]:
        return [p for p in self.predictions if p.month == month]

    def find_prediction(self, key: PredictionKey) -> PredictedTransactionOut | None:
        for prediction in self.predictions:
            if prediction.recurring_id == key.rule_id and prediction.month == key.month:
                return prediction
        return None

    def find_rule(self, rule_id: int) -> RecurringRuleOut | None:
        return next((r for r in self.rules if r.id == rule_id), None)

    def transactions_for(self, month: str) -> list[TransactionOut]:
        return list(self.transactions_by_month.get(month, ()))

    def find_transaction(self, transaction_id: int) -> TransactionOut | None:
        for items in self.transactions_by_month.values():
            for tx in items:
                if tx.id == transaction_id:
                    return tx
        return None

    def merged_month(self, month: str) -> list[MergedTransaction]:
        merged: list[MergedTransaction] = [*self.transactions_for(month), *self.predictions_for_month(month)]
        merged.sort(key=lambda t: (t.date, t.is_predicted, str(t.id)))
        return merged

    def summary(self, month: str) -> MonthSummaryOut:
        return summarize_month(month, self.merged_month(month))

    # functional updates

    def with_current_month(self, month: str) -> "FinanceState":
        return replace(self, current_month=month)

    def with_transaction(self, tx: TransactionOut) -> "FinanceState":
        by_month = {m: tuple(t for t in items if t.id != tx.id) for m, items in self.transactions_by_month.items()}
        by_month[tx.month] = (*by_month.get(tx.month, ()), tx)
        return replace(self, transactions_by_month=by_month)

    def without_transaction(self, transaction_id: int) -> "FinanceState":
        by_month = {
            m: tuple(t for t in items if t.id != transaction_id) for m, items in self.transactions_by_month.items()
        }
        return replace(self, transactions_by_month=by_month)

    def with_exclusion(self, key: PredictionKey) -> "FinanceState":
        return replace(self, exclusions=self.exclusions | {key})

    def without_exclusion(self, key: PredictionKey) -> "FinanceState":
        return replace(self, exclusions=self.exclusions - {key})

    def with_rule(self, rule: RecurringRuleOut) -> "FinanceState":
        rules = tuple(r for r in self.rules if r.id != rule.id) + (rule,)
        return replace(self, rules=tuple(sorted(rules, key=lambda r: r.id)))

    def without_rule(self, rule_id: int) -> "FinanceState":
        by_month = {
            m: tuple(t for t in items if t.recurring_id != rule_id) for m, items in self.transactions_by_month.items()
        }
        return replace(
            self,
            rules=tuple(r for r in self.rules if r.id != rule_id),
            exclusions=frozenset(k for k in self.exclusions if k.rule_id != rule_id),
            transactions_by_month=by_month,
        )


def summarize_month(month: str, transactions: Iterable[MergedTransaction]) -> MonthSummaryOut:
    income = expense = predicted_income = predicted_expense = paid_expense = 0.0
    count = predicted_count = 0
    for tx in transactions:
        count += 1
        value = float(tx.value)
        if tx.type == models.TxnType.INCOME:
            income += value
            if tx.is_predicted:
                predicted_income += value
        else:
            expense += value
            if tx.is_predicted:
                predicted_expense += value
            elif tx.is_paid:
                paid_expense += value
        if tx.is_predicted:
            predicted_count += 1
    return MonthSummaryOut(
        month=month,
        income=round(income, 2),
        expense=round(expense, 2),
        balance=round(income - expense, 2),
        predicted_income=round(predicted_income, 2),
        predicted_expense=round(predicted_expense, 2),
        paid_expense=round(paid_expense, 2),
        transaction_count=count,
        predicted_count=predicted_count,
    )


def resolve_horizon(horizon: int | None) -> int:
    if horizon is None:
        return settings.PREDICTION_HORIZON_MONTHS
    if horizon < 0 or horizon > settings.MAX_PREDICTION_HORIZON_MONTHS:
        raise ValidationError(
            f"horizon must be between 0 and {settings.MAX_PREDICTION_HORIZON_MONTHS}"
        )
    return horizon


class FinanceStateLoader:
    """Build a :class:`FinanceState` for one owner from storage."""

    def __init__(self, db: Session, repos: Repositories | None = None) -> None:
        self.db = db
        self.repos = repos or Repositories(db)

    def current_month(self, user_id: int) -> str:
        setting = self.repos.settings.find(user_id)
        if setting is not None and setting.current_month:
            return setting.current_month
        return month_key(models.today_local())

    def load(
        self,
        user_id: int,
        *,
        reference_date: date | None = None,
        horizon: int | None = None,
        extra_months: Iterable[str] = (),
    ) -> FinanceState:
        reference = reference_date or models.today_local()
        resolved_horizon = resolve_horizon(horizon)
        current = self.current_month(user_id)

        rules = tuple(
            RecurringRuleOut.model_validate(rule) for rule in self.repos.rules.list_by_owner(user_id)
        )
        exclusions = frozenset(
            PredictionKey(item.rule_id, item.month) for item in self.repos.exclusions.list_by_owner(user_id)
        )

        months = set(horizon_months(reference, resolved_horizon))
        months.add(current)
        months.update(extra_months)
        # income transactions referenced by variable_by_income rules may live outside the window
        income_ids = {r.selected_income_id for r in rules if r.selected_income_id}
        if income_ids:
            income_months = (
                self.db.query(models.Transaction.month)
                .filter(models.Transaction.user_id == user_id, models.Transaction.id.in_(income_ids))
                .distinct()
                .all()
            )
            months.update(m for (m,) in income_months)

        by_month: dict[str, tuple[TransactionOut, ...]] = {}
        for row in self.repos.transactions.list_by_owner_and_months(user_id, months):
            tx = TransactionOut.model_validate(row)
            by_month[tx.month] = (*by_month.get(tx.month, ()), tx)

        logger.debug(
            "Loaded state for user %s: %d rules, %d exclusions, %d months",
            user_id,
            len(rules),
            len(exclusions),
            len(by_month),
        )
        return FinanceState(
            user_id=user_id,
            current_month=current,
            reference_date=reference,
            horizon=resolved_horizon,
            rules=rules,
            exclusions=exclusions,
            transactions_by_month=by_month,
        )
