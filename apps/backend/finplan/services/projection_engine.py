"""Expand recurring rules into predicted transactions.

Everything in this module is a pure function of its arguments: no session,
no clock and no module state. Callers pass the rules, the exclusion ledger
and the real transactions they already loaded, and get back a fresh list of
:class:`~finplan.schemas.PredictedTransactionOut` on every call.

Policies:

* A ``day_of_month`` beyond the length of the target month is clamped to the
  month's last day (31 in February 2024 gives 2024-02-29).
* Installments are numbered from the first anchored occurrence on or after
  ``start_date``; an installment rule therefore yields exactly
  ``total_installments`` occurrences over its lifetime.
* A ``variable_by_income`` rule whose income transaction cannot be found is
  omitted for that call and a warning is logged.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Collection, Iterable, Mapping, Sequence

from finplan.models import RecurrenceKind
from finplan.schemas import PredictedTransactionOut, RecurringRuleOut, TransactionOut
from finplan.utils.months import clamp_day, month_diff, month_key, parse_month, shift_month

logger = logging.getLogger(__name__)

PREDICTION_PREFIX = "predicted-"
_PREDICTION_ID_RE = re.compile(r"^predicted-(\d+)-(\d{4}-(0[1-9]|1[0-2]))$")


@dataclass(frozen=True, order=True)
class PredictionKey:
    """Composite identity of a prediction: one rule in one month."""

    rule_id: int
    month: str

    @property
    def prediction_id(self) -> str:
        return f"{PREDICTION_PREFIX}{self.rule_id}-{self.month}"

    @classmethod
    def parse(cls, prediction_id: str) -> "PredictionKey":
        match = _PREDICTION_ID_RE.match(prediction_id or "")
        if not match:
            raise ValueError(f"not a prediction id: {prediction_id!r}")
        return cls(rule_id=int(match.group(1)), month=match.group(2))

    def __str__(self) -> str:
        return self.prediction_id


def is_prediction_id(value: str) -> bool:
    return bool(_PREDICTION_ID_RE.match(value or ""))


def anchored_date(rule: RecurringRuleOut, month: str) -> date:
    year, mon = parse_month(month)
    return clamp_day(year, mon, rule.day_of_month)


def first_occurrence_month(rule: RecurringRuleOut) -> str:
    start_month = month_key(rule.start_date)
    if anchored_date(rule, start_month) >= rule.start_date:
        return start_month
    return shift_month(start_month, 1)


def installment_number(rule: RecurringRuleOut, month: str) -> int:
    return month_diff(anchored_date(rule, month), anchored_date(rule, first_occurrence_month(rule))) + 1


def is_malformed(rule: RecurringRuleOut) -> bool:
    if rule.recurrence_kind == RecurrenceKind.INSTALLMENT and not (rule.total_installments or 0) > 0:
        return True
    return False


def _index_transactions(
    real_transactions_by_month: Mapping[str, Sequence[TransactionOut]],
) -> tuple[set[tuple[int, str]], dict[int, TransactionOut]]:
    covered: set[tuple[int, str]] = set()
    by_id: dict[int, TransactionOut] = {}
    for month, items in real_transactions_by_month.items():
        for tx in items:
            if getattr(tx, "is_predicted", False):
                continue
            by_id[tx.id] = tx
            if tx.recurring_id is not None:
                covered.add((tx.recurring_id, tx.month or month))
    return covered, by_id


def resolve_value(rule: RecurringRuleOut, transactions_by_id: Mapping[int, TransactionOut]) -> float | None:
    """Magnitude a prediction of ``rule`` carries, or None when it cannot be known."""
    if rule.recurrence_kind == RecurrenceKind.VARIABLE_BY_INCOME:
        income = transactions_by_id.get(rule.selected_income_id) if rule.selected_income_id else None
        if income is None:
            return None
        return round(float(income.value) * float(rule.value) / 100, 2)
    # fixed, installment, and variable (last known value as placeholder)
    return round(float(rule.value), 2)


def _iter_rule_predictions(
    rule: RecurringRuleOut,
    months: Iterable[str],
    exclusions: Collection[PredictionKey],
    covered: set[tuple[int, str]],
    value: float,
) -> Iterable[PredictedTransactionOut]:
    is_installment = rule.recurrence_kind == RecurrenceKind.INSTALLMENT
    for month in months:
        target = anchored_date(rule, month)
        if target < rule.start_date:
            continue
        if rule.end_date is not None and target > rule.end_date:
            continue
        number = None
        if is_installment:
            number = installment_number(rule, month)
            if number > rule.total_installments:
                continue
        key = PredictionKey(rule.id, month)
        if key in exclusions:
            continue
        if (rule.id, month) in covered:
            continue
        yield PredictedTransactionOut(
            id=key.prediction_id,
            user_id=rule.user_id,
            description=rule.description,
            type=rule.type,
            category=rule.category,
            value=value,
            date=target,
            month=month,
            recurring_id=rule.id,
            current_installment=number,
            total_installments=rule.total_installments if is_installment else None,
        )


def horizon_months(reference_date: date, horizon: int) -> list[str]:
    if horizon < 0:
        raise ValueError("horizon must not be negative")
    base = month_key(reference_date)
    return [shift_month(base, offset) for offset in range(horizon + 1)]


def generate_predictions(
    rules: Sequence[RecurringRuleOut],
    exclusions: Collection[PredictionKey],
    real_transactions_by_month: Mapping[str, Sequence[TransactionOut]],
    horizon: int,
    reference_date: date,
) -> list[PredictedTransactionOut]:
    """Predicted transactions for the reference month and the ``horizon`` months after it.

    Output is ordered by rule id, then month. A rule yields nothing for a month
    when the month falls outside its start/end dates or installment count,
    when the month's prediction is in ``exclusions``, or when a real
    transaction linked to the rule already exists in that month.
    """
    months = horizon_months(reference_date, horizon)
    exclusion_set = exclusions if isinstance(exclusions, (set, frozenset)) else frozenset(exclusions)
    covered, by_id = _index_transactions(real_transactions_by_month)

    predictions: list[PredictedTransactionOut] = []
    for rule in sorted(rules, key=lambda r: r.id):
        if not rule.is_active:
            continue
        if is_malformed(rule):
            logger.warning("Skipping recurring rule %s: installment rule without total_installments", rule.id)
            continue
        value = resolve_value(rule, by_id)
        if value is None:
            logger.warning(
                "Skipping recurring rule %s: income transaction %s not found",
                rule.id,
                rule.selected_income_id,
            )
            continue
        predictions.extend(_iter_rule_predictions(rule, months, exclusion_set, covered, value))

    logger.debug(
        "Generated %d predictions from %d rules over %d months",
        len(predictions),
        len(rules),
        len(months),
    )
    return predictions
