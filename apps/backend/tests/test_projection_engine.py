from __future__ import annotations

import logging
from datetime import date

import pytest

from finplan.models import RecurrenceKind, TxnType
from finplan.schemas import RecurringRuleOut, TransactionOut
from finplan.services.projection_engine import PredictionKey, generate_predictions, is_prediction_id


def _rule(**overrides) -> RecurringRuleOut:
    data = {
        "id": 7,
        "user_id": 1,
        "description": "Salary",
        "type": TxnType.INCOME,
        "category": "Salary",
        "value": 1500,
        "recurrence_kind": RecurrenceKind.FIXED,
        "start_date": date(2024, 1, 1),
        "end_date": None,
        "day_of_month": 5,
        "total_installments": None,
        "is_active": True,
        "selected_income_id": None,
    }
    data.update(overrides)
    return RecurringRuleOut(**data)


def _txn(**overrides) -> TransactionOut:
    data = {
        "id": 100,
        "user_id": 1,
        "description": "Salary",
        "type": TxnType.INCOME,
        "category": "Salary",
        "value": 1500,
        "date": date(2024, 2, 5),
        "month": "2024-02",
        "recurring_id": 7,
        "is_paid": True,
    }
    data.update(overrides)
    return TransactionOut(**data)


def _by_month(*txns: TransactionOut) -> dict[str, list[TransactionOut]]:
    out: dict[str, list[TransactionOut]] = {}
    for t in txns:
        out.setdefault(t.month, []).append(t)
    return out


REF = date(2024, 1, 15)


def test_fixed_rule_projects_reference_month_and_horizon():
    preds = generate_predictions([_rule()], set(), {}, 2, REF)

    assert [p.id for p in preds] == [
        "predicted-7-2024-01",
        "predicted-7-2024-02",
        "predicted-7-2024-03",
    ]
    assert [p.date for p in preds] == [date(2024, 1, 5), date(2024, 2, 5), date(2024, 3, 5)]
    for p in preds:
        assert p.is_predicted is True
        assert p.is_paid is False
        assert p.recurring_id == 7
        assert p.value == 1500
        assert p.current_installment is None


def test_real_transaction_suppresses_its_month_only():
    preds = generate_predictions([_rule()], set(), _by_month(_txn()), 2, REF)
    assert [p.month for p in preds] == ["2024-01", "2024-03"]


def test_unlinked_transaction_does_not_suppress():
    preds = generate_predictions([_rule()], set(), _by_month(_txn(recurring_id=None)), 2, REF)
    assert [p.month for p in preds] == ["2024-01", "2024-02", "2024-03"]


def test_installment_rule_stops_after_total():
    rule = _rule(
        recurrence_kind=RecurrenceKind.INSTALLMENT,
        total_installments=3,
        start_date=date(2024, 1, 10),
        day_of_month=10,
        type=TxnType.EXPENSE,
        category="Shopping",
    )
    preds = generate_predictions([rule], set(), {}, 12, REF)

    assert [p.month for p in preds] == ["2024-01", "2024-02", "2024-03"]
    assert [(p.current_installment, p.total_installments) for p in preds] == [(1, 3), (2, 3), (3, 3)]


def test_installments_count_from_first_anchored_date():
    # anchor day 5 falls before the start day, so the first installment is in February
    rule = _rule(
        recurrence_kind=RecurrenceKind.INSTALLMENT,
        total_installments=3,
        start_date=date(2024, 1, 20),
        day_of_month=5,
    )
    preds = generate_predictions([rule], set(), {}, 12, REF)

    assert [p.month for p in preds] == ["2024-02", "2024-03", "2024-04"]
    assert [p.current_installment for p in preds] == [1, 2, 3]


def test_installment_bound_counts_real_and_predicted_instances():
    rule = _rule(
        recurrence_kind=RecurrenceKind.INSTALLMENT,
        total_installments=4,
        start_date=date(2023, 12, 10),
        day_of_month=10,
    )
    real = _txn(date=date(2024, 1, 10), month="2024-01", current_installment=2, total_installments=4)
    # reference month already past the first installment
    preds = generate_predictions([rule], set(), _by_month(real), 24, REF)

    numbers = sorted([p.current_installment for p in preds] + [real.current_installment])
    assert numbers == [2, 3, 4]
    assert len({p.id for p in preds}) == len(preds)


def test_day_of_month_is_clamped_to_month_end():
    rule = _rule(day_of_month=31)
    preds = generate_predictions([rule], set(), {}, 2, date(2024, 1, 1))

    assert [p.date for p in preds] == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]
    assert [p.month for p in preds] == ["2024-01", "2024-02", "2024-03"]


def test_start_and_end_dates_bound_projection():
    rule = _rule(start_date=date(2024, 1, 6), end_date=date(2024, 3, 4))
    preds = generate_predictions([rule], set(), {}, 6, REF)
    # 2024-01-05 precedes the start, 2024-03-05 follows the end
    assert [p.month for p in preds] == ["2024-02"]


def test_exclusions_are_respected_for_any_horizon():
    exclusions = {PredictionKey(7, "2024-02"), PredictionKey(7, "2025-06")}
    for horizon in (0, 2, 12, 24):
        preds = generate_predictions([_rule()], exclusions, {}, horizon, REF)
        ids = {p.id for p in preds}
        assert "predicted-7-2024-02" not in ids
        assert "predicted-7-2025-06" not in ids


def test_exclusions_accept_any_collection():
    preds = generate_predictions([_rule()], [PredictionKey(7, "2024-01")], {}, 1, REF)
    assert [p.month for p in preds] == ["2024-02"]


def test_projection_is_idempotent():
    rules = [_rule(), _rule(id=8, day_of_month=20, value=99.9, type=TxnType.EXPENSE, category="Bills")]
    exclusions = {PredictionKey(8, "2024-03")}
    real = _by_month(_txn())

    first = generate_predictions(rules, exclusions, real, 6, REF)
    second = generate_predictions(rules, exclusions, real, 6, REF)

    assert first == second
    assert [p.model_dump() for p in first] == [p.model_dump() for p in second]


def test_at_most_one_prediction_per_rule_and_month():
    rules = [_rule(), _rule(id=3, day_of_month=28)]
    preds = generate_predictions(rules, set(), {}, 24, REF)
    keys = [(p.recurring_id, p.month) for p in preds]
    assert len(keys) == len(set(keys))
    # ordered by rule id, then month
    assert keys == sorted(keys)


def test_variable_by_income_uses_percentage_of_income():
    income = _txn(id=55, recurring_id=None, value=5000, date=date(2023, 11, 1), month="2023-11")
    rule = _rule(
        recurrence_kind=RecurrenceKind.VARIABLE_BY_INCOME,
        value=12.5,
        selected_income_id=55,
        type=TxnType.EXPENSE,
        category="Investments",
    )
    preds = generate_predictions([rule], set(), _by_month(income), 1, REF)

    assert [p.value for p in preds] == [625.0, 625.0]


def test_variable_by_income_without_income_is_omitted(caplog):
    rule = _rule(id=9, recurrence_kind=RecurrenceKind.VARIABLE_BY_INCOME, value=10, selected_income_id=404)
    with caplog.at_level(logging.WARNING, logger="finplan.services.projection_engine"):
        preds = generate_predictions([rule, _rule()], set(), {}, 0, REF)

    assert [p.recurring_id for p in preds] == [7]
    assert "income transaction 404 not found" in caplog.text


def test_variable_rule_uses_last_value_as_placeholder():
    rule = _rule(recurrence_kind=RecurrenceKind.VARIABLE, value=230.45, category="Bills")
    preds = generate_predictions([rule], set(), {}, 0, REF)
    assert preds[0].value == 230.45


def test_inactive_rules_are_skipped():
    preds = generate_predictions([_rule(is_active=False)], set(), {}, 3, REF)
    assert preds == []


def test_malformed_installment_rule_is_skipped_and_logged(caplog):
    broken = _rule(id=1, recurrence_kind=RecurrenceKind.INSTALLMENT, total_installments=None)
    with caplog.at_level(logging.WARNING, logger="finplan.services.projection_engine"):
        preds = generate_predictions([broken, _rule()], set(), {}, 0, REF)

    assert [p.recurring_id for p in preds] == [7]
    assert "Skipping recurring rule 1" in caplog.text


def test_year_rolls_over():
    preds = generate_predictions([_rule()], set(), {}, 2, date(2024, 11, 30))
    assert [p.month for p in preds] == ["2024-11", "2024-12", "2025-01"]


def test_negative_horizon_is_rejected():
    with pytest.raises(ValueError):
        generate_predictions([_rule()], set(), {}, -1, REF)


def test_prediction_key_round_trip_and_rejects_garbage():
    key = PredictionKey.parse("predicted-12-2024-07")
    assert key == PredictionKey(12, "2024-07")
    assert key.prediction_id == "predicted-12-2024-07"

    assert is_prediction_id("predicted-1-2024-12")
    for bad in ("predicted-1-2024-13", "predicted-x-2024-01", "42", "", "predicted-1-24-01"):
        assert not is_prediction_id(bad)
        with pytest.raises(ValueError):
            PredictionKey.parse(bad)
