from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from finplan import models
from finplan.core.errors import ValidationError
from finplan.schemas import (
    RecurringRuleCreate,
    RecurringRuleDeleteResult,
    RecurringRuleOut,
    RecurringRuleUpdate,
)
from finplan.services.repository import Repositories

logger = logging.getLogger(__name__)


class RecurringRuleService:
    """Create, edit and delete recurring rules for one owner.

    Predictions are never stored, so nothing is regenerated here; the next
    read recomputes them from the updated rule set.
    """

    def __init__(self, db: Session, repos: Repositories | None = None) -> None:
        self.db = db
        self.repos = repos or Repositories(db)

    def list_rules(self, user_id: int) -> list[RecurringRuleOut]:
        return [RecurringRuleOut.model_validate(r) for r in self.repos.rules.list_by_owner(user_id)]

    def get_rule(self, user_id: int, rule_id: int) -> RecurringRuleOut:
        return RecurringRuleOut.model_validate(self.repos.rules.get(user_id, rule_id))

    def create_rule(self, user_id: int, payload: RecurringRuleCreate) -> RecurringRuleOut:
        data = payload.model_dump()
        self._validate_rule(user_id, data)
        rule = self.repos.rules.insert(user_id, **data)
        self.repos.commit()
        self.repos.refresh(rule)
        logger.info("Created recurring rule %s (%s) for user %s", rule.id, rule.recurrence_kind.value, user_id)
        return RecurringRuleOut.model_validate(rule)

    def update_rule(self, user_id: int, rule_id: int, payload: RecurringRuleUpdate) -> RecurringRuleOut:
        rule = self.repos.rules.get(user_id, rule_id)
        changes = payload.model_dump(exclude_unset=True)
        for key in _REQUIRED_FIELDS:
            if key in changes and changes[key] is None:
                raise ValidationError(f"{key} must not be null")
        if not changes:
            return RecurringRuleOut.model_validate(rule)

        effective = {column: getattr(rule, column) for column in _RULE_FIELDS}
        effective.update(changes)
        self._validate_rule(user_id, effective)
        # normalization may clear fields the caller did not send
        changes.update({k: effective[k] for k in ("total_installments", "selected_income_id")})

        self.repos.rules.update(rule, changes)
        self.repos.commit()
        self.repos.refresh(rule)
        logger.info("Updated recurring rule %s for user %s: %s", rule_id, user_id, sorted(changes))
        return RecurringRuleOut.model_validate(rule)

    def delete_rule(self, user_id: int, rule_id: int) -> RecurringRuleDeleteResult:
        """Delete a rule together with its real transactions and exclusion entries."""
        rule = self.repos.rules.get(user_id, rule_id)
        removed_txns = self.repos.transactions.delete_where(user_id, models.Transaction.recurring_id == rule_id)
        removed_exclusions = self.repos.exclusions.delete_where(
            user_id, models.PredictionExclusion.rule_id == rule_id
        )
        self.repos.rules.delete(rule)
        self.repos.commit()
        logger.info(
            "Deleted recurring rule %s for user %s (%d transactions, %d exclusions)",
            rule_id,
            user_id,
            removed_txns,
            removed_exclusions,
        )
        return RecurringRuleDeleteResult(
            deleted=rule_id,
            transactions_removed=removed_txns,
            exclusions_removed=removed_exclusions,
        )

    def _validate_rule(self, user_id: int, data: dict[str, Any]) -> None:
        kind = models.RecurrenceKind(data["recurrence_kind"])
        start_date = data.get("start_date")
        end_date = data.get("end_date")

        value = data.get("value")
        if value is None or float(value) <= 0:
            raise ValidationError("value must be positive")
        day = data.get("day_of_month")
        if day is None or not (1 <= int(day) <= 31):
            raise ValidationError("day_of_month must be between 1 and 31")
        if end_date is not None and start_date is not None and end_date < start_date:
            raise ValidationError("end_date must not be before start_date")

        if kind == models.RecurrenceKind.INSTALLMENT:
            total = data.get("total_installments")
            if total is None or int(total) <= 0:
                raise ValidationError("installment rules require total_installments > 0")
        else:
            data["total_installments"] = None

        if kind == models.RecurrenceKind.VARIABLE_BY_INCOME:
            if float(value) > 100:
                raise ValidationError("variable_by_income value is a percentage and must not exceed 100")
            income_id = data.get("selected_income_id")
            if not income_id:
                raise ValidationError("variable_by_income rules require selected_income_id")
            income = self.repos.transactions.find(user_id, id=income_id)
            if income is None or income.type != models.TxnType.INCOME:
                raise ValidationError("selected_income_id must reference an income transaction")
        else:
            data["selected_income_id"] = None


_RULE_FIELDS = (
    "description",
    "type",
    "category",
    "value",
    "recurrence_kind",
    "start_date",
    "end_date",
    "day_of_month",
    "total_installments",
    "is_active",
    "selected_income_id",
)

_REQUIRED_FIELDS = (
    "description",
    "type",
    "category",
    "value",
    "recurrence_kind",
    "start_date",
    "day_of_month",
    "is_active",
)
