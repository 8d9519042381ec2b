"""Operations that move occurrences between the predicted and the real world.

Each method follows the same order: validate against the current
:class:`FinanceState`, write through the repositories, commit, and only then
replace ``self.state`` with the derived state. A failure at any step raises
and leaves ``self.state`` as it was.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.orm import Session

from finplan import models
from finplan.core.config import settings
from finplan.core.errors import InvalidOperation, NotFoundError
from finplan.schemas import (
    PredictedTransactionOut,
    PredictionConvertRequest,
    PredictionExclusionOut,
    TransactionDeleteResult,
    TransactionOut,
)
from finplan.services.finance_state import FinanceState, FinanceStateLoader
from finplan.services.projection_engine import PredictionKey, is_prediction_id
from finplan.services.repository import Repositories
from finplan.services.transaction_service import TransactionService
from finplan.utils.months import clamp_day, month_key, parse_month, shift_month

logger = logging.getLogger(__name__)


def parse_prediction_key(prediction_id: str | PredictionKey) -> PredictionKey:
    if isinstance(prediction_id, PredictionKey):
        return prediction_id
    try:
        return PredictionKey.parse(prediction_id)
    except ValueError as exc:
        raise NotFoundError("Prediction not found") from exc


def parse_transaction_id(value: str | int) -> int:
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise NotFoundError("Transaction not found") from exc


class ReconciliationService:
    def __init__(
        self,
        db: Session,
        user_id: int,
        *,
        reference_date: date | None = None,
        horizon: int | None = None,
        repos: Repositories | None = None,
        state: FinanceState | None = None,
    ) -> None:
        self.db = db
        self.user_id = user_id
        self.repos = repos or Repositories(db)
        self.transactions = TransactionService(db, self.repos)
        self.state = state or FinanceStateLoader(db, self.repos).load(
            user_id, reference_date=reference_date, horizon=horizon
        )

    # predictions

    def list_predictions(self, month: str | None = None) -> list[PredictedTransactionOut]:
        if month is None:
            return list(self.state.predictions)
        return self.state.predictions_for_month(month)

    def convert_prediction(
        self,
        prediction_id: str | PredictionKey,
        overrides: PredictionConvertRequest | None = None,
    ) -> TransactionOut:
        """Materialize a live prediction as a paid real transaction."""
        key = parse_prediction_key(prediction_id)
        prediction = self.state.find_prediction(key)
        if prediction is None:
            raise NotFoundError(f"Prediction {key} is not pending")

        data = {
            "description": prediction.description,
            "type": prediction.type,
            "category": prediction.category,
            "value": prediction.value,
            "date": prediction.date,
            "recurring_id": prediction.recurring_id,
            "is_paid": True,
            "current_installment": prediction.current_installment,
            "total_installments": prediction.total_installments,
        }
        if overrides is not None:
            data.update(overrides.model_dump(exclude_unset=True, exclude_none=True))
        self.transactions.ensure_single_instance(self.user_id, key.rule_id, month_key(data["date"]))

        tx = self.repos.transactions.insert(self.user_id, **data)
        self._upsert_exclusion(key)
        self.repos.commit()
        self.repos.refresh(tx)

        out = TransactionOut.model_validate(tx)
        self.state = self.state.with_transaction(out).with_exclusion(key)
        logger.info("Converted prediction %s into transaction %s for user %s", key, out.id, self.user_id)
        return out

    def delete_prediction(self, prediction_id: str | PredictionKey) -> PredictionKey:
        """Add the prediction to the exclusion ledger; no transaction is touched."""
        key = parse_prediction_key(prediction_id)
        self.repos.rules.get(self.user_id, key.rule_id)
        if key in self.state.exclusions:
            return key
        self._upsert_exclusion(key)
        self.repos.commit()
        self.state = self.state.with_exclusion(key)
        logger.info("Excluded prediction %s for user %s", key, self.user_id)
        return key

    def restore_prediction(self, prediction_id: str | PredictionKey) -> PredictionKey:
        key = parse_prediction_key(prediction_id)
        entry = self.repos.exclusions.find(self.user_id, rule_id=key.rule_id, month=key.month)
        if entry is None:
            raise NotFoundError(f"Prediction {key} is not excluded")
        self.repos.exclusions.delete(entry)
        self.repos.commit()
        self.state = self.state.without_exclusion(key)
        logger.info("Restored prediction %s for user %s", key, self.user_id)
        return key

    def list_exclusions(self) -> list[PredictionExclusionOut]:
        entries = self.repos.exclusions.list_by_owner(
            self.user_id, models.PredictionExclusion.rule_id, models.PredictionExclusion.month
        )
        return [
            PredictionExclusionOut(
                prediction_id=PredictionKey(e.rule_id, e.month).prediction_id,
                rule_id=e.rule_id,
                month=e.month,
                created_at=e.created_at,
            )
            for e in entries
        ]

    def _upsert_exclusion(self, key: PredictionKey) -> None:
        existing = self.repos.exclusions.find(self.user_id, rule_id=key.rule_id, month=key.month)
        if existing is None:
            self.repos.exclusions.insert(self.user_id, rule_id=key.rule_id, month=key.month)

    # real transactions

    def delete_transaction(self, target: str | int) -> TransactionDeleteResult:
        """Delete a real transaction, or exclude a prediction when given a prediction id."""
        if isinstance(target, str) and is_prediction_id(target):
            key = self.delete_prediction(target)
            return TransactionDeleteResult(deleted=key.prediction_id, excluded=True)

        transaction_id = parse_transaction_id(target)
        tx = self.repos.transactions.get(self.user_id, transaction_id)
        rule_id, month = tx.recurring_id, tx.month
        self.repos.transactions.delete(tx)
        self.repos.commit()
        self.state = self.state.without_transaction(transaction_id)
        if rule_id is not None:
            logger.info(
                "Deleted transaction %s of rule %s in %s for user %s",
                transaction_id,
                rule_id,
                month,
                self.user_id,
            )
        else:
            logger.info("Deleted transaction %s for user %s", transaction_id, self.user_id)
        return TransactionDeleteResult(deleted=str(transaction_id))

    def toggle_paid(self, target: str | int) -> TransactionOut:
        if isinstance(target, str) and is_prediction_id(target):
            raise InvalidOperation("Predicted transactions have no payment status")
        tx = self.repos.transactions.get(self.user_id, parse_transaction_id(target))
        self.repos.transactions.update(tx, {"is_paid": not tx.is_paid})
        self.repos.commit()
        self.repos.refresh(tx)
        out = TransactionOut.model_validate(tx)
        self.state = self.state.with_transaction(out)
        logger.info("Transaction %s marked %s", out.id, "paid" if out.is_paid else "unpaid")
        return out

    def duplicate_to_next_month(self, target: str | int) -> TransactionOut:
        """Copy a real transaction into the following month, unlinked and unpaid."""
        if isinstance(target, str) and is_prediction_id(target):
            raise InvalidOperation("Predicted transactions cannot be duplicated; convert them first")
        source = self.repos.transactions.get(self.user_id, parse_transaction_id(target))

        year, month = parse_month(shift_month(source.month, 1))
        target_date = clamp_day(year, month, min(source.date.day, settings.DUPLICATE_MAX_DAY))
        tx = self.repos.transactions.insert(
            self.user_id,
            description=source.description,
            type=source.type,
            category=source.category,
            value=source.value,
            date=target_date,
            is_paid=False,
        )
        self.repos.commit()
        self.repos.refresh(tx)
        out = TransactionOut.model_validate(tx)
        self.state = self.state.with_transaction(out)
        logger.info("Duplicated transaction %s into %s as %s", source.id, out.month, out.id)
        return out
