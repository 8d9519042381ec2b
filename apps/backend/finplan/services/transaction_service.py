from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from finplan import models
from finplan.core.errors import InvalidOperation, ValidationError
from finplan.schemas import TransactionCreate, TransactionOut, TransactionUpdate
from finplan.services.repository import Repositories
from finplan.utils.months import month_key

logger = logging.getLogger(__name__)


class TransactionService:
    """Real (persisted) transactions of one owner."""

    def __init__(self, db: Session, repos: Repositories | None = None) -> None:
        self.db = db
        self.repos = repos or Repositories(db)

    def list_month(self, user_id: int, month: str) -> list[TransactionOut]:
        rows = self.repos.transactions.list_by_owner_and_month(user_id, month)
        return [TransactionOut.model_validate(row) for row in rows]

    def get(self, user_id: int, transaction_id: int) -> TransactionOut:
        return TransactionOut.model_validate(self.repos.transactions.get(user_id, transaction_id))

    def add(self, user_id: int, payload: TransactionCreate) -> TransactionOut:
        data = payload.model_dump()
        if data.get("recurring_id") is not None:
            # the link must point at one of the owner's rules
            self.repos.rules.get(user_id, data["recurring_id"])
            self.ensure_single_instance(user_id, data["recurring_id"], month_key(data["date"]))
        self._validate_installments(data.get("current_installment"), data.get("total_installments"))
        tx = self.repos.transactions.insert(user_id, **data)
        self.repos.commit()
        self.repos.refresh(tx)
        logger.info("Added transaction %s (%s) for user %s", tx.id, tx.month, user_id)
        return TransactionOut.model_validate(tx)

    def update(self, user_id: int, transaction_id: int, payload: TransactionUpdate) -> TransactionOut:
        tx = self.repos.transactions.get(user_id, transaction_id)
        changes = payload.model_dump(exclude_unset=True)
        for key in ("description", "type", "category", "value", "date", "is_paid"):
            if key in changes and changes[key] is None:
                raise ValidationError(f"{key} must not be null")
        if not changes:
            return TransactionOut.model_validate(tx)

        if "date" in changes and tx.recurring_id is not None:
            new_month = month_key(changes["date"])
            if new_month != tx.month:
                self.ensure_single_instance(user_id, tx.recurring_id, new_month, exclude_id=tx.id)
        self._validate_installments(
            changes.get("current_installment", tx.current_installment),
            changes.get("total_installments", tx.total_installments),
        )

        self.repos.transactions.update(tx, changes)
        self.repos.commit()
        self.repos.refresh(tx)
        logger.info("Updated transaction %s for user %s: %s", transaction_id, user_id, sorted(changes))
        return TransactionOut.model_validate(tx)

    def ensure_single_instance(
        self,
        user_id: int,
        rule_id: int,
        month: str,
        exclude_id: Optional[int] = None,
    ) -> None:
        """Reject a second real transaction of ``rule_id`` in ``month``."""
        query = self.db.query(models.Transaction.id).filter(
            models.Transaction.user_id == user_id,
            models.Transaction.recurring_id == rule_id,
            models.Transaction.month == month,
        )
        if exclude_id is not None:
            query = query.filter(models.Transaction.id != exclude_id)
        if query.first() is not None:
            raise InvalidOperation(f"Recurring rule {rule_id} already has a transaction in {month}")

    @staticmethod
    def _validate_installments(current: Any, total: Any) -> None:
        if current is not None and total is not None and current > total:
            raise ValidationError("current_installment must not exceed total_installments")
