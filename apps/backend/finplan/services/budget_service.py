from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.orm import Session

from finplan import models
from finplan.core.config import settings
from finplan.core.errors import NotFoundError
from finplan.schemas import BudgetOut, BudgetStatusOut, BudgetUpsert, PredictedTransactionOut, TransactionOut
from finplan.services.repository import Repositories

logger = logging.getLogger(__name__)


def compute_budget_status(
    budget: BudgetOut,
    transactions: Iterable[TransactionOut | PredictedTransactionOut],
) -> BudgetStatusOut:
    """Spend against one category ceiling, counting confirmed expenses only.

    Predicted transactions in ``transactions`` are ignored so that projected
    spend never triggers an alert.
    """
    spent = sum(
        float(tx.value)
        for tx in transactions
        if not tx.is_predicted
        and tx.type == models.TxnType.EXPENSE
        and tx.category == budget.category
        and tx.month == budget.month
    )
    ceiling = float(budget.budget_value)
    percentage = spent / ceiling * 100 if ceiling > 0 else 0.0
    return BudgetStatusOut(
        category=budget.category,
        month=budget.month,
        budget_value=round(ceiling, 2),
        spent_value=round(spent, 2),
        remaining_value=round(ceiling - spent, 2),
        percentage_used=round(percentage, 2),
        alert_threshold=budget.alert_threshold,
        is_over_budget=percentage > 100,
        is_near_limit=budget.alert_threshold <= percentage <= 100,
    )


class BudgetService:
    def __init__(self, db: Session, repos: Repositories | None = None) -> None:
        self.db = db
        self.repos = repos or Repositories(db)

    def list_month(self, user_id: int, month: str) -> list[BudgetOut]:
        rows = self.repos.budgets.list_by_owner_and_month(user_id, month)
        return [BudgetOut.model_validate(b) for b in sorted(rows, key=lambda b: b.category)]

    def upsert(self, user_id: int, payload: BudgetUpsert) -> BudgetOut:
        """Set the ceiling of (category, month); an existing budget is overwritten."""
        budget = self.repos.budgets.find(user_id, category=payload.category, month=payload.month)
        threshold = payload.alert_threshold
        if threshold is None:
            threshold = budget.alert_threshold if budget is not None else settings.DEFAULT_ALERT_THRESHOLD
        if budget is None:
            budget = self.repos.budgets.insert(
                user_id,
                category=payload.category,
                month=payload.month,
                budget_value=payload.budget_value,
                alert_threshold=threshold,
            )
        else:
            self.repos.budgets.update(budget, {"budget_value": payload.budget_value, "alert_threshold": threshold})
        self.repos.commit()
        self.repos.refresh(budget)
        logger.info("Budget for %s in %s set to %s for user %s", payload.category, payload.month, payload.budget_value, user_id)
        return BudgetOut.model_validate(budget)

    def delete(self, user_id: int, budget_id: int) -> None:
        budget = self.repos.budgets.get(user_id, budget_id)
        self.repos.budgets.delete(budget)
        self.repos.commit()
        logger.info("Deleted budget %s for user %s", budget_id, user_id)

    def status(self, user_id: int, category: str, month: str) -> BudgetStatusOut:
        budget = self.repos.budgets.find(user_id, category=category, month=month)
        if budget is None:
            raise NotFoundError(f"No budget for {category} in {month}")
        return compute_budget_status(BudgetOut.model_validate(budget), self._month_transactions(user_id, month))

    def status_for_month(self, user_id: int, month: str) -> list[BudgetStatusOut]:
        transactions = self._month_transactions(user_id, month)
        return [compute_budget_status(b, transactions) for b in self.list_month(user_id, month)]

    def _month_transactions(self, user_id: int, month: str) -> list[TransactionOut]:
        rows = self.repos.transactions.list_by_owner_and_month(user_id, month)
        return [TransactionOut.model_validate(row) for row in rows]
