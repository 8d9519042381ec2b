"""Owner-scoped persistence collaborator over the SQLAlchemy session.

Services never call ``db.query`` directly for the owned tables; they go
through :class:`OwnedRepository` so that every read and write is filtered by
``user_id`` and every storage failure surfaces as
:class:`~finplan.core.errors.PersistenceError`.
"""

from __future__ import annotations

import logging
from typing import Any, Generic, Iterable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finplan import models
from finplan.core.errors import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class OwnedRepository(Generic[ModelT]):
    def __init__(self, db: Session, model: type[ModelT], label: str | None = None) -> None:
        self.db = db
        self.model = model
        self.label = label or model.__name__

    def _owned(self, user_id: int):
        return self.db.query(self.model).filter(self.model.user_id == user_id)

    def list_by_owner(self, user_id: int, *order_by: Any) -> list[ModelT]:
        query = self._owned(user_id)
        if order_by:
            query = query.order_by(*order_by)
        else:
            query = query.order_by(self.model.id)
        return query.all()

    def list_by_owner_and_month(self, user_id: int, month: str) -> list[ModelT]:
        return self.list_by_owner_and_months(user_id, [month])

    def list_by_owner_and_months(self, user_id: int, months: Iterable[str]) -> list[ModelT]:
        wanted = sorted(set(months))
        if not wanted:
            return []
        return (
            self._owned(user_id)
            .filter(self.model.month.in_(wanted))
            .order_by(self.model.month, self.model.id)
            .all()
        )

    def find(self, user_id: int, **filters: Any) -> ModelT | None:
        return self._owned(user_id).filter_by(**filters).first()

    def get(self, user_id: int, item_id: int) -> ModelT:
        item = self._owned(user_id).filter(self.model.id == item_id).first()
        if item is None:
            raise NotFoundError(f"{self.label} not found")
        return item

    def insert(self, user_id: int, **values: Any) -> ModelT:
        item = self.model(user_id=user_id, **values)
        self.db.add(item)
        self._flush()
        return item

    def update(self, item: ModelT, changes: dict[str, Any]) -> ModelT:
        for key, value in changes.items():
            setattr(item, key, value)
        self._flush()
        return item

    def delete(self, item: ModelT) -> None:
        self.db.delete(item)
        self._flush()

    def delete_where(self, user_id: int, *criteria: Any) -> int:
        query = self._owned(user_id)
        if criteria:
            query = query.filter(*criteria)
        try:
            return query.delete(synchronize_session=False)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Bulk delete on %s failed", self.label)
            raise PersistenceError() from exc

    def _flush(self) -> None:
        try:
            self.db.flush()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Flush on %s failed", self.label)
            raise PersistenceError() from exc


class Repositories:
    """One repository per logical table, sharing a session."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.transactions: OwnedRepository[models.Transaction] = OwnedRepository(db, models.Transaction, "Transaction")
        self.rules: OwnedRepository[models.RecurringRule] = OwnedRepository(db, models.RecurringRule, "RecurringRule")
        self.exclusions: OwnedRepository[models.PredictionExclusion] = OwnedRepository(
            db, models.PredictionExclusion, "Prediction exclusion"
        )
        self.budgets: OwnedRepository[models.CategoryBudget] = OwnedRepository(db, models.CategoryBudget, "Budget")
        self.goals: OwnedRepository[models.FinancialGoal] = OwnedRepository(db, models.FinancialGoal, "Goal")
        self.categories: OwnedRepository[models.Category] = OwnedRepository(db, models.Category, "Category")
        self.hidden_categories: OwnedRepository[models.HiddenCategory] = OwnedRepository(
            db, models.HiddenCategory, "Hidden category"
        )
        self.settings: OwnedRepository[models.UserSetting] = OwnedRepository(db, models.UserSetting, "User setting")

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("Commit failed; session rolled back")
            raise PersistenceError() from exc

    def refresh(self, item: Any) -> Any:
        self.db.refresh(item)
        return item
