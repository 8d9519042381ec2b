from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.orm import Session

from finplan import models
from finplan.core.config import settings
from finplan.core.errors import ValidationError
from finplan.schemas import MonthViewOut, NewMonthResult
from finplan.services.finance_state import FinanceStateLoader
from finplan.services.repository import Repositories
from finplan.utils.months import clamp_day, month_key, month_span, parse_month, shift_month

logger = logging.getLogger(__name__)


def _parse_month(month: str) -> tuple[int, int]:
    try:
        return parse_month(month)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


class MonthService:
    """Selected month, month views and the list of browsable months."""

    def __init__(self, db: Session, repos: Repositories | None = None) -> None:
        self.db = db
        self.repos = repos or Repositories(db)
        self.loader = FinanceStateLoader(db, self.repos)

    def get_current_month(self, user_id: int) -> str:
        return self.loader.current_month(user_id)

    def set_current_month(self, user_id: int, month: str) -> str:
        _parse_month(month)
        self._store_current_month(user_id, month)
        self.repos.commit()
        logger.info("User %s switched to month %s", user_id, month)
        return month

    def view(
        self,
        user_id: int,
        month: str,
        *,
        reference_date: date | None = None,
        horizon: int | None = None,
    ) -> MonthViewOut:
        """Real and predicted transactions of ``month`` with their totals.

        Predictions only cover the months inside the projection horizon, so a
        month past it shows real transactions alone.
        """
        _parse_month(month)
        state = self.loader.load(user_id, reference_date=reference_date, horizon=horizon, extra_months=[month])
        return MonthViewOut(
            month=month,
            reference_date=state.reference_date,
            transactions=state.merged_month(month),
            summary=state.summary(month),
        )

    def available_months(self, user_id: int, today: date | None = None) -> list[str]:
        today = today or models.today_local()
        rows = (
            self.db.query(models.Transaction.month)
            .filter(models.Transaction.user_id == user_id)
            .distinct()
            .all()
        )
        months = {m for (m,) in rows}
        months.add(month_key(today))
        for rule in self.repos.rules.list_by_owner(user_id):
            last = rule.end_date or today
            months.update(
                month_span(month_key(rule.start_date), shift_month(month_key(last), settings.AVAILABLE_MONTHS_AHEAD))
            )
        return sorted(months, reverse=True)

    def create_month(self, user_id: int, month: str, copy_previous: bool = False) -> NewMonthResult:
        """Open ``month`` and make it current, optionally copying last month's entries.

        Copies are unpaid, carry no installment numbers and keep their day of
        month, clamped to the new month's length. Rule-linked transactions are
        not copied since the rule already projects into the new month.
        """
        year, mon = _parse_month(month)
        copied = 0
        if copy_previous:
            previous = shift_month(month, -1)
            for source in self.repos.transactions.list_by_owner_and_month(user_id, previous):
                if source.recurring_id is not None:
                    continue
                self.repos.transactions.insert(
                    user_id,
                    description=source.description,
                    type=source.type,
                    category=source.category,
                    value=source.value,
                    date=clamp_day(year, mon, source.date.day),
                    is_paid=False,
                )
                copied += 1

        self._store_current_month(user_id, month)
        self.repos.commit()
        logger.info("Created month %s for user %s (%d copied)", month, user_id, copied)
        return NewMonthResult(month=month, copied=copied)

    def _store_current_month(self, user_id: int, month: str) -> None:
        setting = self.repos.settings.find(user_id)
        if setting is None:
            self.repos.settings.insert(user_id, current_month=month)
        else:
            self.repos.settings.update(setting, {"current_month": month})
