from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from finplan.schemas import ResetResult
from finplan.services.repository import Repositories

logger = logging.getLogger(__name__)


def reset_owner_data(db: Session, user_id: int) -> ResetResult:
    """Remove every row the owner has, children before parents."""
    repos = Repositories(db)
    details = {
        "transactions": repos.transactions.delete_where(user_id),
        "prediction_exclusions": repos.exclusions.delete_where(user_id),
        "recurring_rules": repos.rules.delete_where(user_id),
        "budgets": repos.budgets.delete_where(user_id),
        "goals": repos.goals.delete_where(user_id),
        "categories": repos.categories.delete_where(user_id),
        "hidden_categories": repos.hidden_categories.delete_where(user_id),
        "settings": repos.settings.delete_where(user_id),
    }
    repos.commit()
    removed = sum(details.values())
    logger.info("Reset data for user %s: %s", user_id, details)
    return ResetResult(removed=removed, details=details)
