from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from finplan import models
from finplan.core.errors import ValidationError
from finplan.schemas import GoalContribution, GoalCreate, GoalOut, GoalUpdate
from finplan.services.repository import Repositories

logger = logging.getLogger(__name__)


def is_goal_completed(current_value: float, target_value: float) -> bool:
    return float(current_value) >= float(target_value)


class GoalService:
    def __init__(self, db: Session, repos: Repositories | None = None) -> None:
        self.db = db
        self.repos = repos or Repositories(db)

    def list_goals(self, user_id: int) -> list[GoalOut]:
        rows = self.repos.goals.list_by_owner(user_id, models.FinancialGoal.created_at, models.FinancialGoal.id)
        return [GoalOut.model_validate(g) for g in rows]

    def create(self, user_id: int, payload: GoalCreate) -> GoalOut:
        data = payload.model_dump()
        data["is_completed"] = is_goal_completed(data["current_value"], data["target_value"])
        goal = self.repos.goals.insert(user_id, **data)
        self.repos.commit()
        self.repos.refresh(goal)
        logger.info("Created goal %s for user %s", goal.id, user_id)
        return GoalOut.model_validate(goal)

    def update(self, user_id: int, goal_id: int, payload: GoalUpdate) -> GoalOut:
        goal = self.repos.goals.get(user_id, goal_id)
        changes = payload.model_dump(exclude_unset=True)
        for key in ("name", "target_value", "current_value", "color", "icon"):
            if key in changes and changes[key] is None:
                raise ValidationError(f"{key} must not be null")
        current = changes.get("current_value", goal.current_value)
        target = changes.get("target_value", goal.target_value)
        changes["is_completed"] = is_goal_completed(current, target)
        self.repos.goals.update(goal, changes)
        self.repos.commit()
        self.repos.refresh(goal)
        return GoalOut.model_validate(goal)

    def delete(self, user_id: int, goal_id: int) -> None:
        goal = self.repos.goals.get(user_id, goal_id)
        self.repos.goals.delete(goal)
        self.repos.commit()
        logger.info("Deleted goal %s for user %s", goal_id, user_id)

    def contribute(self, user_id: int, goal_id: int, payload: GoalContribution) -> GoalOut:
        """Add ``amount`` to the goal; negative amounts are withdrawals down to zero."""
        goal = self.repos.goals.get(user_id, goal_id)
        new_value = round(float(goal.current_value) + payload.amount, 2)
        if new_value < 0:
            raise ValidationError("Withdrawal exceeds the amount saved for this goal")
        self.repos.goals.update(
            goal,
            {"current_value": new_value, "is_completed": is_goal_completed(new_value, goal.target_value)},
        )
        self.repos.commit()
        self.repos.refresh(goal)
        logger.info("Goal %s of user %s moved by %s to %s", goal_id, user_id, payload.amount, new_value)
        return GoalOut.model_validate(goal)
