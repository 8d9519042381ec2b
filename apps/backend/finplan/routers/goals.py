from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from finplan import models
from finplan.core.database import get_db
from finplan.core.deps import get_current_user
from finplan.schemas import GoalContribution, GoalCreate, GoalOut, GoalUpdate
from finplan.services.goal_service import GoalService

router = APIRouter(prefix="/goals", tags=["goals"])


@router.get("", response_model=list[GoalOut])
def list_goals(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    return GoalService(db).list_goals(user.id)


@router.post("", response_model=GoalOut, status_code=201)
def create_goal(payload: GoalCreate, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    return GoalService(db).create(user.id, payload)


@router.patch("/{goal_id}", response_model=GoalOut)
def update_goal(
    goal_id: int,
    payload: GoalUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return GoalService(db).update(user.id, goal_id, payload)


@router.delete("/{goal_id}", status_code=204)
def delete_goal(goal_id: int, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    GoalService(db).delete(user.id, goal_id)
    return None


@router.post("/{goal_id}/contribute", response_model=GoalOut)
def contribute_to_goal(
    goal_id: int,
    payload: GoalContribution,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return GoalService(db).contribute(user.id, goal_id, payload)
