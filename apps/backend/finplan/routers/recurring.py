from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from finplan import models
from finplan.core.database import get_db
from finplan.core.deps import get_current_user
from finplan.schemas import (
    RecurringRuleCreate,
    RecurringRuleDeleteResult,
    RecurringRuleOut,
    RecurringRuleUpdate,
)
from finplan.services.recurring_service import RecurringRuleService

router = APIRouter(prefix="/recurring-rules", tags=["recurring"])


@router.get("", response_model=list[RecurringRuleOut])
def list_recurring_rules(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    return RecurringRuleService(db).list_rules(user.id)


@router.post("", response_model=RecurringRuleOut, status_code=201)
def create_recurring_rule(
    payload: RecurringRuleCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return RecurringRuleService(db).create_rule(user.id, payload)


@router.get("/{rule_id}", response_model=RecurringRuleOut)
def get_recurring_rule(rule_id: int, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    return RecurringRuleService(db).get_rule(user.id, rule_id)


@router.patch("/{rule_id}", response_model=RecurringRuleOut)
def update_recurring_rule(
    rule_id: int,
    payload: RecurringRuleUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return RecurringRuleService(db).update_rule(user.id, rule_id, payload)


@router.delete("/{rule_id}", response_model=RecurringRuleDeleteResult)
def delete_recurring_rule(rule_id: int, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    return RecurringRuleService(db).delete_rule(user.id, rule_id)
