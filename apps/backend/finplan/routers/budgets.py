from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from finplan import models
from finplan.core.database import get_db
from finplan.core.deps import get_current_user
from finplan.schemas import BudgetOut, BudgetStatusOut, BudgetUpsert
from finplan.services.budget_service import BudgetService
from finplan.utils.months import MONTH_PATTERN

router = APIRouter(prefix="/budgets", tags=["budgets"])


@router.get("", response_model=list[BudgetOut])
def list_budgets(
    month: str = Query(..., pattern=MONTH_PATTERN),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return BudgetService(db).list_month(user.id, month)


@router.put("", response_model=BudgetOut)
def upsert_budget(payload: BudgetUpsert, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    return BudgetService(db).upsert(user.id, payload)


@router.delete("/{budget_id}", status_code=204)
def delete_budget(budget_id: int, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    BudgetService(db).delete(user.id, budget_id)
    return None


@router.get("/status", response_model=list[BudgetStatusOut])
def budget_status_for_month(
    month: str = Query(..., pattern=MONTH_PATTERN),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return BudgetService(db).status_for_month(user.id, month)


@router.get("/status/{category}", response_model=BudgetStatusOut)
def budget_status(
    category: str,
    month: str = Query(..., pattern=MONTH_PATTERN),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return BudgetService(db).status(user.id, category, month)
