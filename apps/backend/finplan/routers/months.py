from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Body, Depends, Path, Query
from sqlalchemy.orm import Session

from finplan import models
from finplan.core.database import get_db
from finplan.core.deps import get_current_user
from finplan.schemas import CurrentMonthIn, CurrentMonthOut, MonthViewOut, NewMonthRequest, NewMonthResult
from finplan.services.month_service import MonthService
from finplan.utils.months import MONTH_PATTERN

router = APIRouter(prefix="/months", tags=["months"])


@router.get("", response_model=list[str])
def list_available_months(
    reference_date: date | None = Query(None),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return MonthService(db).available_months(user.id, today=reference_date)


@router.get("/current", response_model=CurrentMonthOut)
def get_current_month(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    return CurrentMonthOut(month=MonthService(db).get_current_month(user.id))


@router.put("/current", response_model=CurrentMonthOut)
def set_current_month(
    payload: CurrentMonthIn,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return CurrentMonthOut(month=MonthService(db).set_current_month(user.id, payload.month))


@router.post("/{month}", response_model=NewMonthResult, status_code=201)
def create_month(
    month: str = Path(..., pattern=MONTH_PATTERN),
    payload: Optional[NewMonthRequest] = Body(None),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    copy_previous = payload.copy_previous if payload is not None else False
    return MonthService(db).create_month(user.id, month, copy_previous=copy_previous)


@router.get("/{month}/view", response_model=MonthViewOut)
def month_view(
    month: str = Path(..., pattern=MONTH_PATTERN),
    reference_date: date | None = Query(None),
    horizon: int | None = Query(None, ge=0),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return MonthService(db).view(user.id, month, reference_date=reference_date, horizon=horizon)
