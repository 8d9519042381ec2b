from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from finplan import models
from finplan.core.database import get_db
from finplan.core.deps import get_current_user
from finplan.schemas import (
    TransactionCreate,
    TransactionDeleteResult,
    TransactionOut,
    TransactionUpdate,
)
from finplan.services.reconciliation_service import ReconciliationService
from finplan.services.transaction_service import TransactionService
from finplan.utils.months import MONTH_PATTERN

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=list[TransactionOut])
def list_transactions(
    month: str = Query(..., pattern=MONTH_PATTERN),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return TransactionService(db).list_month(user.id, month)


@router.post("", response_model=TransactionOut, status_code=201)
def create_transaction(
    payload: TransactionCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return TransactionService(db).add(user.id, payload)


@router.patch("/{txn_id}", response_model=TransactionOut)
def update_transaction(
    txn_id: int,
    payload: TransactionUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return TransactionService(db).update(user.id, txn_id, payload)


@router.delete("/{txn_id}", response_model=TransactionDeleteResult)
def delete_transaction(
    txn_id: str,
    reference_date: date | None = Query(None),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    # accepts a numeric id or a prediction id (predicted-<rule>-<YYYY-MM>)
    service = ReconciliationService(db, user.id, reference_date=reference_date)
    return service.delete_transaction(txn_id)


@router.post("/{txn_id}/toggle-paid", response_model=TransactionOut)
def toggle_paid(
    txn_id: str,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    service = ReconciliationService(db, user.id)
    return service.toggle_paid(txn_id)


@router.post("/{txn_id}/duplicate-next-month", response_model=TransactionOut, status_code=201)
def duplicate_next_month(
    txn_id: str,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    service = ReconciliationService(db, user.id)
    return service.duplicate_to_next_month(txn_id)
