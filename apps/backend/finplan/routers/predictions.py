from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from finplan import models
from finplan.core.database import get_db
from finplan.core.deps import get_current_user
from finplan.schemas import (
    PredictedTransactionOut,
    PredictionConvertRequest,
    PredictionExclusionOut,
    TransactionOut,
)
from finplan.services.reconciliation_service import ReconciliationService
from finplan.utils.months import MONTH_PATTERN

router = APIRouter(prefix="/predictions", tags=["predictions"])


def _service(
    reference_date: date | None = Query(None, description="Reference day for the projection (defaults to today)"),
    horizon: int | None = Query(None, ge=0, description="Months projected after the reference month"),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> ReconciliationService:
    return ReconciliationService(db, user.id, reference_date=reference_date, horizon=horizon)


@router.get("", response_model=list[PredictedTransactionOut])
def list_predictions(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
    service: ReconciliationService = Depends(_service),
):
    return service.list_predictions(month)


@router.get("/exclusions", response_model=list[PredictionExclusionOut])
def list_exclusions(service: ReconciliationService = Depends(_service)):
    return service.list_exclusions()


@router.delete("/exclusions/{prediction_id}", status_code=204)
def restore_prediction(prediction_id: str, service: ReconciliationService = Depends(_service)):
    service.restore_prediction(prediction_id)
    return None


@router.post("/{prediction_id}/convert", response_model=TransactionOut, status_code=201)
def convert_prediction(
    prediction_id: str,
    payload: Optional[PredictionConvertRequest] = Body(None),
    service: ReconciliationService = Depends(_service),
):
    return service.convert_prediction(prediction_id, payload)


@router.delete("/{prediction_id}", status_code=204)
def delete_prediction(prediction_id: str, service: ReconciliationService = Depends(_service)):
    service.delete_prediction(prediction_id)
    return None
