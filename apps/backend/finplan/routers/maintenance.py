from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from finplan import models
from finplan.core.database import get_db
from finplan.core.deps import get_current_user
from finplan.schemas import ResetResult
from finplan.services.maintenance_service import reset_owner_data

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("/reset", response_model=ResetResult)
def reset_user_data(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    return reset_owner_data(db, user.id)
