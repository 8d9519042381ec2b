from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from finplan import models
from finplan.core.database import get_db
from finplan.core.deps import get_current_user
from finplan.schemas import CategoryCreate, CategoryOut, CategoryUpdate
from finplan.services.category_service import CategoryService

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryOut])
def list_categories(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    return CategoryService(db).list_categories(user.id)


@router.get("/hidden", response_model=list[str])
def list_hidden_categories(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    return CategoryService(db).hidden(user.id)


@router.post("", response_model=CategoryOut, status_code=201)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    return CategoryService(db).create(user.id, payload)


@router.patch("/{name}", response_model=CategoryOut)
def update_category(
    name: str,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return CategoryService(db).update(user.id, name, payload)


@router.delete("/{name}", status_code=204)
def delete_category(name: str, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    CategoryService(db).delete(user.id, name)
    return None


@router.post("/{name}/show", status_code=204)
def show_category(name: str, db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    CategoryService(db).show(user.id, name)
    return None
