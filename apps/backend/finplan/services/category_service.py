from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from finplan import models
from finplan.core.errors import InvalidOperation, NotFoundError
from finplan.schemas import CategoryCreate, CategoryOut, CategoryUpdate
from finplan.services.repository import Repositories

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES: tuple[str, ...] = (
    "Food",
    "Transport",
    "Housing",
    "Leisure",
    "Health",
    "Education",
    "Bills",
    "Shopping",
    "Subscriptions",
    "Unexpected",
    "Investments",
    "Extra Income",
    "Salary",
    "Other",
)


class CategoryService:
    """Built-in defaults plus the owner's custom categories, minus hidden ones."""

    def __init__(self, db: Session, repos: Repositories | None = None) -> None:
        self.db = db
        self.repos = repos or Repositories(db)

    def hidden(self, user_id: int) -> list[str]:
        return sorted(h.category_name for h in self.repos.hidden_categories.list_by_owner(user_id))

    def list_categories(self, user_id: int) -> list[CategoryOut]:
        hidden = set(self.hidden(user_id))
        out = [CategoryOut(name=name, is_default=True) for name in DEFAULT_CATEGORIES if name not in hidden]
        for item in self.repos.categories.list_by_owner(user_id, models.Category.name):
            out.append(
                CategoryOut(
                    id=item.id,
                    name=item.name,
                    is_default=False,
                    max_percentage=item.max_percentage,
                    max_value=float(item.max_value) if item.max_value is not None else None,
                )
            )
        return out

    def create(self, user_id: int, payload: CategoryCreate) -> CategoryOut:
        if payload.name in DEFAULT_CATEGORIES or self.repos.categories.find(user_id, name=payload.name):
            raise InvalidOperation(f"Category {payload.name!r} already exists")
        item = self.repos.categories.insert(
            user_id,
            name=payload.name,
            max_percentage=payload.max_percentage,
            max_value=payload.max_value,
        )
        self.repos.commit()
        logger.info("Created category %r for user %s", payload.name, user_id)
        return CategoryOut(
            id=item.id,
            name=item.name,
            is_default=False,
            max_percentage=item.max_percentage,
            max_value=payload.max_value,
        )

    def update(self, user_id: int, name: str, payload: CategoryUpdate) -> CategoryOut:
        item = self.repos.categories.find(user_id, name=name)
        if item is None:
            if name in DEFAULT_CATEGORIES:
                raise InvalidOperation("Default categories cannot be edited")
            raise NotFoundError(f"Category {name!r} not found")
        changes = payload.model_dump(exclude_unset=True)
        new_name = changes.get("name")
        if new_name and new_name != name:
            if new_name in DEFAULT_CATEGORIES or self.repos.categories.find(user_id, name=new_name):
                raise InvalidOperation(f"Category {new_name!r} already exists")
        elif "name" in changes:
            changes.pop("name")
        self.repos.categories.update(item, changes)
        self.repos.commit()
        return CategoryOut(
            id=item.id,
            name=item.name,
            is_default=False,
            max_percentage=item.max_percentage,
            max_value=float(item.max_value) if item.max_value is not None else None,
        )

    def delete(self, user_id: int, name: str) -> None:
        """Remove a custom category, or hide a default one."""
        item = self.repos.categories.find(user_id, name=name)
        if item is not None:
            self.repos.categories.delete(item)
        elif name in DEFAULT_CATEGORIES:
            if self.repos.hidden_categories.find(user_id, category_name=name) is None:
                self.repos.hidden_categories.insert(user_id, category_name=name)
        else:
            raise NotFoundError(f"Category {name!r} not found")
        self.repos.commit()
        logger.info("Removed category %r for user %s", name, user_id)

    def show(self, user_id: int, name: str) -> None:
        entry = self.repos.hidden_categories.find(user_id, category_name=name)
        if entry is None:
            raise NotFoundError(f"Category {name!r} is not hidden")
        self.repos.hidden_categories.delete(entry)
        self.repos.commit()
