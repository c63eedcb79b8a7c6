from __future__ import annotations

from typing import Optional

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from budgetup import models
from budgetup.core.database import get_db
from budgetup.core.deps import get_current_user, require_membership
from budgetup.domain.types import CategoryType, Role
from budgetup.schemas import CategoryCreate, CategoryUpdate
from budgetup.services import CategoryService


def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> models.Category:
    require_membership(db, user, payload.organization_id, Role.ADMIN)
    return CategoryService(db).create(payload.organization_id, payload.model_dump())


def list_categories(
    organization_id: int = Query(...),
    type: Optional[CategoryType] = Query(None),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> list[models.Category]:
    require_membership(db, user, organization_id)
    q = db.query(models.Category).filter(models.Category.organization_id == organization_id)
    if type:
        q = q.filter(models.Category.type == type)
    return q.order_by(models.Category.type, models.Category.name).all()


def get_category(
    category_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> models.Category:
    category = CategoryService(db).get(category_id)
    require_membership(db, user, category.organization_id)
    return category


def update_category(
    category_id: int,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> models.Category:
    service = CategoryService(db)
    category = service.get(category_id)
    require_membership(db, user, category.organization_id, Role.ADMIN)
    return service.update(category, payload.model_dump(exclude_unset=True))


def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> None:
    service = CategoryService(db)
    category = service.get(category_id)
    require_membership(db, user, category.organization_id, Role.ADMIN)
    service.delete(category)
    return None
