"""User registration and lookup handlers."""

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from budgetup import models
from budgetup.core.database import get_db
from budgetup.core.deps import get_current_user
from budgetup.schemas import UserCreate

logger = logging.getLogger(__name__)


def create_user(payload: UserCreate, db: Session = Depends(get_db)) -> models.User:
    exists = db.query(models.User).filter(models.User.email == payload.email).first()
    if exists:
        raise HTTPException(status_code=409, detail="User with same email already exists")
    user = models.User(email=payload.email, display_name=payload.display_name, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("registered user %s", user.id)
    return user


def get_me(user: models.User = Depends(get_current_user)) -> models.User:
    return user
