from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from budgetup.core.database import get_db
from budgetup import models
from budgetup.domain.types import Role, has_role


def get_current_user(
    x_user_id: Optional[int] = Header(default=None),
    db: Session = Depends(get_db),
) -> models.User:
    """Resolve the acting user from the ``X-User-Id`` header.

    Authentication lives in front of this service; tests and local clients
    simply send the header.
    """
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    user = db.get(models.User, x_user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=404, detail="User not found")
    # read by the audit listener on flush
    db.info["actor_id"] = user.id
    return user


def get_organization(db: Session, organization_id: int) -> models.Organization:
    org = db.get(models.Organization, organization_id)
    if not org:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


def require_membership(
    db: Session,
    user: models.User,
    organization_id: int,
    minimum_role: Role = Role.MEMBER,
) -> models.Membership:
    """Membership of ``user`` in the organization, or 404/403."""
    get_organization(db, organization_id)
    membership = (
        db.query(models.Membership)
        .filter(
            models.Membership.organization_id == organization_id,
            models.Membership.user_id == user.id,
        )
        .first()
    )
    if not membership:
        raise HTTPException(status_code=403, detail="Not a member of this organization")
    if not has_role(membership.role, minimum_role):
        raise HTTPException(status_code=403, detail=f"Requires {minimum_role.value} role or higher")
    return membership
