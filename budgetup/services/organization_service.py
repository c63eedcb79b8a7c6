from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from budgetup import models
from budgetup.core.config import settings
from budgetup.domain.types import AccountType, Role, has_role
from budgetup.services.category_service import CategoryService

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNTS: tuple[tuple[str, AccountType], ...] = (
    ("Efectivo", AccountType.CASH),
    ("Cuenta Corriente Principal", AccountType.BANK),
)


class OrganizationService:
    """Organizations and the memberships that scope every other resource."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def create(
        self,
        owner: models.User,
        name: str,
        currency: Optional[str] = None,
        seed_defaults: bool = True,
    ) -> models.Organization:
        exists = (
            self.db.query(models.Organization)
            .filter(func.lower(models.Organization.name) == name.lower())
            .first()
        )
        if exists:
            raise HTTPException(status_code=409, detail="Organization with same name already exists")
        currency = currency or settings.DEFAULT_CURRENCY
        if currency not in settings.SUPPORTED_CURRENCIES:
            raise HTTPException(status_code=400, detail=f"Unsupported currency {currency}")

        org = models.Organization(name=name, currency=currency, created_by=owner.id)
        self.db.add(org)
        self.db.flush()
        self.db.add(models.Membership(user_id=owner.id, organization_id=org.id, role=Role.OWNER))
        if seed_defaults:
            CategoryService(self.db).seed_defaults(org.id)
            for account_name, account_type in DEFAULT_ACCOUNTS:
                self.db.add(
                    models.Account(
                        organization_id=org.id,
                        name=account_name,
                        type=account_type,
                        currency=currency,
                        initial_balance=Decimal("0.00"),
                    )
                )
        self.db.commit()
        self.db.refresh(org)
        logger.info("created organization %s (%s) owned by user %s", org.id, org.name, owner.id)
        return org

    def list_for_user(self, user: models.User) -> list[tuple[models.Organization, Role]]:
        rows = (
            self.db.query(models.Organization, models.Membership.role)
            .join(models.Membership, models.Membership.organization_id == models.Organization.id)
            .filter(models.Membership.user_id == user.id)
            .order_by(models.Organization.name)
            .all()
        )
        return [(org, role) for org, role in rows]

    # ---- memberships ------------------------------------------------------

    def list_members(self, organization_id: int) -> list[models.Membership]:
        return (
            self.db.query(models.Membership)
            .filter(models.Membership.organization_id == organization_id)
            .order_by(models.Membership.id)
            .all()
        )

    def get_membership(self, organization_id: int, membership_id: int) -> models.Membership:
        membership = self.db.get(models.Membership, membership_id)
        if not membership or membership.organization_id != organization_id:
            raise HTTPException(status_code=404, detail="Membership not found")
        return membership

    def _owner_count(self, organization_id: int) -> int:
        return (
            self.db.query(models.Membership)
            .filter(
                models.Membership.organization_id == organization_id,
                models.Membership.role == Role.OWNER,
            )
            .count()
        )

    def add_member(self, organization_id: int, actor: models.Membership, email: str, role: Role) -> models.Membership:
        if role == Role.OWNER and not has_role(actor.role, Role.OWNER):
            raise HTTPException(status_code=403, detail="Only owners can grant the owner role")
        user = self.db.query(models.User).filter(func.lower(models.User.email) == email.lower()).first()
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        exists = (
            self.db.query(models.Membership)
            .filter(
                models.Membership.organization_id == organization_id,
                models.Membership.user_id == user.id,
            )
            .first()
        )
        if exists:
            raise HTTPException(status_code=409, detail="User is already a member of this organization")
        membership = models.Membership(user_id=user.id, organization_id=organization_id, role=role)
        self.db.add(membership)
        self.db.commit()
        self.db.refresh(membership)
        logger.info("added user %s to organization %s as %s", user.id, organization_id, role.value)
        return membership

    def change_role(self, membership: models.Membership, role: Role) -> models.Membership:
        if membership.role == Role.OWNER and role != Role.OWNER and self._owner_count(membership.organization_id) <= 1:
            raise HTTPException(status_code=400, detail="Organization must keep at least one owner")
        membership.role = role
        self.db.commit()
        self.db.refresh(membership)
        logger.info("membership %s is now %s", membership.id, role.value)
        return membership

    def remove_member(self, membership: models.Membership, actor: models.Membership) -> None:
        if membership.role == Role.OWNER:
            if not has_role(actor.role, Role.OWNER):
                raise HTTPException(status_code=403, detail="Only owners can remove an owner")
            if self._owner_count(membership.organization_id) <= 1:
                raise HTTPException(status_code=400, detail="Organization must keep at least one owner")
        membership_id = membership.id
        self.db.delete(membership)
        self.db.commit()
        logger.info("removed membership %s", membership_id)
