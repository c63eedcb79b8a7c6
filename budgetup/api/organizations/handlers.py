"""Organization and membership handlers."""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from budgetup import models
from budgetup.core.database import get_db
from budgetup.core.deps import get_current_user, require_membership
from budgetup.domain.types import Role
from budgetup.schemas import (
    MembershipCreate,
    MembershipOut,
    MembershipUpdate,
    OrganizationCreate,
    OrganizationOut,
)
from budgetup.services import OrganizationService


def _organization_out(org: models.Organization, role: Role) -> OrganizationOut:
    out = OrganizationOut.model_validate(org)
    out.role = role
    return out


def _membership_out(membership: models.Membership) -> MembershipOut:
    out = MembershipOut.model_validate(membership)
    out.email = membership.user.email
    out.display_name = membership.user.display_name
    return out


def create_organization(
    payload: OrganizationCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> OrganizationOut:
    org = OrganizationService(db).create(
        user,
        payload.name,
        currency=payload.currency,
        seed_defaults=payload.seed_defaults,
    )
    return _organization_out(org, Role.OWNER)


def list_organizations(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> list[OrganizationOut]:
    return [_organization_out(org, role) for org, role in OrganizationService(db).list_for_user(user)]


def list_members(
    organization_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> list[MembershipOut]:
    require_membership(db, user, organization_id)
    return [_membership_out(m) for m in OrganizationService(db).list_members(organization_id)]


def add_member(
    organization_id: int,
    payload: MembershipCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> MembershipOut:
    actor = require_membership(db, user, organization_id, Role.ADMIN)
    membership = OrganizationService(db).add_member(organization_id, actor, payload.email, payload.role)
    return _membership_out(membership)


def update_member(
    organization_id: int,
    membership_id: int,
    payload: MembershipUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> MembershipOut:
    require_membership(db, user, organization_id, Role.OWNER)
    service = OrganizationService(db)
    membership = service.get_membership(organization_id, membership_id)
    return _membership_out(service.change_role(membership, payload.role))


def remove_member(
    organization_id: int,
    membership_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> None:
    actor = require_membership(db, user, organization_id, Role.ADMIN)
    service = OrganizationService(db)
    service.remove_member(service.get_membership(organization_id, membership_id), actor)
    return None
