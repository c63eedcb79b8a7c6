"""Invitation handlers.

Admins issue and manage codes; any registered user can look a code up and
accept it. ``POST /organizations/join`` is the same acceptance under the
onboarding path.
"""

from __future__ import annotations

from typing import Literal, Optional

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from budgetup import models
from budgetup.core.database import get_db
from budgetup.core.deps import get_current_user, require_membership
from budgetup.domain.types import Role
from budgetup.schemas import (
    InvitationAccept,
    InvitationAccepted,
    InvitationCleanup,
    InvitationCleanupResult,
    InvitationCreate,
    InvitationDetails,
    InvitationStats,
    InvitationUpdate,
    OrganizationJoin,
    OrganizationOut,
)
from budgetup.services import InvitationService


def _accepted(organization: models.Organization, membership: models.Membership) -> InvitationAccepted:
    org = OrganizationOut.model_validate(organization)
    org.role = membership.role
    return InvitationAccepted(organization=org, role=membership.role)


def create_invitation(
    payload: InvitationCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> models.Invitation:
    require_membership(db, user, payload.organization_id, Role.ADMIN)
    return InvitationService(db).create(payload.organization_id, payload.email, payload.role, user)


def list_invitations(
    organization_id: int = Query(...),
    status: Optional[Literal["pending", "accepted", "expired"]] = Query(None),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> list[models.Invitation]:
    require_membership(db, user, organization_id, Role.ADMIN)
    return InvitationService(db).list_for_organization(organization_id, status)


def get_invitation_stats(
    organization_id: int = Query(...),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> InvitationStats:
    require_membership(db, user, organization_id, Role.ADMIN)
    return InvitationStats(**InvitationService(db).stats(organization_id))


def get_invitation_details(
    code: str = Query(..., min_length=6, max_length=50),
    db: Session = Depends(get_db),
) -> InvitationDetails:
    # public: the invitee may not be registered yet
    invitation = InvitationService(db).by_code(code)
    return InvitationDetails(
        organization_id=invitation.organization_id,
        organization_name=invitation.organization.name,
        organization_currency=invitation.organization.currency,
        email=invitation.email,
        role=invitation.role,
        status=invitation.status,
        expires_at=invitation.expires_at,
    )


def update_invitation(
    invitation_id: int,
    payload: InvitationUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> models.Invitation:
    service = InvitationService(db)
    invitation = service.get(invitation_id)
    require_membership(db, user, invitation.organization_id, Role.ADMIN)
    return service.update_role(invitation, payload.role)


def revoke_invitation(
    invitation_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> None:
    service = InvitationService(db)
    invitation = service.get(invitation_id)
    require_membership(db, user, invitation.organization_id, Role.ADMIN)
    service.revoke(invitation)
    return None


def accept_invitation(
    payload: InvitationAccept,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> InvitationAccepted:
    organization, membership = InvitationService(db).accept(payload.code, user)
    return _accepted(organization, membership)


def join_organization(
    payload: OrganizationJoin,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> InvitationAccepted:
    organization, membership = InvitationService(db).accept(payload.invitation_code, user)
    return _accepted(organization, membership)


def cleanup_invitations(
    payload: InvitationCleanup,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> InvitationCleanupResult:
    require_membership(db, user, payload.organization_id, Role.ADMIN)
    service = InvitationService(db)
    deleted = service.cleanup_expired(payload.organization_id, payload.days_old)
    return InvitationCleanupResult(deleted=deleted, stats=InvitationStats(**service.stats(payload.organization_id)))
