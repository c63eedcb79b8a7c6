from __future__ import annotations

import logging
import secrets
import string
from datetime import timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from budgetup import models
from budgetup.core.config import settings
from budgetup.domain.types import Role

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 12
MAX_CODE_ATTEMPTS = 10


def generate_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


class InvitationService:
    """Invitation codes: issue, inspect, revoke, accept and clean up.

    Delivering the code to the invitee (e-mail or otherwise) happens outside
    this service; the code is returned to the admin who created it.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, invitation_id: int) -> models.Invitation:
        invitation = self.db.get(models.Invitation, invitation_id)
        if not invitation:
            raise HTTPException(status_code=404, detail="Invitation not found")
        return invitation

    def by_code(self, code: str) -> models.Invitation:
        invitation = (
            self.db.query(models.Invitation)
            .filter(models.Invitation.code == code.strip().upper())
            .first()
        )
        if not invitation:
            raise HTTPException(status_code=404, detail="Invalid invitation code")
        return invitation

    def _is_member(self, organization_id: int, email: str) -> bool:
        return (
            self.db.query(models.Membership)
            .join(models.User, models.User.id == models.Membership.user_id)
            .filter(
                models.Membership.organization_id == organization_id,
                func.lower(models.User.email) == email.lower(),
            )
            .first()
            is not None
        )

    def _pending_for(self, organization_id: int, email: str) -> Optional[models.Invitation]:
        return (
            self.db.query(models.Invitation)
            .filter(
                models.Invitation.organization_id == organization_id,
                func.lower(models.Invitation.email) == email.lower(),
                models.Invitation.used_at.is_(None),
                models.Invitation.expires_at > models.now_local_naive(),
            )
            .first()
        )

    def _unique_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_code()
            if not self.db.query(models.Invitation).filter(models.Invitation.code == code).first():
                return code
        raise HTTPException(status_code=500, detail="Could not generate a unique invitation code")

    def create(
        self,
        organization_id: int,
        email: str,
        role: Role,
        created_by: models.User,
    ) -> models.Invitation:
        if role == Role.OWNER:
            raise HTTPException(status_code=400, detail="Invitations grant admin or member only")
        if self._is_member(organization_id, email):
            raise HTTPException(status_code=409, detail="User is already a member of this organization")
        if self._pending_for(organization_id, email):
            raise HTTPException(status_code=409, detail="A pending invitation already exists for this email")

        invitation = models.Invitation(
            organization_id=organization_id,
            email=email.lower(),
            role=role,
            code=self._unique_code(),
            expires_at=models.now_local_naive() + timedelta(days=settings.INVITATION_TTL_DAYS),
            created_by=created_by.id,
        )
        self.db.add(invitation)
        self.db.commit()
        self.db.refresh(invitation)
        logger.info("invited %s to organization %s as %s", invitation.email, organization_id, role.value)
        return invitation

    def list_for_organization(self, organization_id: int, status: Optional[str] = None) -> list[models.Invitation]:
        invitations = (
            self.db.query(models.Invitation)
            .filter(models.Invitation.organization_id == organization_id)
            .order_by(models.Invitation.created_at.desc(), models.Invitation.id.desc())
            .all()
        )
        if status:
            invitations = [i for i in invitations if i.status == status]
        return invitations

    def stats(self, organization_id: int) -> dict[str, int]:
        counts = {"total": 0, "pending": 0, "accepted": 0, "expired": 0}
        for invitation in self.list_for_organization(organization_id):
            counts["total"] += 1
            counts[invitation.status] += 1
        return counts

    def update_role(self, invitation: models.Invitation, role: Role) -> models.Invitation:
        if invitation.used_at is not None:
            raise HTTPException(status_code=409, detail="Can't modify an invitation that was already used")
        if role == Role.OWNER:
            raise HTTPException(status_code=400, detail="Invitations grant admin or member only")
        invitation.role = role
        self.db.commit()
        self.db.refresh(invitation)
        logger.info("invitation %s now grants %s", invitation.id, role.value)
        return invitation

    def revoke(self, invitation: models.Invitation) -> None:
        invitation_id = invitation.id
        self.db.delete(invitation)
        self.db.commit()
        logger.info("revoked invitation %s", invitation_id)

    def accept(self, code: str, user: models.User) -> tuple[models.Organization, models.Membership]:
        """Turn a pending invitation into a membership for ``user``.

        404 unknown code, 409 already used or already a member, 410 expired,
        403 when the invitation was issued to another e-mail.
        """
        invitation = self.by_code(code)
        if invitation.used_at is not None:
            raise HTTPException(status_code=409, detail="This invitation was already used")
        if invitation.expires_at <= models.now_local_naive():
            raise HTTPException(status_code=410, detail="This invitation has expired")
        if invitation.email.lower() != user.email.lower():
            logger.warning("user %s tried to accept invitation %s issued to another email", user.id, invitation.id)
            raise HTTPException(status_code=403, detail="This invitation is for a different email")
        exists = (
            self.db.query(models.Membership)
            .filter(
                models.Membership.organization_id == invitation.organization_id,
                models.Membership.user_id == user.id,
            )
            .first()
        )
        if exists:
            raise HTTPException(status_code=409, detail="You are already a member of this organization")

        membership = models.Membership(
            user_id=user.id,
            organization_id=invitation.organization_id,
            role=invitation.role,
        )
        self.db.add(membership)
        invitation.used_at = models.now_local_naive()
        self.db.commit()
        self.db.refresh(membership)
        logger.info(
            "user %s joined organization %s as %s via invitation %s",
            user.id,
            invitation.organization_id,
            invitation.role.value,
            invitation.id,
        )
        return invitation.organization, membership

    def cleanup_expired(self, organization_id: int, days_old: Optional[int] = None) -> int:
        """Delete unused invitations that expired more than ``days_old`` days ago."""
        days = days_old or settings.INVITATION_CLEANUP_AFTER_DAYS
        cutoff = models.now_local_naive() - timedelta(days=days)
        deleted = (
            self.db.query(models.Invitation)
            .filter(
                models.Invitation.organization_id == organization_id,
                models.Invitation.used_at.is_(None),
                models.Invitation.expires_at < cutoff,
            )
            .delete(synchronize_session=False)
        )
        self.db.commit()
        if deleted:
            logger.info("cleaned up %d expired invitation(s) in organization %s", deleted, organization_id)
        return deleted
