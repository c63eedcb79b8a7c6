from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from .core.database import SessionLocal
from .models import Organization, User
from .services.organization_service import OrganizationService

DEMO_EMAIL = "demo@example.com"
DEMO_ORGANIZATION = "Demo MiPyme"


def seed(db: Optional[Session] = None) -> Organization:
    """Create the demo user and organization for local development.

    Idempotent: existing rows are reused.
    """
    owns_session = db is None
    if owns_session:
        db = SessionLocal()
    try:
        user = db.query(User).filter_by(email=DEMO_EMAIL).first()
        if not user:
            user = User(email=DEMO_EMAIL, display_name="Demo", is_active=True)
            db.add(user)
            db.commit()
            db.refresh(user)

        org = db.query(Organization).filter_by(name=DEMO_ORGANIZATION).first()
        if not org:
            org = OrganizationService(db).create(user, DEMO_ORGANIZATION, seed_defaults=True)
        return org
    finally:
        if owns_session:
            db.close()


if __name__ == "__main__":
    seed()
