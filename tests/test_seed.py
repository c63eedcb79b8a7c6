from __future__ import annotations

from budgetup import models
from budgetup.seed import DEMO_ORGANIZATION, seed


def test_seed_is_idempotent(db_session):
    org = seed(db_session)
    again = seed(db_session)

    assert org.id == again.id
    assert org.name == DEMO_ORGANIZATION
    assert db_session.query(models.Category).filter_by(organization_id=org.id).count() == 15
    assert db_session.query(models.Account).filter_by(organization_id=org.id).count() == 2
    owner = db_session.query(models.Membership).filter_by(organization_id=org.id).one()
    assert owner.role == models.Role.OWNER
