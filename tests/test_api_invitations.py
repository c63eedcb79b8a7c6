from __future__ import annotations

import re
from datetime import timedelta

import pytest

from budgetup import models


@pytest.fixture()
def invite(client, seed):
    def _invite(email: str, role: str = "member", **extra):
        r = client.post(
            "/api/invitations",
            json={"organization_id": seed["org_id"], "email": email, "role": role, **extra},
        )
        assert r.status_code == 201, r.text
        return r.json()

    return _invite


@pytest.fixture()
def register(client):
    def _register(email: str) -> dict[str, str]:
        user = client.post("/api/users", json={"email": email}).json()
        return {"X-User-Id": str(user["id"])}

    return _register


def _age(db_session, invitation_id: int, days: int) -> None:
    invitation = db_session.get(models.Invitation, invitation_id)
    invitation.expires_at = models.now_local_naive() - timedelta(days=days)
    db_session.commit()


def test_create_invitation(client, seed, invite):
    invitation = invite(" Contador@Example.com ", role="admin")
    assert invitation["email"] == "contador@example.com"
    assert invitation["role"] == "admin"
    assert invitation["status"] == "pending"
    assert invitation["created_by"] == seed["owner_id"]
    assert re.fullmatch(r"[A-Z0-9]{12}", invitation["code"])
    assert invitation["used_at"] is None


def test_invitation_rules(client, seed, invite, member_headers):
    org = seed["org_id"]
    r = client.post("/api/invitations", json={"organization_id": org, "email": "x@example.com"}, headers=member_headers)
    assert r.status_code == 403

    invite("x@example.com")
    r = client.post("/api/invitations", json={"organization_id": org, "email": "X@example.com"})
    assert r.status_code == 409

    r = client.post("/api/invitations", json={"organization_id": org, "email": "member@example.com"})
    assert r.status_code == 409

    r = client.post("/api/invitations", json={"organization_id": org, "email": "y@example.com", "role": "owner"})
    assert r.status_code == 422


def test_expired_pending_invitation_can_be_reissued(client, seed, invite, db_session):
    old = invite("again@example.com")
    _age(db_session, old["id"], 1)
    fresh = invite("again@example.com")
    assert fresh["code"] != old["code"]


def test_details_are_public(client, invite):
    invitation = invite("nuevo@example.com")
    r = client.get("/api/invitations/details", params={"code": invitation["code"]}, headers={"X-User-Id": ""})
    assert r.status_code == 200, r.text
    details = r.json()
    assert details["organization_name"] == "Acme SRL"
    assert details["organization_currency"] == "DOP"
    assert details["status"] == "pending"

    assert client.get("/api/invitations/details", params={"code": "NOPE123456"}).status_code == 404


def test_accept_creates_membership(client, seed, invite, register):
    invitation = invite("nuevo@example.com", role="admin")
    headers = register("nuevo@example.com")

    r = client.post("/api/invitations/accept", json={"code": invitation["code"].lower()}, headers=headers)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["role"] == "admin"
    assert body["organization"]["name"] == "Acme SRL"

    members = client.get(f"/api/organizations/{seed['org_id']}/members").json()
    assert {m["email"]: m["role"] for m in members}["nuevo@example.com"] == "admin"

    again = client.post("/api/invitations/accept", json={"code": invitation["code"]}, headers=headers)
    assert again.status_code == 409
    listed = client.get("/api/invitations", params={"organization_id": seed["org_id"]}).json()
    assert listed[0]["status"] == "accepted"


def test_accept_rejections(client, invite, register, db_session):
    invitation = invite("nuevo@example.com")

    other = register("otro@example.com")
    r = client.post("/api/invitations/accept", json={"code": invitation["code"]}, headers=other)
    assert r.status_code == 403

    r = client.post("/api/invitations/accept", json={"code": "ZZZZZZZZZZZZ"}, headers=other)
    assert r.status_code == 404

    r = client.post("/api/invitations/accept", json={"code": "bad code!"}, headers=other)
    assert r.status_code == 422

    _age(db_session, invitation["id"], 1)
    invitee = register("nuevo@example.com")
    r = client.post("/api/invitations/accept", json={"code": invitation["code"]}, headers=invitee)
    assert r.status_code == 410


def test_join_organization_with_code(client, seed, invite, register):
    invitation = invite("socio@example.com")
    headers = register("socio@example.com")
    r = client.post("/api/organizations/join", json={"invitation_code": invitation["code"]}, headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["role"] == "member"
    orgs = client.get("/api/organizations", headers=headers).json()
    assert [(o["name"], o["role"]) for o in orgs] == [("Acme SRL", "member")]


def test_update_and_revoke(client, seed, invite, register, member_headers):
    invitation = invite("nuevo@example.com")

    r = client.patch(f"/api/invitations/{invitation['id']}", json={"role": "admin"}, headers=member_headers)
    assert r.status_code == 403
    r = client.patch(f"/api/invitations/{invitation['id']}", json={"role": "admin"})
    assert r.status_code == 200
    assert r.json()["role"] == "admin"

    assert client.delete(f"/api/invitations/{invitation['id']}").status_code == 204
    assert client.get("/api/invitations", params={"organization_id": seed["org_id"]}).json() == []
    assert client.delete(f"/api/invitations/{invitation['id']}").status_code == 404

    used = invite("usado@example.com")
    client.post("/api/invitations/accept", json={"code": used["code"]}, headers=register("usado@example.com"))
    r = client.patch(f"/api/invitations/{used['id']}", json={"role": "admin"})
    assert r.status_code == 409


def test_list_by_status_and_stats(client, seed, invite, register, db_session, member_headers):
    pending = invite("a@example.com")
    expired = invite("b@example.com")
    accepted = invite("c@example.com")
    _age(db_session, expired["id"], 2)
    client.post("/api/invitations/accept", json={"code": accepted["code"]}, headers=register("c@example.com"))

    org = seed["org_id"]
    r = client.get("/api/invitations", params={"organization_id": org, "status": "pending"})
    assert [i["id"] for i in r.json()] == [pending["id"]]
    r = client.get("/api/invitations", params={"organization_id": org, "status": "expired"})
    assert [i["email"] for i in r.json()] == ["b@example.com"]

    stats = client.get("/api/invitations/stats", params={"organization_id": org}).json()
    assert stats == {"total": 3, "pending": 1, "accepted": 1, "expired": 1}

    assert client.get("/api/invitations", params={"organization_id": org}, headers=member_headers).status_code == 403


def test_cleanup_removes_long_expired_unused(client, seed, invite, register, db_session):
    stale = invite("viejo@example.com")
    recent = invite("reciente@example.com")
    used = invite("usado@example.com")
    client.post("/api/invitations/accept", json={"code": used["code"]}, headers=register("usado@example.com"))
    _age(db_session, stale["id"], 45)
    _age(db_session, recent["id"], 3)
    _age(db_session, used["id"], 45)

    r = client.post("/api/invitations/cleanup", json={"organization_id": seed["org_id"]})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["deleted"] == 1
    assert body["stats"] == {"total": 2, "pending": 0, "accepted": 1, "expired": 1}

    r = client.post("/api/invitations/cleanup", json={"organization_id": seed["org_id"], "days_old": 1})
    assert r.json()["deleted"] == 1
