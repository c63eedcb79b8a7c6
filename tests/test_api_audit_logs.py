from __future__ import annotations

from decimal import Decimal

from budgetup import models


def _logs(client, seed, **params):
    r = client.get("/api/audit-logs", params={"organization_id": seed["org_id"], **params})
    assert r.status_code == 200, r.text
    return r


def test_account_changes_are_logged(client, seed, make_account):
    acc = make_account("Caja Chica", "250.50", type="cash")
    client.patch(f"/api/accounts/{acc['id']}", json={"name": "Caja"})
    client.delete(f"/api/accounts/{acc['id']}")

    entries = _logs(client, seed, table_name="account").json()
    assert [e["action"] for e in entries] == ["delete", "update", "create"]
    assert {e["record_id"] for e in entries} == {acc["id"]}
    assert all(e["user_id"] == seed["owner_id"] for e in entries)
    assert all(e["user_email"] == "owner@example.com" for e in entries)

    deleted, updated, created = entries
    assert created["old_values"] is None
    assert created["new_values"]["name"] == "Caja Chica"
    assert created["new_values"]["type"] == "cash"
    assert Decimal(created["new_values"]["initial_balance"]) == Decimal("250.50")
    assert updated["old_values"]["name"] == "Caja Chica"
    assert updated["new_values"]["name"] == "Caja"
    assert deleted["old_values"]["name"] == "Caja"
    assert deleted["new_values"] is None


def test_transaction_changes_are_logged(client, seed, make_account, make_category, make_txn):
    acc = make_account("Banco", "1000")
    cat = make_category("Oficina", "expense")
    txn = make_txn(type="expense", amount="100", account_id=acc["id"], category_id=cat["id"])
    r = client.patch(f"/api/transactions/{txn['id']}", json={"amount": "150"})
    assert r.status_code == 200, r.text
    assert client.delete(f"/api/transactions/{txn['id']}").status_code == 204

    entries = _logs(client, seed, table_name="transaction").json()
    assert [e["action"] for e in entries] == ["delete", "update", "create"]
    _, updated, created = entries
    assert created["new_values"]["type"] == "expense"
    assert created["new_values"]["category_id"] == cat["id"]
    assert Decimal(updated["old_values"]["amount"]) == Decimal("100")
    assert Decimal(updated["new_values"]["amount"]) == Decimal("150")

    categories = _logs(client, seed, table_name="category").json()
    assert [(e["action"], e["record_id"]) for e in categories] == [("create", cat["id"])]


def test_rejected_writes_leave_no_entries(client, seed, make_account):
    acc = make_account("Banco")
    r = client.post(
        "/api/transactions",
        json={
            "organization_id": seed["org_id"],
            "type": "expense",
            "amount": "-5",
            "occurred_at": "2024-01-15",
            "description": "x",
            "account_id": acc["id"],
        },
    )
    assert r.status_code == 422
    assert _logs(client, seed, table_name="transaction").json() == []


def test_filters_and_paging(client, seed, make_account, member_headers):
    for name in ("A", "B", "C"):
        make_account(name)
    client.post(
        "/api/accounts",
        json={"organization_id": seed["org_id"], "name": "D", "type": "bank"},
        headers=member_headers,
    )

    r = _logs(client, seed, action="create", limit=2)
    assert r.headers["X-Total-Count"] == "3"
    assert [e["new_values"]["name"] for e in r.json()] == ["C", "B"]
    r = _logs(client, seed, action="create", limit=2, page=2)
    assert [e["new_values"]["name"] for e in r.json()] == ["A"]

    assert _logs(client, seed, action="update").json() == []
    assert len(_logs(client, seed, user_id=seed["owner_id"]).json()) == 3
    assert _logs(client, seed, user_id=seed["member_id"]).json() == []
    assert len(_logs(client, seed, start_date="2000-01-01", end_date="2999-12-31").json()) == 3
    assert _logs(client, seed, end_date="2000-01-01").json() == []

    r = client.get(
        "/api/audit-logs",
        params={"organization_id": seed["org_id"], "start_date": "2024-02-01", "end_date": "2024-01-01"},
    )
    assert r.status_code == 400
    r = client.get("/api/audit-logs", params={"organization_id": seed["org_id"], "limit": 101})
    assert r.status_code == 422


def test_members_read_outsiders_do_not(client, seed, make_account, member_headers):
    make_account("Banco")
    r = client.get("/api/audit-logs", params={"organization_id": seed["org_id"]}, headers=member_headers)
    assert r.status_code == 200
    assert len(r.json()) == 1

    outsider = client.post("/api/users", json={"email": "outsider@example.com"}).json()
    r = client.get(
        "/api/audit-logs",
        params={"organization_id": seed["org_id"]},
        headers={"X-User-Id": str(outsider["id"])},
    )
    assert r.status_code == 403


def test_manual_entries(client, seed, member_headers):
    r = client.post(
        "/api/audit-logs/manual",
        json={"organization_id": seed["org_id"], "action": "login", "table_name": "session", "metadata": {"ip": "10.0.0.1"}},
        headers=member_headers,
    )
    assert r.status_code == 201, r.text
    entry = r.json()
    assert entry["user_id"] == seed["member_id"]
    assert entry["user_email"] == "member@example.com"
    assert entry["new_values"] == {"ip": "10.0.0.1"}

    r = client.post(
        "/api/audit-logs/manual",
        json={"organization_id": seed["org_id"], "action": "create", "table_name": "account"},
    )
    assert r.status_code == 422
    assert [e["action"] for e in _logs(client, seed).json()] == ["login"]


def test_invitation_and_role_events(client, seed, db_session):
    invitation = client.post(
        "/api/invitations",
        json={"organization_id": seed["org_id"], "email": "nuevo@example.com"},
    ).json()
    user = client.post("/api/users", json={"email": "nuevo@example.com"}).json()
    r = client.post(
        "/api/invitations/accept",
        json={"code": invitation["code"]},
        headers={"X-User-Id": str(user["id"])},
    )
    assert r.status_code == 200, r.text

    membership = (
        db_session.query(models.Membership)
        .filter_by(organization_id=seed["org_id"], user_id=seed["member_id"])
        .one()
    )
    r = client.patch(f"/api/organizations/{seed['org_id']}/members/{membership.id}", json={"role": "admin"})
    assert r.status_code == 200, r.text

    entries = _logs(client, seed).json()
    assert [e["action"] for e in entries] == ["role_changed", "invitation_accepted", "invite_sent"]
    role_changed, accepted, sent = entries
    assert role_changed["old_values"]["role"] == "member"
    assert role_changed["new_values"]["role"] == "admin"
    assert accepted["user_id"] == user["id"]
    assert accepted["new_values"]["used_at"] is not None
    assert sent["user_id"] == seed["owner_id"]
    assert sent["new_values"]["email"] == "nuevo@example.com"
