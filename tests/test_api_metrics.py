from __future__ import annotations

from decimal import Decimal

import pytest


@pytest.fixture()
def activity(make_account, make_category, make_txn):
    bank = make_account("Banco", initial_balance="1000")
    cash = make_account("Caja")
    sales = make_category("Ventas", "income")
    rent = make_category("Renta", "expense")
    fuel = make_category("Transporte", "expense")

    make_txn(type="income", amount="100", account_id=bank["id"], category_id=sales["id"], occurred_at="2024-04-10")
    make_txn(type="expense", amount="80", account_id=bank["id"], category_id=rent["id"], occurred_at="2024-04-12")
    make_txn(type="income", amount="300", account_id=bank["id"], category_id=sales["id"], occurred_at="2024-05-02")
    make_txn(type="expense", amount="120", account_id=bank["id"], category_id=rent["id"], occurred_at="2024-05-03")
    make_txn(type="expense", amount="40", account_id=cash["id"], category_id=fuel["id"], occurred_at="2024-05-04")
    make_txn(type="transfer", amount="50", account_id=bank["id"], transfer_to_account_id=cash["id"], occurred_at="2024-05-05")
    return {"bank": bank, "cash": cash, "rent": rent, "fuel": fuel}


def test_kpis(client, seed, activity):
    r = client.get("/api/metrics/kpis", params={"organization_id": seed["org_id"], "today": "2024-05-15"})
    assert r.status_code == 200, r.text
    kpis = r.json()
    assert kpis["month"] == "2024-05-01"
    assert kpis["currency"] == "DOP"
    assert Decimal(kpis["current_month_income"]) == Decimal("300")
    assert Decimal(kpis["current_month_expense"]) == Decimal("160")
    assert Decimal(kpis["previous_month_balance"]) == Decimal("20")
    assert Decimal(kpis["income_change_pct"]) == Decimal("200.00")
    assert Decimal(kpis["expense_change_pct"]) == Decimal("100.00")
    assert Decimal(kpis["balance_change_pct"]) == Decimal("600.00")


def test_monthly_balance(client, seed, activity):
    r = client.get(
        "/api/metrics/monthly",
        params={"organization_id": seed["org_id"], "months": 3, "end_month": "2024-05-20"},
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["months"] == 3
    months = [row["month"] for row in body["data"]]
    assert months == ["2024-03-01", "2024-04-01", "2024-05-01"]
    assert body["data"][0]["transaction_count"] == 0
    assert Decimal(body["data"][2]["net_balance"]) == Decimal("140")
    assert Decimal(body["data"][2]["cumulative_balance"]) == Decimal("160")


def test_top_categories(client, seed, activity):
    r = client.get("/api/metrics/top-categories", params={"organization_id": seed["org_id"], "limit": 1})
    assert r.status_code == 200, r.text
    body = r.json()
    assert Decimal(body["total_expenses"]) == Decimal("240")
    assert len(body["data"]) == 1
    top = body["data"][0]
    assert top["category_id"] == activity["rent"]["id"]
    assert Decimal(top["percentage"]) == Decimal("83.33")

    r = client.get(
        "/api/metrics/top-categories",
        params={"organization_id": seed["org_id"], "start_date": "2024-05-04", "end_date": "2024-05-31"},
    )
    assert [row["category_name"] for row in r.json()["data"]] == ["Transporte"]


def test_top_accounts(client, seed, activity):
    r = client.get("/api/metrics/top-accounts", params={"organization_id": seed["org_id"]})
    assert r.status_code == 200, r.text
    rows = r.json()["data"]
    assert [row["account_name"] for row in rows] == ["Banco", "Caja"]
    assert rows[0]["account_type"] == "bank"
    assert Decimal(rows[0]["total_amount"]) == Decimal("200")


def test_metrics_require_membership(client, seed, db_session):
    from budgetup import models

    outsider = models.User(email="outsider@example.com", is_active=True)
    db_session.add(outsider)
    db_session.commit()
    r = client.get(
        "/api/metrics/kpis",
        params={"organization_id": seed["org_id"]},
        headers={"X-User-Id": str(outsider.id)},
    )
    assert r.status_code == 403
