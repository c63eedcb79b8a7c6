from __future__ import annotations

import os
import tempfile
from typing import Generator, Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from budgetup.core.database import Base, get_db
from budgetup.main import app
from budgetup import models
from budgetup.services import balance_cache


@pytest.fixture(scope="session")
def test_db_url() -> Generator[str, Any, Any]:
    # temp-file SQLite so the developer's database is never touched
    fd, path = tempfile.mkstemp(prefix="budgetup_test_", suffix=".sqlite3")
    os.close(fd)
    url = f"sqlite:///{path}"
    yield url
    try:
        os.remove(path)
    except OSError:
        pass


@pytest.fixture(scope="session")
def engine(test_db_url: str):
    eng = create_engine(test_db_url, connect_args={"check_same_thread": False})
    Base.metadata.create_all(eng)
    return eng


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Any, Any, Any]:
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSessionLocal()
    # seed: owner + member users sharing one DOP organization
    owner = models.User(email="owner@example.com", display_name="Owner", is_active=True)
    member = models.User(email="member@example.com", display_name="Member", is_active=True)
    session.add_all([owner, member])
    session.flush()
    org = models.Organization(name="Acme SRL", currency="DOP", created_by=owner.id)
    session.add(org)
    session.flush()
    session.add_all(
        [
            models.Membership(user_id=owner.id, organization_id=org.id, role=models.Role.OWNER),
            models.Membership(user_id=member.id, organization_id=org.id, role=models.Role.MEMBER),
        ]
    )
    session.commit()
    balance_cache.clear()

    try:
        yield session
    finally:
        session.close()
        balance_cache.clear()
        with engine.begin() as conn:
            if engine.dialect.name == "sqlite":
                conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
            for tbl in reversed(Base.metadata.sorted_tables):
                conn.execute(tbl.delete())
            if engine.dialect.name == "sqlite":
                conn.exec_driver_sql("PRAGMA foreign_keys=ON")


@pytest.fixture()
def seed(db_session) -> dict[str, int]:
    owner = db_session.query(models.User).filter_by(email="owner@example.com").one()
    member = db_session.query(models.User).filter_by(email="member@example.com").one()
    org = db_session.query(models.Organization).filter_by(name="Acme SRL").one()
    return {"owner_id": owner.id, "member_id": member.id, "org_id": org.id}


@pytest.fixture(autouse=True)
def override_dependency(db_session):
    # FastAPI DI override
    def _get_db_override():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db_override
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def client(seed):
    """TestClient acting as the organization owner."""
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        c.headers.update({"X-User-Id": str(seed["owner_id"])})
        yield c


@pytest.fixture()
def member_headers(seed) -> dict[str, str]:
    return {"X-User-Id": str(seed["member_id"])}


@pytest.fixture()
def make_account(client, seed):
    def _make(name: str, initial_balance: str = "0", type: str = "bank", **extra):
        payload = {
            "organization_id": seed["org_id"],
            "name": name,
            "type": type,
            "initial_balance": initial_balance,
            **extra,
        }
        resp = client.post("/api/accounts", json=payload)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make


@pytest.fixture()
def make_category(client, seed):
    def _make(name: str, type: str, **extra):
        resp = client.post(
            "/api/categories",
            json={"organization_id": seed["org_id"], "name": name, "type": type, **extra},
        )
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make


@pytest.fixture()
def make_txn(client, seed):
    def _make(**fields):
        payload = {
            "organization_id": seed["org_id"],
            "occurred_at": "2024-01-15",
            "description": "entry",
            **fields,
        }
        resp = client.post("/api/transactions", json=payload)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _make
