"""Account handlers. Balances are derived through the ledger repository."""

from __future__ import annotations

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from budgetup import models
from budgetup.core.database import get_db
from budgetup.core.deps import get_current_user, get_organization, require_membership
from budgetup.domain.types import Role
from budgetup.schemas import AccountBalancesOut, AccountCreate, AccountOut, AccountUpdate
from budgetup.services import AccountService, LedgerRepository, default_balance_cache


def _repository(db: Session) -> LedgerRepository:
    return LedgerRepository(db, default_balance_cache())


def create_account(
    payload: AccountCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> AccountOut:
    require_membership(db, user, payload.organization_id, Role.ADMIN)
    org = get_organization(db, payload.organization_id)
    account = AccountService(db).create(org, payload.model_dump())
    return AccountOut.from_row(account, _repository(db).account_balance(account))


def list_accounts(
    organization_id: int = Query(...),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> list[AccountOut]:
    require_membership(db, user, organization_id)
    return [
        AccountOut.from_row(account, balance)
        for account, balance in _repository(db).account_balances(organization_id)
    ]


def get_account_balances(
    organization_id: int = Query(...),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> AccountBalancesOut:
    require_membership(db, user, organization_id)
    repo = _repository(db)
    balances = repo.account_balances(organization_id)
    return AccountBalancesOut(
        balances=[AccountOut.from_row(account, balance) for account, balance in balances],
        total_balance=repo.total_balance(balances),
    )


def get_account(
    account_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> AccountOut:
    account = AccountService(db).get(account_id)
    require_membership(db, user, account.organization_id)
    return AccountOut.from_row(account, _repository(db).account_balance(account))


def update_account(
    account_id: int,
    payload: AccountUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> AccountOut:
    service = AccountService(db)
    account = service.get(account_id)
    require_membership(db, user, account.organization_id, Role.ADMIN)
    account = service.update(account, payload.model_dump(exclude_unset=True))
    return AccountOut.from_row(account, _repository(db).account_balance(account))


def delete_account(
    account_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> None:
    service = AccountService(db)
    account = service.get(account_id)
    require_membership(db, user, account.organization_id, Role.ADMIN)
    service.delete(account)
    return None
