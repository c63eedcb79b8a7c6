from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from budgetup import models
from budgetup.core.config import settings
from budgetup.domain.errors import ReferentialDeleteBlocked
from budgetup.domain.events import EventBus, invalidate_balances, ledger_events

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, db: Session, bus: EventBus | None = None) -> None:
        self.db = db
        self.bus = bus or ledger_events

    def get(self, account_id: int) -> models.Account:
        account = self.db.get(models.Account, account_id)
        if not account:
            raise HTTPException(status_code=404, detail="Account not found")
        return account

    def _ensure_unique_name(self, organization_id: int, name: str, exclude_id: Optional[int] = None) -> None:
        query = self.db.query(models.Account).filter(
            models.Account.organization_id == organization_id,
            func.lower(models.Account.name) == name.lower(),
        )
        if exclude_id is not None:
            query = query.filter(models.Account.id != exclude_id)
        if query.first():
            raise HTTPException(status_code=409, detail="Account with same name already exists in organization")

    @staticmethod
    def _check_currency(currency: str) -> str:
        if currency not in settings.SUPPORTED_CURRENCIES:
            raise HTTPException(status_code=400, detail=f"Unsupported currency {currency}")
        return currency

    def create(self, organization: models.Organization, data: Mapping[str, Any]) -> models.Account:
        self._ensure_unique_name(organization.id, data["name"])
        currency = self._check_currency(data.get("currency") or organization.currency)
        account = models.Account(
            organization_id=organization.id,
            name=data["name"],
            type=data["type"],
            currency=currency,
            initial_balance=data.get("initial_balance") or 0,
            account_number=data.get("account_number"),
        )
        self.db.add(account)
        self.db.commit()
        self.db.refresh(account)
        logger.info("created account %s (%s) in organization %s", account.id, account.name, organization.id)
        return account

    def update(self, account: models.Account, changes: Mapping[str, Any]) -> models.Account:
        if changes.get("name") is not None:
            self._ensure_unique_name(account.organization_id, changes["name"], exclude_id=account.id)
        if changes.get("currency") is not None:
            self._check_currency(changes["currency"])

        balance_changed = False
        for key, value in changes.items():
            if value is None and key != "account_number":
                continue
            if key == "initial_balance" and value != account.initial_balance:
                balance_changed = True
            setattr(account, key, value)
        self.db.commit()
        self.db.refresh(account)
        logger.info("updated account %s in organization %s", account.id, account.organization_id)
        if balance_changed:
            invalidate_balances([account.id], "account.initial_balance", account.organization_id, self.bus)
        return account

    def reference_count(self, account_id: int) -> int:
        return (
            self.db.query(models.Transaction)
            .filter(
                or_(
                    models.Transaction.account_id == account_id,
                    models.Transaction.transfer_to_account_id == account_id,
                )
            )
            .count()
        )

    def delete(self, account: models.Account) -> None:
        references = self.reference_count(account.id)
        if references:
            logger.warning("refused to delete account %s: %d transaction(s) reference it", account.id, references)
            raise ReferentialDeleteBlocked("account", account.id, references)
        account_id = account.id
        organization_id = account.organization_id
        self.db.delete(account)
        self.db.commit()
        logger.info("deleted account %s in organization %s", account_id, organization_id)
        invalidate_balances([account_id], "account.deleted", organization_id, self.bus)
