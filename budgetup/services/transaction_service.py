from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from budgetup import models
from budgetup.core.config import settings
from budgetup.domain.errors import TransactionValidationError
from budgetup.domain.events import EventBus, invalidate_balances, ledger_events
from budgetup.domain.types import CategoryType, TxnType, coerce_txn_type
from budgetup.domain.validator import LedgerEntry, TransferEntry, validate_transaction

logger = logging.getLogger(__name__)

DRAFT_FIELDS = (
    "type",
    "amount",
    "currency",
    "description",
    "occurred_at",
    "account_id",
    "category_id",
    "transfer_to_account_id",
    "itbis_pct",
    "notes",
    "attachment_url",
)


class TransactionService:
    """Write side of the ledger.

    Every create/update runs the validator over the complete draft and, once
    the change is committed, publishes ``BalancesInvalidated`` for every
    account the row touched before and after the change.
    """

    def __init__(self, db: Session, bus: EventBus | None = None) -> None:
        self.db = db
        self.bus = bus or ledger_events

    @staticmethod
    def draft_from_row(txn: models.Transaction) -> dict[str, Any]:
        return {name: getattr(txn, name) for name in DRAFT_FIELDS}

    def _category_type(self, organization_id: int, draft: Mapping[str, Any]) -> Optional[CategoryType]:
        category_id = draft.get("category_id")
        if category_id is None or category_id == "":
            return None
        try:
            if coerce_txn_type(draft.get("type")) is TxnType.TRANSFER:
                # transfers can't carry a category; the validator reports it
                return None
        except ValueError:
            return None
        category = self.db.get(models.Category, category_id)
        if not category or category.organization_id != organization_id:
            raise HTTPException(status_code=400, detail=f"Category {category_id} not found in organization")
        return category.type

    def _check_accounts(self, organization_id: int, entry: LedgerEntry) -> None:
        account_ids = [entry.account_id]
        if isinstance(entry, TransferEntry):
            account_ids.append(entry.transfer_to_account_id)
        for account_id in account_ids:
            account = self.db.get(models.Account, account_id)
            if not account or account.organization_id != organization_id:
                raise HTTPException(status_code=400, detail=f"Account {account_id} not found in organization")

    def build_entry(self, organization: models.Organization, draft: Mapping[str, Any]) -> LedgerEntry:
        """Validate a draft against the organization's categories and accounts."""
        category_type = self._category_type(organization.id, draft)
        try:
            entry = validate_transaction(
                draft,
                category_type=category_type,
                default_currency=organization.currency,
                allowed_currencies=settings.SUPPORTED_CURRENCIES,
                today=models.today_local(),
            )
        except TransactionValidationError as exc:
            logger.warning(
                "rejected transaction draft for organization %s: %s (%s)",
                organization.id,
                exc.kind,
                exc.field,
            )
            raise
        self._check_accounts(organization.id, entry)
        return entry

    def create(
        self,
        organization: models.Organization,
        draft: Mapping[str, Any],
        user: Optional[models.User] = None,
    ) -> models.Transaction:
        entry = self.build_entry(organization, draft)
        txn = models.Transaction(
            organization_id=organization.id,
            created_by=user.id if user else None,
            **entry.as_record(),
        )
        self.db.add(txn)
        self.db.commit()
        self.db.refresh(txn)
        logger.info("created %s transaction %s in organization %s", txn.type.value, txn.id, organization.id)
        invalidate_balances(txn.touched_account_ids(), "transaction.created", organization.id, self.bus)
        return txn

    def update(self, txn: models.Transaction, patch: Mapping[str, Any]) -> models.Transaction:
        """Apply a partial update.

        The patch is overlaid on the stored row and the merged draft is
        validated as a whole, so switching ``type`` requires clearing the
        fields the new type forbids.
        """
        organization = self.db.get(models.Organization, txn.organization_id)
        before = txn.touched_account_ids()
        merged = self.draft_from_row(txn)
        merged.update({k: v for k, v in patch.items() if k in DRAFT_FIELDS})
        entry = self.build_entry(organization, merged)

        for key, value in entry.as_record().items():
            setattr(txn, key, value)
        self.db.commit()
        self.db.refresh(txn)
        logger.info("updated transaction %s in organization %s", txn.id, txn.organization_id)
        invalidate_balances(before | txn.touched_account_ids(), "transaction.updated", txn.organization_id, self.bus)
        return txn

    def delete(self, txn: models.Transaction) -> None:
        touched = txn.touched_account_ids()
        organization_id = txn.organization_id
        txn_id = txn.id
        self.db.delete(txn)
        self.db.commit()
        logger.info("deleted transaction %s in organization %s", txn_id, organization_id)
        invalidate_balances(touched, "transaction.deleted", organization_id, self.bus)

    def get(self, txn_id: int) -> models.Transaction:
        txn = self.db.get(models.Transaction, txn_id)
        if not txn:
            raise HTTPException(status_code=404, detail="Transaction not found")
        return txn
