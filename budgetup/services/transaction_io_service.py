"""
Bulk transaction import and CSV export

Import receives rows already split into the template columns (by the
client's CSV parser), resolves account and category names inside the
organization, and runs every row through the ledger validator. Valid rows
are inserted together in one commit; rejected rows are reported by row
number (the header is row 1).
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence

from fastapi import HTTPException
from sqlalchemy.orm import Session

from budgetup import models
from budgetup.core.config import settings
from budgetup.domain.errors import TransactionValidationError
from budgetup.domain.events import EventBus, invalidate_balances, ledger_events
from budgetup.domain.types import TxnType
from budgetup.services.transaction_service import TransactionService
from budgetup.utils.normalization import index_by_name, normalize_category_ref, normalize_name_token

logger = logging.getLogger(__name__)

TEMPLATE_COLUMNS = (
    "type",
    "amount",
    "description",
    "occurred_at",
    "account_name",
    "category_name",
    "transfer_to_account_name",
    "itbis_pct",
    "notes",
    "currency",
)

# errors are reported against the template column the user edits
_COLUMN_FOR_FIELD = {
    "account_id": "account_name",
    "category_id": "category_name",
    "transfer_to_account_id": "transfer_to_account_name",
}


class UnresolvedName(TransactionValidationError):
    """A row names an account or category that doesn't exist in the organization."""

    def __init__(self, column: str, name: str) -> None:
        super().__init__(f"{column} {name!r} not found in organization", field=column)


@dataclass
class ImportRowError:
    row: int
    field: Optional[str]
    error: str
    message: str


@dataclass
class ImportReport:
    total_count: int = 0
    imported: int = 0
    skipped: int = 0
    errors: list[ImportRowError] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def _cell(row: Mapping[str, Any], column: str) -> Optional[str]:
    value = row.get(column)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _is_blank_row(row: Mapping[str, Any]) -> bool:
    return all(_cell(row, column) is None for column in row.keys())


class TransactionImportService:
    def __init__(self, db: Session, bus: EventBus | None = None) -> None:
        self.db = db
        self.bus = bus or ledger_events
        self.transactions = TransactionService(db, bus=self.bus)

    def _name_indexes(self, organization_id: int):
        accounts = (
            self.db.query(models.Account)
            .filter(models.Account.organization_id == organization_id)
            .order_by(models.Account.id)
            .all()
        )
        categories = (
            self.db.query(models.Category)
            .filter(models.Category.organization_id == organization_id)
            .order_by(models.Category.id)
            .all()
        )
        by_ref: dict[str, models.Category] = {}
        for category in categories:
            by_ref.setdefault(normalize_category_ref(category.name, category.type), category)
        return index_by_name(accounts), by_ref, index_by_name(categories)

    def _resolve_draft(self, row: Mapping[str, Any], accounts, categories_by_ref, categories_by_name) -> dict[str, Any]:
        raw_type = _cell(row, "type")
        draft: dict[str, Any] = {
            "type": raw_type,
            "amount": _cell(row, "amount"),
            "description": _cell(row, "description"),
            "occurred_at": _cell(row, "occurred_at"),
            "itbis_pct": _cell(row, "itbis_pct"),
            "notes": _cell(row, "notes"),
            "currency": _cell(row, "currency"),
        }

        for column, key in (("account_name", "account_id"), ("transfer_to_account_name", "transfer_to_account_id")):
            name = _cell(row, column)
            if name is None:
                continue
            account = accounts.get(normalize_name_token(name))
            if account is None:
                raise UnresolvedName(column, name)
            draft[key] = account.id

        category_name = _cell(row, "category_name")
        if category_name is not None and (raw_type or "").lower() == TxnType.TRANSFER.value:
            # forbidden on transfers whether or not the name exists
            draft["category_id"] = category_name
        elif category_name is not None:
            category = categories_by_ref.get(normalize_category_ref(category_name, (raw_type or "").lower()))
            if category is None:
                # same name under the other type: let the validator report the mismatch
                category = categories_by_name.get(normalize_name_token(category_name))
            if category is None:
                raise UnresolvedName("category_name", category_name)
            draft["category_id"] = category.id
        return draft

    def import_rows(
        self,
        organization: models.Organization,
        rows: Sequence[Mapping[str, Any]],
        user: Optional[models.User] = None,
    ) -> ImportReport:
        if len(rows) > settings.IMPORT_MAX_ROWS:
            raise HTTPException(
                status_code=400,
                detail=f"Too many rows: {len(rows)} (max {settings.IMPORT_MAX_ROWS})",
            )
        report = ImportReport(total_count=len(rows))
        accounts, categories_by_ref, categories_by_name = self._name_indexes(organization.id)

        pending: list[models.Transaction] = []
        for index, row in enumerate(rows):
            row_number = index + 2
            if _is_blank_row(row):
                report.skipped += 1
                continue
            try:
                draft = self._resolve_draft(row, accounts, categories_by_ref, categories_by_name)
                entry = self.transactions.build_entry(organization, draft)
            except TransactionValidationError as exc:
                report.skipped += 1
                report.errors.append(
                    ImportRowError(
                        row=row_number,
                        field=_COLUMN_FOR_FIELD.get(exc.field, exc.field),
                        error=exc.kind,
                        message=exc.message,
                    )
                )
                continue
            pending.append(
                models.Transaction(
                    organization_id=organization.id,
                    created_by=user.id if user else None,
                    **entry.as_record(),
                )
            )

        if pending:
            self.db.add_all(pending)
            self.db.commit()
            touched: set[int] = set()
            for txn in pending:
                touched |= txn.touched_account_ids()
            invalidate_balances(touched, "transaction.imported", organization.id, self.bus)
        report.imported = len(pending)
        logger.info(
            "import into organization %s: %d imported, %d skipped, %d error(s)",
            organization.id,
            report.imported,
            report.skipped,
            len(report.errors),
        )
        return report


def export_rows(
    transactions: Iterable[models.Transaction],
    accounts: Iterable[models.Account],
    categories: Iterable[models.Category],
) -> list[dict[str, str]]:
    """Template-shaped rows, names instead of ids, ready to re-import."""
    account_names = {a.id: a.name for a in accounts}
    category_names = {c.id: c.name for c in categories}
    rows = []
    for txn in transactions:
        rows.append(
            {
                "type": txn.type.value,
                "amount": f"{txn.amount:.2f}",
                "description": txn.description,
                "occurred_at": txn.occurred_at.isoformat(),
                "account_name": account_names.get(txn.account_id, ""),
                "category_name": category_names.get(txn.category_id, "") if txn.type != TxnType.TRANSFER else "",
                "transfer_to_account_name": account_names.get(txn.transfer_to_account_id, "")
                if txn.transfer_to_account_id
                else "",
                "itbis_pct": f"{txn.itbis_pct:.2f}" if txn.itbis_pct is not None else "",
                "notes": txn.notes or "",
                "currency": txn.currency,
            }
        )
    return rows


def render_csv(rows: Iterable[Mapping[str, str]]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=TEMPLATE_COLUMNS, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue()
