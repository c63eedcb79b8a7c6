"""Transaction draft validation.

A draft is the flat, loosely typed record a form or an import row produces.
``validate_transaction`` turns it into exactly one of ``IncomeEntry``,
``ExpenseEntry`` or ``TransferEntry``; the entry classes only carry the fields
their type allows, so an invalid combination can't be built from them.

Check order matters for callers that surface only the first problem:
type, the type-specific link fields (category / transfer target), cross-type
leftovers, category type, then the common fields.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar, Collection, Mapping, Optional, Union

from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from .errors import (
    CategoryTypeMismatch,
    ForbiddenField,
    InvalidAmount,
    InvalidItbisPct,
    InvalidTransactionType,
    MissingRequiredField,
    SameAccountTransfer,
    TransactionValidationError,
)
from .types import CategoryType, TxnType, coerce_txn_type

MAX_AMOUNT = Decimal("999999999999.99")
MAX_DESCRIPTION_LENGTH = 500
MAX_NOTES_LENGTH = 1000

_http_url = TypeAdapter(AnyHttpUrl)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass
class TransactionDraft:
    type: Any = None
    amount: Any = None
    account_id: Any = None
    occurred_at: Any = None
    description: Optional[str] = None
    category_id: Any = None
    transfer_to_account_id: Any = None
    itbis_pct: Any = None
    currency: Optional[str] = None
    notes: Optional[str] = None
    attachment_url: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TransactionDraft":
        """Build a draft from a dict, ignoring keys that aren't draft fields."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


@dataclass(frozen=True)
class _Entry:
    amount: Decimal
    account_id: Any
    occurred_at: date
    description: str
    currency: str
    notes: Optional[str] = None
    attachment_url: Optional[str] = None

    type: ClassVar[TxnType]

    def as_record(self) -> dict[str, Any]:
        """Column values for persistence; fields foreign to the type are None."""
        record = {
            "type": self.type,
            "amount": self.amount,
            "account_id": self.account_id,
            "occurred_at": self.occurred_at,
            "description": self.description,
            "currency": self.currency,
            "notes": self.notes,
            "attachment_url": self.attachment_url,
            "category_id": None,
            "transfer_to_account_id": None,
            "itbis_pct": None,
        }
        for f in fields(self):
            record[f.name] = getattr(self, f.name)
        return record


@dataclass(frozen=True)
class IncomeEntry(_Entry):
    category_id: Any = None

    type: ClassVar[TxnType] = TxnType.INCOME


@dataclass(frozen=True)
class ExpenseEntry(_Entry):
    category_id: Any = None
    itbis_pct: Optional[Decimal] = None

    type: ClassVar[TxnType] = TxnType.EXPENSE


@dataclass(frozen=True)
class TransferEntry(_Entry):
    transfer_to_account_id: Any = None

    type: ClassVar[TxnType] = TxnType.TRANSFER


LedgerEntry = Union[IncomeEntry, ExpenseEntry, TransferEntry]


def parse_amount(value: Any) -> Decimal:
    """Parse a positive money amount with at most two decimal places."""
    if _blank(value):
        raise MissingRequiredField("amount")
    if isinstance(value, bool):
        raise InvalidAmount()
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidAmount("amount must be a finite number")
        value = repr(value)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount("amount must be numeric") from None
    if not amount.is_finite():
        raise InvalidAmount("amount must be a finite number")
    if amount <= 0:
        raise InvalidAmount()
    if amount > MAX_AMOUNT:
        raise InvalidAmount("amount is too large")
    if amount.as_tuple().exponent < -2 and amount != amount.quantize(Decimal("0.01")):
        raise InvalidAmount("amount can't have more than 2 decimal places")
    return amount.quantize(Decimal("0.01"))


def parse_occurred_at(value: Any, today: Optional[date] = None) -> date:
    """Parse the transaction date; anything after ``today`` is rejected."""
    if _blank(value):
        raise MissingRequiredField("occurred_at")
    if isinstance(value, datetime):
        occurred_at = value.date()
    elif isinstance(value, date):
        occurred_at = value
    else:
        try:
            occurred_at = date.fromisoformat(str(value).strip()[:10])
        except ValueError:
            raise TransactionValidationError(
                f"occurred_at is not a valid date: {value!r}", field="occurred_at"
            ) from None
    if occurred_at > (today or date.today()):
        raise TransactionValidationError("occurred_at can't be in the future", field="occurred_at")
    return occurred_at


def parse_attachment_url(value: Any) -> Optional[str]:
    """Blank means no attachment; otherwise an absolute http(s) URL."""
    if _blank(value):
        return None
    url = str(value).strip()
    try:
        _http_url.validate_python(url)
    except ValidationError:
        raise TransactionValidationError(f"attachment_url is not a valid URL: {url!r}", field="attachment_url") from None
    return url


def parse_itbis_pct(value: Any) -> Optional[Decimal]:
    if _blank(value):
        return None
    if isinstance(value, bool):
        raise InvalidItbisPct(value)
    try:
        pct = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidItbisPct(value) from None
    if not pct.is_finite() or pct < 0 or pct > 100:
        raise InvalidItbisPct(value)
    return pct.quantize(Decimal("0.01"))


def _clean_text(value: Optional[str]) -> Optional[str]:
    if _blank(value):
        return None
    return str(value).strip()


def validate_transaction(
    draft: TransactionDraft | Mapping[str, Any],
    *,
    category_type: CategoryType | str | None = None,
    default_currency: str = "DOP",
    allowed_currencies: Collection[str] | None = None,
    today: Optional[date] = None,
) -> LedgerEntry:
    """Accept or reject a draft.

    ``category_type`` is the stored type of ``draft.category_id``; the caller
    resolves it. When omitted the category/transaction type match isn't
    checked. ``today`` is the latest acceptable ``occurred_at`` (defaults to
    the host's current date).

    Raises a ``TransactionValidationError`` subclass on the first problem.
    """
    if not isinstance(draft, TransactionDraft):
        draft = TransactionDraft.from_mapping(draft)

    if _blank(draft.type):
        raise MissingRequiredField("type")
    try:
        txn_type = coerce_txn_type(draft.type)
    except ValueError:
        raise InvalidTransactionType(draft.type) from None

    if txn_type is TxnType.TRANSFER:
        if _blank(draft.transfer_to_account_id):
            raise MissingRequiredField("transfer_to_account_id")
        if _blank(draft.account_id):
            raise MissingRequiredField("account_id")
        if draft.account_id == draft.transfer_to_account_id:
            raise SameAccountTransfer(draft.account_id)
        if not _blank(draft.category_id):
            raise ForbiddenField("category_id", txn_type.value)
    else:
        if _blank(draft.category_id):
            raise MissingRequiredField("category_id")
        if not _blank(draft.transfer_to_account_id):
            raise ForbiddenField("transfer_to_account_id", txn_type.value)
        if category_type is not None:
            actual = CategoryType(getattr(category_type, "value", category_type))
            if actual.value != txn_type.value:
                raise CategoryTypeMismatch(txn_type.value, actual.value)
        if _blank(draft.account_id):
            raise MissingRequiredField("account_id")

    if txn_type is not TxnType.EXPENSE and not _blank(draft.itbis_pct):
        raise ForbiddenField("itbis_pct", txn_type.value)

    amount = parse_amount(draft.amount)
    occurred_at = parse_occurred_at(draft.occurred_at, today)

    description = _clean_text(draft.description)
    if description is None:
        raise MissingRequiredField("description")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise TransactionValidationError(
            f"description can't exceed {MAX_DESCRIPTION_LENGTH} characters", field="description"
        )

    notes = _clean_text(draft.notes)
    if notes is not None and len(notes) > MAX_NOTES_LENGTH:
        raise TransactionValidationError(f"notes can't exceed {MAX_NOTES_LENGTH} characters", field="notes")

    currency = (_clean_text(draft.currency) or default_currency).upper()
    if allowed_currencies is not None and currency not in allowed_currencies:
        raise TransactionValidationError(f"unsupported currency {currency!r}", field="currency")

    attachment_url = parse_attachment_url(draft.attachment_url)

    common = dict(
        amount=amount,
        account_id=draft.account_id,
        occurred_at=occurred_at,
        description=description,
        currency=currency,
        notes=notes,
        attachment_url=attachment_url,
    )
    if txn_type is TxnType.INCOME:
        return IncomeEntry(category_id=draft.category_id, **common)
    if txn_type is TxnType.EXPENSE:
        return ExpenseEntry(category_id=draft.category_id, itbis_pct=parse_itbis_pct(draft.itbis_pct), **common)
    return TransferEntry(transfer_to_account_id=draft.transfer_to_account_id, **common)
