"""Ledger error taxonomy.

Validation failures carry the offending ``field`` so callers can render the
message next to the matching form input. None of these are fatal; the API
layer maps them to 422/409 responses.
"""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Base class for every error raised by the ledger core."""

    field: str | None = None

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if field is not None:
            self.field = field

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "field": self.field, "detail": self.message}


class TransactionValidationError(LedgerError):
    """A transaction draft was rejected before persistence."""


class MissingRequiredField(TransactionValidationError):
    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"{field} is required", field=field)


class InvalidAmount(TransactionValidationError):
    def __init__(self, message: str = "amount must be a number greater than zero") -> None:
        super().__init__(message, field="amount")


class SameAccountTransfer(TransactionValidationError):
    def __init__(self, account_id: Any = None) -> None:
        super().__init__(
            "source and destination accounts must be different",
            field="transfer_to_account_id",
        )
        self.account_id = account_id


class CategoryTypeMismatch(TransactionValidationError):
    def __init__(self, expected: str, actual: str | None) -> None:
        super().__init__(
            f"category type {actual!r} does not match transaction type {expected!r}",
            field="category_id",
        )
        self.expected = expected
        self.actual = actual


class ForbiddenField(TransactionValidationError):
    """A field that belongs to another transaction type is set on the draft."""

    def __init__(self, field: str, txn_type: str) -> None:
        super().__init__(f"{field} is not allowed on {txn_type} transactions", field=field)
        self.txn_type = txn_type


class InvalidTransactionType(TransactionValidationError):
    def __init__(self, value: Any) -> None:
        super().__init__(
            f"invalid transaction type {value!r}; expected income, expense or transfer",
            field="type",
        )


class InvalidItbisPct(TransactionValidationError):
    def __init__(self, value: Any) -> None:
        super().__init__(f"itbis_pct must be between 0 and 100, got {value!r}", field="itbis_pct")


class ReferentialDeleteBlocked(LedgerError):
    """Deletion refused because transactions still reference the row."""

    def __init__(self, entity: str, entity_id: Any, references: int) -> None:
        super().__init__(
            f"cannot delete {entity} {entity_id}: referenced by {references} transaction(s)",
            field=None,
        )
        self.entity = entity
        self.entity_id = entity_id
        self.references = references
