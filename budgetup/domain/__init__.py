"""Pure ledger rules: balance/totals aggregation and transaction validation."""

from .aggregator import TransactionTotals, compute_account_balance, compute_totals
from .errors import (
    CategoryTypeMismatch,
    ForbiddenField,
    InvalidAmount,
    InvalidItbisPct,
    InvalidTransactionType,
    LedgerError,
    MissingRequiredField,
    ReferentialDeleteBlocked,
    SameAccountTransfer,
    TransactionValidationError,
)
from .types import AccountType, CategoryType, Role, TxnType, has_role
from .validator import (
    ExpenseEntry,
    IncomeEntry,
    LedgerEntry,
    TransactionDraft,
    TransferEntry,
    validate_transaction,
)

__all__ = [
    "AccountType",
    "CategoryType",
    "CategoryTypeMismatch",
    "ExpenseEntry",
    "ForbiddenField",
    "IncomeEntry",
    "InvalidAmount",
    "InvalidItbisPct",
    "InvalidTransactionType",
    "LedgerEntry",
    "LedgerError",
    "MissingRequiredField",
    "ReferentialDeleteBlocked",
    "Role",
    "SameAccountTransfer",
    "TransactionDraft",
    "TransactionTotals",
    "TransactionValidationError",
    "TransferEntry",
    "TxnType",
    "compute_account_balance",
    "compute_totals",
    "has_role",
    "validate_transaction",
]
