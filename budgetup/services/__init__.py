"""
Services package

Business logic service classes used by the API handlers.
"""

from .account_service import AccountService
from .audit_service import AuditLogFilters, AuditService
from .category_service import CategoryService
from .ledger_repository import BalanceCache, LedgerRepository, TransactionFilters, balance_cache, default_balance_cache
from .invitation_service import InvitationService
from .metrics_service import MetricsService
from .organization_service import OrganizationService
from .transaction_io_service import ImportReport, TransactionImportService, export_rows, render_csv
from .transaction_service import TransactionService

__all__ = [
    "AccountService",
    "AuditLogFilters",
    "AuditService",
    "BalanceCache",
    "CategoryService",
    "ImportReport",
    "InvitationService",
    "LedgerRepository",
    "MetricsService",
    "OrganizationService",
    "TransactionFilters",
    "TransactionImportService",
    "TransactionService",
    "balance_cache",
    "default_balance_cache",
    "export_rows",
    "render_csv",
]
