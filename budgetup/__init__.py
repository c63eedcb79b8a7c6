"""BudgetUp: multi-tenant small-business ledger service."""

__version__ = "0.1.0"
