from __future__ import annotations

from datetime import date
from typing import Any, Optional

from sqlalchemy.orm import Session

from budgetup import models
from budgetup.domain import metrics
from budgetup.services.ledger_repository import LedgerRepository, TransactionFilters


class MetricsService:
    """Loads the scoped transaction set and hands it to the pure metric functions."""

    def __init__(self, db: Session, repository: Optional[LedgerRepository] = None) -> None:
        self.db = db
        self.repository = repository or LedgerRepository(db)

    def _transactions(self, organization_id: int, start: Optional[date] = None, end: Optional[date] = None):
        filters = TransactionFilters(organization_id=organization_id, start_date=start, end_date=end)
        return self.repository.filtered_transactions(filters)

    def kpis(self, organization: models.Organization, today: date) -> dict[str, Any]:
        previous_start = metrics.add_months(metrics.month_start(today), -1)
        result = metrics.month_kpis(self._transactions(organization.id, previous_start, today), today=today)
        result["currency"] = organization.currency
        return result

    def monthly(self, organization_id: int, end_month: date, months: int) -> list[dict[str, Any]]:
        last = metrics.month_start(end_month)
        first = metrics.add_months(last, -(months - 1))
        end = metrics.add_months(last, 1)
        rows = [t for t in self._transactions(organization_id, first) if t.occurred_at < end]
        return metrics.monthly_balance(rows, end_month=last, months=months)

    def top_categories(
        self,
        organization_id: int,
        limit: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ):
        categories = (
            self.db.query(models.Category)
            .filter(models.Category.organization_id == organization_id)
            .all()
        )
        return metrics.top_expense_categories(self._transactions(organization_id, start, end), categories, limit=limit)

    def top_accounts(self, organization_id: int, limit: int):
        accounts = (
            self.db.query(models.Account)
            .filter(models.Account.organization_id == organization_id)
            .all()
        )
        return metrics.top_expense_accounts(self._transactions(organization_id), accounts, limit=limit)
