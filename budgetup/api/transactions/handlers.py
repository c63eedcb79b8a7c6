"""Transaction handlers: CRUD, filtered listing, totals, import and export."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from fastapi import Body, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from budgetup import models
from budgetup.core.database import get_db
from budgetup.core.deps import get_current_user, get_organization, require_membership
from budgetup.domain.types import Role, TxnType
from budgetup.schemas import (
    TransactionCreate,
    TransactionImportResult,
    TransactionTotalsResponse,
    TransactionUpdate,
)
from budgetup.services import (
    LedgerRepository,
    TransactionFilters,
    TransactionImportService,
    TransactionService,
    default_balance_cache,
    export_rows,
    render_csv,
)


def transaction_filters(
    organization_id: int = Query(...),
    type: Optional[TxnType] = Query(None),
    account_id: Optional[int] = Query(None),
    category_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
) -> TransactionFilters:
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must be on or before end_date")
    return TransactionFilters(
        organization_id=organization_id,
        type=type,
        account_id=account_id,
        category_id=category_id,
        start_date=start_date,
        end_date=end_date,
        search=search,
    )


def _repository(db: Session) -> LedgerRepository:
    return LedgerRepository(db, default_balance_cache())


def list_transactions(
    response: Response,
    filters: TransactionFilters = Depends(transaction_filters),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=1000),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> list[models.Transaction]:
    require_membership(db, user, filters.organization_id)
    repo = _repository(db)
    response.headers["X-Total-Count"] = str(repo.count(filters))
    return repo.filtered_transactions(filters, offset=(page - 1) * page_size, limit=page_size)


def get_totals(
    filters: TransactionFilters = Depends(transaction_filters),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> TransactionTotalsResponse:
    require_membership(db, user, filters.organization_id)
    totals = _repository(db).totals(filters)
    return TransactionTotalsResponse(totals=totals.as_dict())


def create_transaction(
    payload: TransactionCreate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> models.Transaction:
    require_membership(db, user, payload.organization_id)
    org = get_organization(db, payload.organization_id)
    draft = payload.model_dump(exclude={"organization_id"})
    return TransactionService(db).create(org, draft, user)


def get_transaction(
    txn_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> models.Transaction:
    txn = TransactionService(db).get(txn_id)
    require_membership(db, user, txn.organization_id)
    return txn


def update_transaction(
    txn_id: int,
    payload: TransactionUpdate,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> models.Transaction:
    service = TransactionService(db)
    txn = service.get(txn_id)
    require_membership(db, user, txn.organization_id)
    return service.update(txn, payload.model_dump(exclude_unset=True))


def delete_transaction(
    txn_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> None:
    service = TransactionService(db)
    txn = service.get(txn_id)
    require_membership(db, user, txn.organization_id)
    service.delete(txn)
    return None


def import_transactions(
    organization_id: int = Query(...),
    rows: list[dict[str, Any]] = Body(...),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> TransactionImportResult:
    require_membership(db, user, organization_id, Role.ADMIN)
    org = get_organization(db, organization_id)
    report = TransactionImportService(db).import_rows(org, rows, user)
    return TransactionImportResult.model_validate(report.as_dict())


def export_transactions(
    filters: TransactionFilters = Depends(transaction_filters),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> Response:
    require_membership(db, user, filters.organization_id)
    transactions = _repository(db).filtered_transactions(filters)
    accounts = db.query(models.Account).filter(models.Account.organization_id == filters.organization_id).all()
    categories = db.query(models.Category).filter(models.Category.organization_id == filters.organization_id).all()
    content = render_csv(export_rows(transactions, accounts, categories))
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="transactions.csv"'},
    )
