"""Dashboard metric handlers."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import Depends, HTTPException, Query
from sqlalchemy.orm import Session

from budgetup import models
from budgetup.core.database import get_db
from budgetup.core.deps import get_current_user, get_organization, require_membership
from budgetup.models import today_local
from budgetup.schemas import KpisOut, MonthlyBalanceOut, TopAccountsOut, TopCategoriesOut
from budgetup.services import MetricsService


def get_kpis(
    organization_id: int = Query(...),
    today: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> KpisOut:
    require_membership(db, user, organization_id)
    org = get_organization(db, organization_id)
    return KpisOut(**MetricsService(db).kpis(org, today or today_local()))


def get_monthly_balance(
    organization_id: int = Query(...),
    months: int = Query(12, ge=1, le=24),
    end_month: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> MonthlyBalanceOut:
    require_membership(db, user, organization_id)
    rows = MetricsService(db).monthly(organization_id, end_month or today_local(), months)
    return MonthlyBalanceOut(data=rows, months=months)


def get_top_categories(
    organization_id: int = Query(...),
    limit: int = Query(5, ge=1, le=20),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> TopCategoriesOut:
    require_membership(db, user, organization_id)
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must be on or before end_date")
    rows, total = MetricsService(db).top_categories(organization_id, limit, start_date, end_date)
    return TopCategoriesOut(
        data=rows,
        total_expenses=total,
        limit=limit,
        start_date=start_date,
        end_date=end_date,
    )


def get_top_accounts(
    organization_id: int = Query(...),
    limit: int = Query(5, ge=1, le=20),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> TopAccountsOut:
    require_membership(db, user, organization_id)
    rows, total = MetricsService(db).top_accounts(organization_id, limit)
    return TopAccountsOut(data=rows, total_expenses=total, limit=limit)
