from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from fastapi import Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from budgetup import models
from budgetup.core.database import get_db
from budgetup.core.deps import get_current_user, require_membership
from budgetup.schemas import AuditLogManual, AuditLogOut
from budgetup.services import AuditLogFilters, AuditService


def _audit_out(entry: models.AuditLog) -> AuditLogOut:
    out = AuditLogOut.model_validate(entry)
    out.user_email = entry.user.email if entry.user else None
    return out


def list_audit_logs(
    response: Response,
    organization_id: int = Query(...),
    action: Optional[str] = Query(None, max_length=50),
    table_name: Optional[str] = Query(None, max_length=50),
    user_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> list[AuditLogOut]:
    require_membership(db, user, organization_id)
    if start_date and end_date and start_date > end_date:
        raise HTTPException(status_code=400, detail="start_date must be on or before end_date")
    filters = AuditLogFilters(
        organization_id=organization_id,
        action=action,
        table_name=table_name,
        user_id=user_id,
        start=datetime.combine(start_date, time.min) if start_date else None,
        end=datetime.combine(end_date, time.max) if end_date else None,
    )
    service = AuditService(db)
    response.headers["X-Total-Count"] = str(service.count(filters))
    return [_audit_out(e) for e in service.list_entries(filters, offset=(page - 1) * limit, limit=limit)]


def create_manual_audit_log(
    payload: AuditLogManual,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
) -> AuditLogOut:
    require_membership(db, user, payload.organization_id)
    entry = AuditService(db).record_manual(
        payload.organization_id,
        user,
        payload.action,
        payload.table_name,
        record_id=payload.record_id,
        metadata=payload.metadata,
    )
    return _audit_out(entry)
