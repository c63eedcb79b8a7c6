"""Audit trail for ledger changes.

An ``after_flush`` listener on every ORM session writes one ``audit_log`` row
per created, updated or deleted account, category and transaction, with
before/after snapshots of the row. Invitation events (sent, accepted) and
membership role changes are recorded the same way. The acting user is read
from ``session.info["actor_id"]``, which ``get_current_user`` sets for each
request; changes made outside a request are logged without a user.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from fastapi import HTTPException
from sqlalchemy import event, inspect, insert
from sqlalchemy.orm import Session

from budgetup import models

logger = logging.getLogger(__name__)

ACTOR_KEY = "actor_id"

AUDITED_MODELS = (models.Account, models.Category, models.Transaction)

MANUAL_ACTIONS = ("login", "logout", "invite_sent", "role_changed")


def _jsonable(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def snapshot(obj: Any, keys: Optional[tuple[str, ...]] = None) -> dict[str, Any]:
    """Column values already loaded on ``obj``; never triggers a lazy load."""
    state = inspect(obj)
    names = keys or tuple(attr.key for attr in state.mapper.column_attrs)
    return {name: _jsonable(state.dict.get(name)) for name in names}


def _previous(obj: Any, keys: Optional[tuple[str, ...]] = None) -> dict[str, Any]:
    state = inspect(obj)
    names = keys or tuple(attr.key for attr in state.mapper.column_attrs)
    values = {}
    for name in names:
        history = state.attrs[name].history
        if history.deleted:
            values[name] = _jsonable(history.deleted[0])
        else:
            values[name] = _jsonable(state.dict.get(name))
    return values


def _changed(obj: Any, key: str) -> bool:
    return inspect(obj).attrs[key].history.has_changes()


def _entry(session: Session, organization_id: int, action: str, obj: Any, old, new) -> dict[str, Any]:
    return {
        "organization_id": organization_id,
        "user_id": session.info.get(ACTOR_KEY),
        "action": action,
        "table_name": obj.__tablename__,
        "record_id": obj.id,
        "old_values": old,
        "new_values": new,
        "created_at": models.now_local_naive(),
    }


def collect_entries(session: Session) -> list[dict[str, Any]]:
    entries = []
    for obj in session.new:
        if isinstance(obj, AUDITED_MODELS):
            entries.append(_entry(session, obj.organization_id, "create", obj, None, snapshot(obj)))
        elif isinstance(obj, models.Invitation):
            keys = ("email", "role", "expires_at")
            entries.append(_entry(session, obj.organization_id, "invite_sent", obj, None, snapshot(obj, keys)))

    for obj in session.dirty:
        if not session.is_modified(obj, include_collections=False):
            continue
        if isinstance(obj, AUDITED_MODELS):
            entries.append(_entry(session, obj.organization_id, "update", obj, _previous(obj), snapshot(obj)))
        elif isinstance(obj, models.Invitation) and _changed(obj, "used_at"):
            keys = ("email", "role", "used_at")
            old = _previous(obj, keys)
            if old["used_at"] is None and obj.used_at is not None:
                entries.append(
                    _entry(session, obj.organization_id, "invitation_accepted", obj, old, snapshot(obj, keys))
                )
        elif isinstance(obj, models.Membership) and _changed(obj, "role"):
            keys = ("user_id", "role")
            entries.append(
                _entry(session, obj.organization_id, "role_changed", obj, _previous(obj, keys), snapshot(obj, keys))
            )

    for obj in session.deleted:
        if isinstance(obj, AUDITED_MODELS):
            entries.append(_entry(session, obj.organization_id, "delete", obj, snapshot(obj), None))
    return entries


@event.listens_for(Session, "after_flush")
def record_changes(session: Session, flush_context) -> None:
    entries = collect_entries(session)
    if not entries:
        return
    # core insert on the flush's own connection so the rows commit or roll back with it
    session.connection().execute(insert(models.AuditLog.__table__), entries)
    logger.debug("recorded %d audit entr%s", len(entries), "y" if len(entries) == 1 else "ies")


@dataclass
class AuditLogFilters:
    organization_id: int
    action: Optional[str] = None
    table_name: Optional[str] = None
    user_id: Optional[int] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class AuditService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _query(self, filters: AuditLogFilters):
        Log = models.AuditLog
        query = self.db.query(Log).filter(Log.organization_id == filters.organization_id)
        if filters.action:
            query = query.filter(Log.action == filters.action)
        if filters.table_name:
            query = query.filter(Log.table_name == filters.table_name)
        if filters.user_id is not None:
            query = query.filter(Log.user_id == filters.user_id)
        if filters.start is not None:
            query = query.filter(Log.created_at >= filters.start)
        if filters.end is not None:
            query = query.filter(Log.created_at <= filters.end)
        return query

    def count(self, filters: AuditLogFilters) -> int:
        return self._query(filters).count()

    def list_entries(self, filters: AuditLogFilters, offset: int = 0, limit: int = 20) -> list[models.AuditLog]:
        """Newest first."""
        return (
            self._query(filters)
            .order_by(models.AuditLog.created_at.desc(), models.AuditLog.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def record_manual(
        self,
        organization_id: int,
        user: models.User,
        action: str,
        table_name: str,
        record_id: Optional[int] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> models.AuditLog:
        """Log an event the ORM listener can't see (logins, client-side actions)."""
        if action not in MANUAL_ACTIONS:
            raise HTTPException(status_code=400, detail=f"Unsupported audit action {action}")
        entry = models.AuditLog(
            organization_id=organization_id,
            user_id=user.id,
            action=action,
            table_name=table_name,
            record_id=record_id,
            old_values=None,
            new_values=dict(metadata) if metadata else None,
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        logger.info("manual audit entry %s (%s) in organization %s", entry.id, action, organization_id)
        return entry
