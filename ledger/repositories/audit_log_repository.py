"""AuditLog repository for data access."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from ledger.core.sorting import apply_order_by
from ledger.models.audit_log import AuditAction, AuditLog, AuditResource

SORTABLE_FIELDS = ("created_at", "resource_type", "action")


class AuditLogRepository:
    """Repository for AuditLog model.

    Rows are append-only; nothing here updates or deletes them.
    """

    def __init__(self, db: Session):
        self.db = db

    def add(
        self,
        *,
        resource: AuditResource,
        resource_id: UUID,
        action: AuditAction,
        changes: dict[str, Any],
        actor_type: str,
        actor_id: str | None = None,
    ) -> AuditLog:
        """Flush an entry into the caller's transaction without committing it."""
        entry = AuditLog(
            resource_type=resource.value,
            resource_id=resource_id,
            action=action.value,
            changes=changes,
            actor_type=actor_type,
            actor_id=actor_id,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def _filtered(
        self,
        query: Query,  # type: ignore[type-arg]
        resource: AuditResource | None,
        resource_id: UUID | None,
        action: AuditAction | None,
        actor_id: str | None,
        start_date: datetime | None,
        end_date: datetime | None,
    ) -> Query:  # type: ignore[type-arg]
        if resource:
            query = query.filter(AuditLog.resource_type == resource.value)
        if resource_id:
            query = query.filter(AuditLog.resource_id == resource_id)
        if action:
            query = query.filter(AuditLog.action == action.value)
        if actor_id:
            query = query.filter(AuditLog.actor_id == actor_id)
        if start_date:
            query = query.filter(AuditLog.created_at >= start_date)
        if end_date:
            query = query.filter(AuditLog.created_at <= end_date)
        return query

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        resource: AuditResource | None = None,
        resource_id: UUID | None = None,
        action: AuditAction | None = None,
        actor_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        order_by: str | None = None,
    ) -> list[AuditLog]:
        query = self._filtered(
            self.db.query(AuditLog),
            resource,
            resource_id,
            action,
            actor_id,
            start_date,
            end_date,
        )
        query = apply_order_by(query, AuditLog, order_by, SORTABLE_FIELDS)
        return query.offset(skip).limit(limit).all()

    def count(
        self,
        resource: AuditResource | None = None,
        resource_id: UUID | None = None,
        action: AuditAction | None = None,
        actor_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> int:
        query = self._filtered(
            self.db.query(func.count(AuditLog.id)),
            resource,
            resource_id,
            action,
            actor_id,
            start_date,
            end_date,
        )
        return query.scalar() or 0

    def get_trail(self, resource: AuditResource, resource_id: UUID) -> list[AuditLog]:
        """Every entry for one record, oldest first."""
        return (
            self.db.query(AuditLog)
            .filter(
                AuditLog.resource_type == resource.value,
                AuditLog.resource_id == resource_id,
            )
            .order_by(AuditLog.created_at.asc())
            .all()
        )
