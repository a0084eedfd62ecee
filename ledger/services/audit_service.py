"""Audit service for recording changes to ledger records.

Entries are written into the caller's transaction, so an entry exists exactly
when the change it describes was committed.
"""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from ledger.core.money import Money
from ledger.models.audit_log import AuditAction, AuditResource
from ledger.repositories.audit_log_repository import AuditLogRepository


def _jsonable(value: Any) -> Any:
    if isinstance(value, Money | UUID):
        return str(value)
    if isinstance(value, dict):
        return {key: _jsonable(val) for key, val in value.items()}
    if isinstance(value, list | tuple):
        return [_jsonable(item) for item in value]
    return value


def diff(old: dict[str, Any], new: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Fields whose value differs between two snapshots, as ``{old, new}`` pairs."""
    return {
        key: {"old": old.get(key), "new": new.get(key)}
        for key in sorted(set(old) | set(new))
        if old.get(key) != new.get(key)
    }


class AuditService:
    """Service for recording audit trail entries."""

    def __init__(self, db: Session):
        self.repo = AuditLogRepository(db)

    def log_create(
        self,
        resource: AuditResource,
        resource_id: UUID,
        actor_type: str = "system",
        actor_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        self.log_event(
            resource,
            resource_id,
            AuditAction.CREATED,
            data or {},
            actor_type=actor_type,
            actor_id=actor_id,
        )

    def log_update(
        self,
        resource: AuditResource,
        resource_id: UUID,
        actor_type: str = "system",
        actor_id: str | None = None,
        old_data: dict[str, Any] | None = None,
        new_data: dict[str, Any] | None = None,
    ) -> None:
        """Log the fields that changed; nothing is written when none did."""
        changes = diff(old_data or {}, new_data or {})
        if changes:
            self.log_event(
                resource,
                resource_id,
                AuditAction.UPDATED,
                changes,
                actor_type=actor_type,
                actor_id=actor_id,
            )

    def log_status_change(
        self,
        resource: AuditResource,
        resource_id: UUID,
        old_status: str,
        new_status: str,
        actor_type: str = "system",
        actor_id: str | None = None,
    ) -> None:
        self.log_event(
            resource,
            resource_id,
            AuditAction.STATUS_CHANGED,
            {"status": {"old": old_status, "new": new_status}},
            actor_type=actor_type,
            actor_id=actor_id,
        )

    def log_event(
        self,
        resource: AuditResource,
        resource_id: UUID,
        action: AuditAction,
        changes: dict[str, Any],
        actor_type: str = "user",
        actor_id: str | None = None,
    ) -> None:
        """Log a domain event such as a recorded payment or applied credit."""
        self.repo.add(
            resource=resource,
            resource_id=resource_id,
            action=action,
            changes=_jsonable(changes),
            actor_type=actor_type,
            actor_id=actor_id,
        )
