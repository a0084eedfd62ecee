"""Audit log schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from ledger.models.audit_log import AuditAction, AuditResource


class AuditLogResponse(BaseModel):
    """One entry of a record's audit trail."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    resource_type: AuditResource
    resource_id: UUID
    action: AuditAction
    changes: dict[str, Any]
    actor_type: str
    actor_id: str | None = None
    created_at: datetime
