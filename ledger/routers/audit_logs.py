"""Audit log API endpoints.

The trail is read-only; entries are written by the operations they describe.
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ledger.core.database import get_db
from ledger.models.audit_log import AuditAction, AuditLog, AuditResource
from ledger.repositories.audit_log_repository import AuditLogRepository
from ledger.schemas.audit_log import AuditLogResponse

router = APIRouter()


@router.get(
    "/",
    response_model=list[AuditLogResponse],
    summary="List audit logs",
)
async def list_audit_logs(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    resource_type: AuditResource | None = None,
    resource_id: UUID | None = None,
    action: AuditAction | None = None,
    actor_id: str | None = Query(default=None, description="User id that performed the change"),
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    order_by: str | None = Query(default=None, description="e.g. created_at:desc"),
    db: Session = Depends(get_db),
) -> list[AuditLog]:
    """List audit entries across the ledger, newest first unless ``order_by`` says otherwise."""
    repo = AuditLogRepository(db)
    filters = {
        "resource": resource_type,
        "resource_id": resource_id,
        "action": action,
        "actor_id": actor_id,
        "start_date": start_date,
        "end_date": end_date,
    }
    response.headers["X-Total-Count"] = str(repo.count(**filters))
    return repo.get_all(skip=skip, limit=limit, order_by=order_by, **filters)


@router.get(
    "/{resource_type}/{resource_id}",
    response_model=list[AuditLogResponse],
    summary="Get audit trail for a record",
)
async def get_audit_trail(
    resource_type: AuditResource,
    resource_id: UUID,
    db: Session = Depends(get_db),
) -> list[AuditLog]:
    """Full history of one customer, invoice, payment or credit, oldest first."""
    return AuditLogRepository(db).get_trail(resource_type, resource_id)
