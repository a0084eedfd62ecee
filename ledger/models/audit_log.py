"""AuditLog model for the trail of committed ledger operations."""

from enum import Enum

from sqlalchemy import JSON, Column, DateTime, String, func

from ledger.core.database import Base
from ledger.models.shared import UUIDType, generate_uuid


class AuditResource(str, Enum):
    CUSTOMER = "customer"
    INVOICE = "invoice"
    PAYMENT = "payment"
    CREDIT = "credit"


class AuditAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    STATUS_CHANGED = "status_changed"
    PAYMENT_RECORDED = "payment_recorded"
    CREDIT_APPLIED = "credit_applied"


class AuditLog(Base):
    """AuditLog model - one row per committed change to a ledger record.

    ``changes`` holds JSON-safe values only: amounts as decimal strings and
    ids as strings.
    """

    __tablename__ = "audit_logs"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    resource_type = Column(String(20), nullable=False, index=True)
    resource_id = Column(UUIDType, nullable=False, index=True)
    action = Column(String(30), nullable=False, index=True)
    changes = Column(JSON, nullable=False, default=dict)
    actor_type = Column(String(20), nullable=False)
    actor_id = Column(String(255), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
