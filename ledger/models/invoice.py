from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, func

from ledger.core.config import settings
from ledger.core.database import Base
from ledger.models.shared import MoneyType, UUIDType, generate_uuid


class InvoiceStatus(str, Enum):
    OPEN = "open"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class Invoice(Base):
    """Invoice issued to a customer.

    ``balance`` is maintained incrementally by the balance tracker under the
    same transaction that writes the matching application row. ``version`` is
    bumped on every update so concurrent writers detect stale balances.
    """

    __tablename__ = "invoices"
    __table_args__ = (
        CheckConstraint("balance >= 0 AND balance <= total_amount", name="ck_invoices_balance"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    invoice_number = Column(String(50), unique=True, index=True, nullable=False)
    customer_id = Column(
        UUIDType, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    status = Column(String(20), nullable=False, default=InvoiceStatus.OPEN.value)

    total_amount = Column(MoneyType, nullable=False)
    balance = Column(MoneyType, nullable=False)
    currency = Column(String(3), nullable=False, default=lambda: settings.CURRENCY)

    issue_date = Column(DateTime(timezone=True), nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}
