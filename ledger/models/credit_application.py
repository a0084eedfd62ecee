"""CreditApplication model - the slice of a credit applied to one invoice."""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Text, func

from ledger.core.database import Base
from ledger.models.shared import MoneyType, UUIDType, generate_uuid, utc_now


class CreditApplication(Base):
    __tablename__ = "credit_applications"
    __table_args__ = (CheckConstraint("amount_applied > 0", name="ck_credit_applications_amount"),)

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    credit_id = Column(
        UUIDType, ForeignKey("credits.id", ondelete="CASCADE"), nullable=False, index=True
    )
    invoice_id = Column(
        UUIDType, ForeignKey("invoices.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    amount_applied = Column(MoneyType, nullable=False)
    applied_date = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    applied_by = Column(UUIDType, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
