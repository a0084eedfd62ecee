"""Credit model for money owed back to a customer."""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, func

from ledger.core.database import Base
from ledger.models.shared import MoneyType, UUIDType, generate_uuid


class CreditReason(str, Enum):
    OVERPAYMENT = "overpayment"
    RETURN = "return"
    GOODWILL = "goodwill"
    ADJUSTMENT = "adjustment"


class CreditStatus(str, Enum):
    ACTIVE = "active"
    EXHAUSTED = "exhausted"
    VOID = "void"


class Credit(Base):
    """Credit model - a pool of money usable against the customer's invoices.

    ``available_amount`` only ever decreases, through credit applications.
    """

    __tablename__ = "credits"
    __table_args__ = (
        CheckConstraint(
            "amount > 0 AND available_amount >= 0 AND available_amount <= amount",
            name="ck_credits_available",
        ),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    customer_id = Column(
        UUIDType, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    source_payment_id = Column(
        UUIDType, ForeignKey("payments.id", ondelete="RESTRICT"), nullable=True, index=True
    )

    amount = Column(MoneyType, nullable=False)
    available_amount = Column(MoneyType, nullable=False)

    reason = Column(String(20), nullable=False, default=CreditReason.OVERPAYMENT.value)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=CreditStatus.ACTIVE.value)

    created_by = Column(UUIDType, nullable=False)
    expiry_date = Column(DateTime(timezone=True), nullable=True)
    voided_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}
