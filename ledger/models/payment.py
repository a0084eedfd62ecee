"""Payment model for money received from customers."""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String, Text, func

from ledger.core.config import settings
from ledger.core.database import Base
from ledger.models.shared import MoneyType, UUIDType, generate_uuid


class PaymentMethod(str, Enum):
    """How the money was received."""

    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CHEQUE = "cheque"
    CARD = "card"
    MOBILE_MONEY = "mobile_money"


class PaymentStatus(str, Enum):
    COMPLETED = "completed"


class Payment(Base):
    """Payment model - one receipt of money, split across invoices and credit.

    Written once by the allocation engine and never updated afterwards:
    ``amount == allocated_amount + credit_amount``.
    """

    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint(
            "amount > 0 AND allocated_amount >= 0 AND credit_amount >= 0 "
            "AND amount = allocated_amount + credit_amount",
            name="ck_payments_split",
        ),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    customer_id = Column(
        UUIDType, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    amount = Column(MoneyType, nullable=False)
    allocated_amount = Column(MoneyType, nullable=False)
    credit_amount = Column(MoneyType, nullable=False)
    currency = Column(String(3), nullable=False, default=lambda: settings.CURRENCY)

    payment_method = Column(String(30), nullable=False)
    payment_date = Column(DateTime(timezone=True), nullable=False, index=True)
    reference_number = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=PaymentStatus.COMPLETED.value)

    recorded_by = Column(UUIDType, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
