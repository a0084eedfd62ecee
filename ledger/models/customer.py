from sqlalchemy import Column, DateTime, String, func

from ledger.core.database import Base
from ledger.core.money import Money
from ledger.models.shared import MoneyType, UUIDType, generate_uuid


class Customer(Base):
    __tablename__ = "customers"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    external_id = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)

    # Balance carried over from before the ledger existed; imported, never computed
    opening_balance = Column(MoneyType, nullable=False, default=lambda: Money.zero())

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
