"""Invoice schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ledger.core.money import Money
from ledger.models.invoice import InvoiceStatus
from ledger.schemas.money import MoneyAmount


class InvoiceCreate(BaseModel):
    """Schema for an invoice handed over by the billing workflow."""

    invoice_number: str = Field(..., min_length=1, max_length=50)
    customer_id: UUID
    total_amount: MoneyAmount
    issue_date: datetime
    due_date: datetime | None = None
    notes: str | None = None

    @field_validator("total_amount")
    @classmethod
    def total_not_negative(cls, value: Money) -> Money:
        if value.is_negative():
            raise ValueError("Invoice total cannot be negative")
        return value


class InvoiceResponse(BaseModel):
    """Schema for invoice response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    invoice_number: str
    customer_id: UUID
    status: InvoiceStatus
    total_amount: MoneyAmount
    balance: MoneyAmount
    currency: str
    issue_date: datetime
    due_date: datetime | None = None
    cancelled_at: datetime | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
