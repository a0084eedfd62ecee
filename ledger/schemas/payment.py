"""Payment schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ledger.models.payment import PaymentMethod
from ledger.schemas.money import MoneyAmount


class PaymentCreate(BaseModel):
    """Schema for recording money received from a customer."""

    customer_id: UUID
    amount: MoneyAmount
    payment_method: PaymentMethod
    payment_date: datetime | None = Field(
        default=None, description="When the money was received; defaults to now"
    )
    reference_number: str | None = Field(default=None, max_length=255)
    notes: str | None = None
    target_invoice_id: UUID | None = Field(
        default=None,
        description="Apply the payment to this invoice only; otherwise oldest debt first",
    )


class PaymentApplicationResponse(BaseModel):
    """Schema for one slice of a payment applied to an invoice."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payment_id: UUID
    invoice_id: UUID
    amount_applied: MoneyAmount
    applied_date: datetime
    notes: str | None = None


class PaymentResponse(BaseModel):
    """Schema for payment response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    customer_id: UUID
    amount: MoneyAmount
    allocated_amount: MoneyAmount
    credit_amount: MoneyAmount
    currency: str
    payment_method: PaymentMethod
    payment_date: datetime
    reference_number: str | None = None
    notes: str | None = None
    status: str
    recorded_by: UUID
    created_at: datetime


class PaymentDetailResponse(PaymentResponse):
    """Payment together with where its money went."""

    applications: list[PaymentApplicationResponse] = Field(default_factory=list)
    credit_id: UUID | None = None


class PaymentSummaryResponse(BaseModel):
    total_payments_today: MoneyAmount
    total_payments_this_month: MoneyAmount
    total_outstanding: MoneyAmount
    total_credits: MoneyAmount


class PaymentMethodOption(BaseModel):
    value: PaymentMethod
    label: str
