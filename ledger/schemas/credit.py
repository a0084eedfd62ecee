"""Credit and CreditApplication schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ledger.models.credit import CreditReason, CreditStatus
from ledger.schemas.money import MoneyAmount


class CreditGrant(BaseModel):
    """Schema for a credit issued by the returns/adjustments workflow."""

    customer_id: UUID
    amount: MoneyAmount
    reason: CreditReason
    description: str | None = None
    expiry_date: datetime | None = None


class CreditApply(BaseModel):
    credit_id: UUID
    invoice_id: UUID
    amount: MoneyAmount
    notes: str | None = None


class CreditApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    credit_id: UUID
    invoice_id: UUID
    amount_applied: MoneyAmount
    applied_date: datetime
    applied_by: UUID
    notes: str | None = None


class CreditResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    customer_id: UUID
    source_payment_id: UUID | None = None
    amount: MoneyAmount
    available_amount: MoneyAmount
    reason: CreditReason
    description: str | None = None
    status: CreditStatus
    created_by: UUID
    expiry_date: datetime | None = None
    voided_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class CreditDetailResponse(CreditResponse):
    applications: list[CreditApplicationResponse] = Field(default_factory=list)


class CustomerCreditsResponse(BaseModel):
    credits: list[CreditDetailResponse]
    total_available_credit: MoneyAmount
