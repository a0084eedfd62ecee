"""Customer ledger schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from ledger.schemas.credit import CreditApplicationResponse, CreditDetailResponse
from ledger.schemas.invoice import InvoiceResponse
from ledger.schemas.money import MoneyAmount
from ledger.schemas.payment import PaymentApplicationResponse, PaymentDetailResponse


class LedgerInvoiceResponse(InvoiceResponse):
    payment_applications: list[PaymentApplicationResponse] = Field(default_factory=list)
    credit_applications: list[CreditApplicationResponse] = Field(default_factory=list)


class LedgerSummary(BaseModel):
    opening_balance: MoneyAmount
    total_invoiced: MoneyAmount
    total_paid: MoneyAmount
    total_credit: MoneyAmount
    total_balance: MoneyAmount


class LedgerResponse(BaseModel):
    customer_id: UUID
    invoices: list[LedgerInvoiceResponse]
    payments: list[PaymentDetailResponse]
    credits: list[CreditDetailResponse]
    summary: LedgerSummary


class PaymentHistoryEntry(BaseModel):
    payment_id: UUID
    amount: MoneyAmount
    payment_date: datetime
    payment_method: str


class OpenInvoiceResponse(InvoiceResponse):
    is_overdue: bool = False
    payment_history: list[PaymentHistoryEntry] = Field(default_factory=list)


class OpenInvoicesResponse(BaseModel):
    invoices: list[OpenInvoiceResponse]
    total_invoices: int
    total_outstanding: MoneyAmount


class Discrepancy(BaseModel):
    resource_type: str
    resource_id: UUID
    field: str
    recorded: MoneyAmount
    expected: MoneyAmount


class ReconciliationResponse(BaseModel):
    customer_id: UUID
    consistent: bool
    discrepancies: list[Discrepancy]
