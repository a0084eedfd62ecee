from ledger.schemas.audit_log import AuditLogResponse
from ledger.schemas.credit import (
    CreditApplicationResponse,
    CreditApply,
    CreditDetailResponse,
    CreditGrant,
    CreditResponse,
    CustomerCreditsResponse,
)
from ledger.schemas.customer import CustomerCreate, CustomerResponse, CustomerUpdate
from ledger.schemas.invoice import InvoiceCreate, InvoiceResponse
from ledger.schemas.ledger import (
    Discrepancy,
    LedgerInvoiceResponse,
    LedgerResponse,
    LedgerSummary,
    OpenInvoiceResponse,
    OpenInvoicesResponse,
    PaymentHistoryEntry,
    ReconciliationResponse,
)
from ledger.schemas.money import MoneyAmount
from ledger.schemas.payment import (
    PaymentApplicationResponse,
    PaymentCreate,
    PaymentDetailResponse,
    PaymentMethodOption,
    PaymentResponse,
    PaymentSummaryResponse,
)

__all__ = [
    "AuditLogResponse",
    "CreditApplicationResponse",
    "CreditApply",
    "CreditDetailResponse",
    "CreditGrant",
    "CreditResponse",
    "CustomerCreate",
    "CustomerCreditsResponse",
    "CustomerResponse",
    "CustomerUpdate",
    "Discrepancy",
    "InvoiceCreate",
    "InvoiceResponse",
    "LedgerInvoiceResponse",
    "LedgerResponse",
    "LedgerSummary",
    "MoneyAmount",
    "OpenInvoiceResponse",
    "OpenInvoicesResponse",
    "PaymentApplicationResponse",
    "PaymentCreate",
    "PaymentDetailResponse",
    "PaymentHistoryEntry",
    "PaymentMethodOption",
    "PaymentResponse",
    "PaymentSummaryResponse",
    "ReconciliationResponse",
]
