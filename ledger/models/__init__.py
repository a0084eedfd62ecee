from ledger.models.audit_log import AuditAction, AuditLog, AuditResource
from ledger.models.credit import Credit, CreditReason, CreditStatus
from ledger.models.credit_application import CreditApplication
from ledger.models.customer import Customer
from ledger.models.invoice import Invoice, InvoiceStatus
from ledger.models.payment import Payment, PaymentMethod, PaymentStatus
from ledger.models.payment_application import PaymentApplication

__all__ = [
    "AuditAction",
    "AuditLog",
    "AuditResource",
    "Credit",
    "CreditApplication",
    "CreditReason",
    "CreditStatus",
    "Customer",
    "Invoice",
    "InvoiceStatus",
    "Payment",
    "PaymentApplication",
    "PaymentMethod",
    "PaymentStatus",
]
