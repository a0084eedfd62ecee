from ledger.repositories.audit_log_repository import AuditLogRepository
from ledger.repositories.credit_application_repository import CreditApplicationRepository
from ledger.repositories.credit_repository import CreditRepository
from ledger.repositories.customer_repository import CustomerRepository
from ledger.repositories.invoice_repository import InvoiceRepository
from ledger.repositories.payment_application_repository import PaymentApplicationRepository
from ledger.repositories.payment_repository import PaymentRepository

__all__ = [
    "AuditLogRepository",
    "CreditApplicationRepository",
    "CreditRepository",
    "CustomerRepository",
    "InvoiceRepository",
    "PaymentApplicationRepository",
    "PaymentRepository",
]
