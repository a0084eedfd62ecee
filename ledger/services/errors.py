"""Errors raised by the ledger services.

Validation failures subclass ``ValueError`` and are raised before anything is
written. ``ConcurrencyConflict`` means another operation changed a balance
underneath this one; the whole operation may be retried with fresh data.
"""

from uuid import UUID


class LedgerError(Exception):
    """Base class for every error raised by the ledger services."""


class ValidationFailure(LedgerError, ValueError):
    """A business rule rejected the request; nothing was persisted."""


class InvalidPaymentAmount(ValidationFailure):
    pass


class InvalidAllocationAmount(ValidationFailure):
    pass


class InvalidCreditAmount(ValidationFailure):
    pass


class ExceedsInvoiceBalance(ValidationFailure):
    pass


class InsufficientCredit(ValidationFailure):
    pass


class InvoiceMismatch(ValidationFailure):
    pass


class InvoiceNotApplicable(ValidationFailure):
    pass


class InvalidInvoiceState(ValidationFailure):
    pass


class InvalidCreditState(ValidationFailure):
    pass


class DuplicateInvoiceNumber(ValidationFailure):
    def __init__(self, invoice_number: str):
        super().__init__(f"Invoice number {invoice_number} already exists")
        self.invoice_number = invoice_number


class NotFound(LedgerError, LookupError):
    resource = "Resource"

    def __init__(self, resource_id: UUID):
        self.resource_id = resource_id
        super().__init__(f"{self.resource} {resource_id} not found")


class CustomerNotFound(NotFound):
    resource = "Customer"


class InvoiceNotFound(NotFound):
    resource = "Invoice"


class CreditNotFound(NotFound):
    resource = "Credit"


class PaymentNotFound(NotFound):
    resource = "Payment"


class InvariantViolation(LedgerError):
    """A post-condition check failed; the transaction must not commit."""


class ConcurrencyConflict(LedgerError):
    """A concurrent operation changed a row this operation depended on."""


class RetriesExhausted(ConcurrencyConflict):
    """The operation kept conflicting and was given up."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Operation conflicted {attempts} times; please try again")
