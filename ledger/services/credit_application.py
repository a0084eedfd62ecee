"""Credit application engine and credit lifecycle."""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.orm import Session

from ledger.core.database import transaction
from ledger.core.money import Money
from ledger.models.audit_log import AuditAction, AuditResource
from ledger.models.credit import Credit, CreditReason, CreditStatus
from ledger.models.credit_application import CreditApplication
from ledger.models.invoice import InvoiceStatus
from ledger.repositories.credit_application_repository import CreditApplicationRepository
from ledger.repositories.credit_repository import CreditRepository
from ledger.repositories.customer_repository import CustomerRepository
from ledger.repositories.invoice_repository import InvoiceRepository
from ledger.services.audit_service import AuditService
from ledger.services.errors import (
    CreditNotFound,
    CustomerNotFound,
    ExceedsInvoiceBalance,
    InsufficientCredit,
    InvalidCreditAmount,
    InvalidCreditState,
    InvoiceMismatch,
    InvoiceNotApplicable,
    InvoiceNotFound,
)
from ledger.services.invoice_balance import InvoiceBalanceTracker
from ledger.services.retry import run_with_retry

logger = logging.getLogger(__name__)

# Overpayment credits only come from recording a payment
GRANTABLE_REASONS = (CreditReason.RETURN, CreditReason.GOODWILL, CreditReason.ADJUSTMENT)


class CreditApplicationService:
    """Service for granting, applying and voiding customer credits."""

    def __init__(self, db: Session):
        self.db = db
        self.credit_repo = CreditRepository(db)
        self.application_repo = CreditApplicationRepository(db)
        self.customer_repo = CustomerRepository(db)
        self.invoice_repo = InvoiceRepository(db)
        self.tracker = InvoiceBalanceTracker(db)
        self.audit = AuditService(db)

    def apply_credit(
        self,
        credit_id: UUID,
        invoice_id: UUID,
        amount: Money,
        applied_by: UUID,
        notes: str | None = None,
    ) -> CreditApplication:
        """Apply part or all of a credit against one of the customer's invoices.

        Raises:
            CreditNotFound: If the credit does not exist.
            InsufficientCredit: If the credit is not active, the amount is not
                positive, or it exceeds what is still available.
            InvoiceNotFound: If the invoice does not exist.
            InvoiceMismatch: If the invoice belongs to another customer.
            InvoiceNotApplicable: If the invoice is cancelled.
            ExceedsInvoiceBalance: If the amount is more than the invoice owes.
            RetriesExhausted: If concurrent updates kept conflicting.
        """
        return run_with_retry(
            self.db,
            lambda: self._apply(credit_id, invoice_id, amount, applied_by, notes),
        )

    def _apply(
        self,
        credit_id: UUID,
        invoice_id: UUID,
        amount: Money,
        applied_by: UUID,
        notes: str | None,
    ) -> CreditApplication:
        credit = self.credit_repo.lock(credit_id)
        if not credit:
            raise CreditNotFound(credit_id)
        if credit.status != CreditStatus.ACTIVE.value:
            raise InsufficientCredit(f"Credit {credit_id} is {credit.status}, not active")
        if not amount.is_positive():
            raise InsufficientCredit(f"Credit amount must be positive, got {amount}")
        if amount > credit.available_amount:
            raise InsufficientCredit(
                f"Credit {credit_id} has only {credit.available_amount} available, "
                f"cannot apply {amount}"
            )

        invoice = self.invoice_repo.lock(invoice_id)
        if not invoice:
            raise InvoiceNotFound(invoice_id)
        if invoice.customer_id != credit.customer_id:
            raise InvoiceMismatch(
                f"Invoice {invoice.invoice_number} belongs to a different customer than the credit"
            )
        if invoice.status == InvoiceStatus.CANCELLED.value:
            raise InvoiceNotApplicable(f"Invoice {invoice.invoice_number} is cancelled")
        if amount > invoice.balance:
            raise ExceedsInvoiceBalance(
                f"Amount {amount} exceeds invoice {invoice.invoice_number} "
                f"balance of {invoice.balance}"
            )

        invoice_balance_before = invoice.balance
        credit_available_before = credit.available_amount

        self.tracker.apply_amount(invoice, amount)
        credit.available_amount = credit.available_amount - amount
        if credit.available_amount.is_zero():
            credit.status = CreditStatus.EXHAUSTED.value
        self.credit_repo.save(credit)

        application = self.application_repo.create(
            credit_id=credit.id,  # type: ignore[arg-type]
            invoice_id=invoice.id,  # type: ignore[arg-type]
            amount_applied=amount,
            applied_by=applied_by,
            applied_date=datetime.now(UTC),
            notes=notes or f"Credit application to invoice {invoice.invoice_number}",
        )

        self.audit.log_event(
            AuditResource.CREDIT,
            credit.id,  # type: ignore[arg-type]
            AuditAction.CREDIT_APPLIED,
            {
                "credit_application_id": application.id,
                "invoice_id": invoice.id,
                "amount_applied": amount,
                "credit_available_before": credit_available_before,
                "credit_available_after": credit.available_amount,
                "credit_status": credit.status,
                "invoice_balance_before": invoice_balance_before,
                "invoice_balance_after": invoice.balance,
                "invoice_status": invoice.status,
            },
            actor_id=str(applied_by),
        )

        logger.info(
            "Applied %s of credit %s to invoice %s", amount, credit.id, invoice.invoice_number
        )
        return application

    def grant_credit(
        self,
        customer_id: UUID,
        amount: Money,
        reason: CreditReason,
        created_by: UUID,
        description: str | None = None,
        expiry_date: datetime | None = None,
    ) -> Credit:
        """Create a return, goodwill or adjustment credit for a customer."""
        if reason not in GRANTABLE_REASONS:
            raise InvalidCreditState(f"Credits with reason '{reason.value}' cannot be granted")
        if not amount.is_positive():
            raise InvalidCreditAmount(f"Credit amount must be positive, got {amount}")

        with transaction(self.db):
            if not self.customer_repo.get_by_id(customer_id):
                raise CustomerNotFound(customer_id)
            credit = self.credit_repo.create(
                customer_id=customer_id,
                amount=amount,
                reason=reason,
                created_by=created_by,
                description=description,
                expiry_date=expiry_date,
            )
            self.audit.log_create(
                AuditResource.CREDIT,
                credit.id,  # type: ignore[arg-type]
                actor_type="user",
                actor_id=str(created_by),
                data={
                    "customer_id": customer_id,
                    "amount": amount,
                    "reason": reason.value,
                },
            )
        return credit

    def void_credit(self, credit_id: UUID, actor: UUID) -> Credit:
        """Void an active credit so it can no longer be applied.

        Applications already made from the credit are kept.
        """
        return run_with_retry(self.db, lambda: self._void(credit_id, actor))

    def _void(self, credit_id: UUID, actor: UUID) -> Credit:
        credit = self.credit_repo.lock(credit_id)
        if not credit:
            raise CreditNotFound(credit_id)
        if credit.status != CreditStatus.ACTIVE.value:
            raise InvalidCreditState(f"Credit {credit_id} is {credit.status} and cannot be voided")

        credit.status = CreditStatus.VOID.value
        credit.voided_at = datetime.now(UTC)
        self.credit_repo.save(credit)
        self.audit.log_status_change(
            AuditResource.CREDIT,
            credit.id,  # type: ignore[arg-type]
            old_status=CreditStatus.ACTIVE.value,
            new_status=CreditStatus.VOID.value,
            actor_type="user",
            actor_id=str(actor),
        )
        logger.info("Voided credit %s", credit.id)
        return credit
