"""Payment allocation engine.

Recording a payment is a two-step unit of work inside one transaction:

1. allocate the amount across the target invoices, oldest debt first;
2. turn whatever is left into an overpayment credit.

The payment row is written with both halves, and the split is checked
(``amount == allocated_amount + credit_amount``) before anything commits.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.orm import Session

from ledger.core.money import Money
from ledger.models.audit_log import AuditAction, AuditResource
from ledger.models.credit import CreditReason
from ledger.models.invoice import Invoice, InvoiceStatus
from ledger.models.payment import Payment, PaymentMethod
from ledger.repositories.credit_repository import CreditRepository
from ledger.repositories.customer_repository import CustomerRepository
from ledger.repositories.invoice_repository import InvoiceRepository
from ledger.repositories.payment_application_repository import PaymentApplicationRepository
from ledger.repositories.payment_repository import PaymentRepository
from ledger.services.audit_service import AuditService
from ledger.services.errors import (
    CustomerNotFound,
    InvalidPaymentAmount,
    InvariantViolation,
    InvoiceNotApplicable,
    InvoiceNotFound,
)
from ledger.services.invoice_balance import InvoiceBalanceTracker
from ledger.services.retry import run_with_retry

logger = logging.getLogger(__name__)


@dataclass
class PlannedApplication:
    """One slice of a payment applied to an invoice."""

    invoice: Invoice
    amount: Money
    balance_before: Money


@dataclass
class AllocationPlan:
    """Result of walking a payment across invoices."""

    applications: list[PlannedApplication] = field(default_factory=list)
    remainder: Money = field(default_factory=Money.zero)

    @property
    def allocated(self) -> Money:
        return Money.sum(app.amount for app in self.applications)


class PaymentAllocationService:
    """Service for recording payments against a customer's invoices."""

    def __init__(self, db: Session):
        self.db = db
        self.customer_repo = CustomerRepository(db)
        self.invoice_repo = InvoiceRepository(db)
        self.payment_repo = PaymentRepository(db)
        self.application_repo = PaymentApplicationRepository(db)
        self.credit_repo = CreditRepository(db)
        self.tracker = InvoiceBalanceTracker(db)
        self.audit = AuditService(db)

    def allocate(self, invoices: list[Invoice], amount: Money) -> AllocationPlan:
        """Apply ``amount`` to ``invoices`` in order until it runs out.

        Each invoice receives ``min(remaining, balance)``. Invoices with
        nothing owed are skipped.
        """
        plan = AllocationPlan(remainder=amount)
        for invoice in invoices:
            if plan.remainder.is_zero():
                break
            if not invoice.balance.is_positive():
                continue
            applied = Money.min(plan.remainder, invoice.balance)
            balance_before = invoice.balance
            self.tracker.apply_amount(invoice, applied)
            plan.applications.append(
                PlannedApplication(invoice=invoice, amount=applied, balance_before=balance_before)
            )
            plan.remainder = plan.remainder - applied
        return plan

    def record_payment(
        self,
        customer_id: UUID,
        amount: Money,
        method: PaymentMethod,
        payment_date: datetime | None,
        recorded_by: UUID,
        reference: str | None = None,
        notes: str | None = None,
        target_invoice_id: UUID | None = None,
    ) -> Payment:
        """Record money received from a customer and allocate it.

        Without ``target_invoice_id`` the amount goes to the customer's open
        invoices, earliest due date first. Any excess becomes an active
        overpayment credit linked to the payment.

        Raises:
            InvalidPaymentAmount: If the amount is not positive.
            CustomerNotFound: If the customer does not exist.
            InvoiceNotFound: If the target invoice does not exist.
            InvoiceNotApplicable: If the target invoice belongs to another
                customer, is cancelled or has nothing owed.
            RetriesExhausted: If concurrent updates kept invalidating the
                allocation.
        """
        if not amount.is_positive():
            raise InvalidPaymentAmount(f"Payment amount must be positive, got {amount}")
        received_at = payment_date or datetime.now(UTC)

        return run_with_retry(
            self.db,
            lambda: self._record(
                customer_id=customer_id,
                amount=amount,
                method=method,
                payment_date=received_at,
                recorded_by=recorded_by,
                reference=reference,
                notes=notes,
                target_invoice_id=target_invoice_id,
            ),
        )

    def _target_invoices(self, customer_id: UUID, target_invoice_id: UUID | None) -> list[Invoice]:
        if target_invoice_id is None:
            return self.tracker.select_open_invoices(customer_id, lock=True)

        invoice = self.invoice_repo.lock(target_invoice_id)
        if not invoice:
            raise InvoiceNotFound(target_invoice_id)
        if invoice.customer_id != customer_id:
            raise InvoiceNotApplicable(
                f"Invoice {invoice.invoice_number} does not belong to customer {customer_id}"
            )
        if invoice.status == InvoiceStatus.CANCELLED.value:
            raise InvoiceNotApplicable(f"Invoice {invoice.invoice_number} is cancelled")
        if not invoice.balance.is_positive():
            raise InvoiceNotApplicable(f"Invoice {invoice.invoice_number} is already fully paid")
        return [invoice]

    def _record(
        self,
        customer_id: UUID,
        amount: Money,
        method: PaymentMethod,
        payment_date: datetime,
        recorded_by: UUID,
        reference: str | None,
        notes: str | None,
        target_invoice_id: UUID | None,
    ) -> Payment:
        # Serializes payments per customer where the database supports it
        if not self.customer_repo.lock(customer_id):
            raise CustomerNotFound(customer_id)

        invoices = self._target_invoices(customer_id, target_invoice_id)
        plan = self.allocate(invoices, amount)

        payment = self.payment_repo.create(
            customer_id=customer_id,
            amount=amount,
            allocated_amount=plan.allocated,
            credit_amount=plan.remainder,
            payment_method=method,
            payment_date=payment_date,
            recorded_by=recorded_by,
            reference_number=reference,
            notes=notes,
        )

        for planned in plan.applications:
            self.application_repo.create(
                payment_id=payment.id,  # type: ignore[arg-type]
                invoice_id=planned.invoice.id,  # type: ignore[arg-type]
                amount_applied=planned.amount,
                applied_date=payment_date,
                notes=f"Auto-allocation from payment {payment.id}",
            )

        credit = None
        if plan.remainder.is_positive():
            credit = self.credit_repo.create(
                customer_id=customer_id,
                amount=plan.remainder,
                reason=CreditReason.OVERPAYMENT,
                created_by=recorded_by,
                description=f"Credit from overpayment on payment {payment.id}",
                source_payment_id=payment.id,  # type: ignore[arg-type]
            )

        if payment.amount != payment.allocated_amount + payment.credit_amount:
            raise InvariantViolation(
                f"Payment {payment.id} split {payment.allocated_amount} + "
                f"{payment.credit_amount} does not add up to {payment.amount}"
            )

        self.audit.log_event(
            AuditResource.PAYMENT,
            payment.id,  # type: ignore[arg-type]
            AuditAction.PAYMENT_RECORDED,
            {
                "customer_id": customer_id,
                "amount": amount,
                "allocated_amount": plan.allocated,
                "credit_amount": plan.remainder,
                "credit_id": credit.id if credit else None,
                "invoices": [
                    {
                        "invoice_id": planned.invoice.id,
                        "amount_applied": planned.amount,
                        "balance_before": planned.balance_before,
                        "balance_after": planned.invoice.balance,
                        "status": planned.invoice.status,
                    }
                    for planned in plan.applications
                ],
            },
            actor_id=str(recorded_by),
        )

        logger.info(
            "Recorded payment %s for customer %s: %s allocated across %d invoices, %s to credit",
            payment.id,
            customer_id,
            plan.allocated,
            len(plan.applications),
            plan.remainder,
        )
        return payment
