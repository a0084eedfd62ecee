"""Customer ledger projection.

Read-only views over a customer's invoices, payments and credits. Every view
is assembled from queries issued on one session before anything commits, and
nothing here writes.
"""

from collections import defaultdict
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from ledger.core.money import Money
from ledger.models.credit import Credit, CreditStatus
from ledger.models.credit_application import CreditApplication
from ledger.models.customer import Customer
from ledger.models.invoice import InvoiceStatus
from ledger.models.payment import Payment
from ledger.models.payment_application import PaymentApplication
from ledger.repositories.credit_application_repository import CreditApplicationRepository
from ledger.repositories.credit_repository import CreditRepository
from ledger.repositories.customer_repository import CustomerRepository
from ledger.repositories.invoice_repository import InvoiceRepository
from ledger.repositories.payment_application_repository import PaymentApplicationRepository
from ledger.repositories.payment_repository import PaymentRepository
from ledger.schemas.credit import (
    CreditApplicationResponse,
    CreditDetailResponse,
    CustomerCreditsResponse,
)
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
from ledger.schemas.payment import (
    PaymentApplicationResponse,
    PaymentDetailResponse,
    PaymentSummaryResponse,
)
from ledger.services.errors import CreditNotFound, CustomerNotFound, PaymentNotFound
from ledger.services.invoice_balance import is_overdue

# Isolation for multi-query views, so they never see half of a concurrent allocation
SNAPSHOT_ISOLATION = "REPEATABLE READ"


def _payment_detail(
    payment: Payment,
    applications: list[PaymentApplication],
    credit: Credit | None,
) -> PaymentDetailResponse:
    return PaymentDetailResponse.model_validate(payment).model_copy(
        update={
            "applications": [PaymentApplicationResponse.model_validate(a) for a in applications],
            "credit_id": credit.id if credit else None,
        }
    )


def _credit_detail(credit: Credit, applications: list[CreditApplication]) -> CreditDetailResponse:
    return CreditDetailResponse.model_validate(credit).model_copy(
        update={"applications": [CreditApplicationResponse.model_validate(a) for a in applications]}
    )


def _month_bounds(now: datetime) -> tuple[datetime, datetime]:
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


class LedgerService:
    """Service assembling ledger views for customers."""

    def __init__(self, db: Session):
        self.db = db
        self.customer_repo = CustomerRepository(db)
        self.invoice_repo = InvoiceRepository(db)
        self.payment_repo = PaymentRepository(db)
        self.payment_application_repo = PaymentApplicationRepository(db)
        self.credit_repo = CreditRepository(db)
        self.credit_application_repo = CreditApplicationRepository(db)

    def _begin_snapshot(self) -> None:
        """Pin the reads that follow to one snapshot of the database.

        Must run before the session issues its first query. SQLite already
        serializes readers against the single writer, so it is left alone.
        """
        if self.db.in_transaction() or self.db.get_bind().dialect.name == "sqlite":
            return
        self.db.connection(execution_options={"isolation_level": SNAPSHOT_ISOLATION})

    def _require_customer(self, customer_id: UUID) -> Customer:
        customer = self.customer_repo.get_by_id(customer_id)
        if not customer:
            raise CustomerNotFound(customer_id)
        return customer

    def get_ledger(self, customer_id: UUID) -> LedgerResponse:
        """Full financial history of a customer with summary totals.

        ``total_invoiced`` and ``total_balance`` leave out cancelled invoices;
        ``total_credit`` counts only credit still available on active credits.
        """
        self._begin_snapshot()
        customer = self._require_customer(customer_id)

        invoices = self.invoice_repo.get_by_customer_id(customer_id)
        payments = self.payment_repo.get_by_customer_id(customer_id)
        credits = self.credit_repo.get_by_customer_id(customer_id)
        payment_applications = self.payment_application_repo.get_for_customer(customer_id)
        credit_applications = self.credit_application_repo.get_for_customer(customer_id)

        payment_apps_by_invoice: dict[UUID, list[PaymentApplication]] = defaultdict(list)
        payment_apps_by_payment: dict[UUID, list[PaymentApplication]] = defaultdict(list)
        for papp in payment_applications:
            payment_apps_by_invoice[papp.invoice_id].append(papp)
            payment_apps_by_payment[papp.payment_id].append(papp)

        credit_apps_by_invoice: dict[UUID, list[CreditApplication]] = defaultdict(list)
        credit_apps_by_credit: dict[UUID, list[CreditApplication]] = defaultdict(list)
        for capp in credit_applications:
            credit_apps_by_invoice[capp.invoice_id].append(capp)
            credit_apps_by_credit[capp.credit_id].append(capp)

        credit_by_payment = {c.source_payment_id: c for c in credits if c.source_payment_id}

        invoice_entries = [
            LedgerInvoiceResponse.model_validate(invoice).model_copy(
                update={
                    "payment_applications": [
                        PaymentApplicationResponse.model_validate(a)
                        for a in payment_apps_by_invoice[invoice.id]
                    ],
                    "credit_applications": [
                        CreditApplicationResponse.model_validate(a)
                        for a in credit_apps_by_invoice[invoice.id]
                    ],
                }
            )
            for invoice in invoices
        ]

        billable = [i for i in invoices if i.status != InvoiceStatus.CANCELLED.value]
        summary = LedgerSummary(
            opening_balance=customer.opening_balance,
            total_invoiced=Money.sum(i.total_amount for i in billable),
            total_paid=Money.sum(p.allocated_amount for p in payments),
            total_credit=Money.sum(
                c.available_amount for c in credits if c.status == CreditStatus.ACTIVE.value
            ),
            total_balance=Money.sum(i.balance for i in billable),
        )

        return LedgerResponse(
            customer_id=customer_id,
            invoices=invoice_entries,
            payments=[
                _payment_detail(p, payment_apps_by_payment[p.id], credit_by_payment.get(p.id))
                for p in payments
            ],
            credits=[_credit_detail(c, credit_apps_by_credit[c.id]) for c in credits],
            summary=summary,
        )

    def get_open_invoices(
        self, customer_id: UUID, now: datetime | None = None
    ) -> OpenInvoicesResponse:
        """Invoices the customer still owes on, in allocation order."""
        self._require_customer(customer_id)
        if now is None:
            now = datetime.now(UTC)

        invoices = self.invoice_repo.get_open_by_customer_id(customer_id)
        applications = self.payment_application_repo.get_by_invoice_ids(i.id for i in invoices)
        payments = {p.id: p for p in self.payment_repo.get_by_customer_id(customer_id)}

        history: dict[UUID, list[PaymentHistoryEntry]] = defaultdict(list)
        for app in applications:
            payment = payments[app.payment_id]
            history[app.invoice_id].append(
                PaymentHistoryEntry(
                    payment_id=payment.id,
                    amount=app.amount_applied,
                    payment_date=payment.payment_date,
                    payment_method=payment.payment_method,
                )
            )

        return OpenInvoicesResponse(
            invoices=[
                OpenInvoiceResponse.model_validate(invoice).model_copy(
                    update={
                        "is_overdue": is_overdue(invoice, now),
                        "payment_history": history[invoice.id],
                    }
                )
                for invoice in invoices
            ],
            total_invoices=len(invoices),
            total_outstanding=Money.sum(i.balance for i in invoices),
        )

    def get_payment(self, payment_id: UUID) -> PaymentDetailResponse:
        """A payment with its invoice applications and overpayment credit."""
        payment = self.payment_repo.get_by_id(payment_id)
        if not payment:
            raise PaymentNotFound(payment_id)
        return _payment_detail(
            payment,
            self.payment_application_repo.get_by_payment_id(payment_id),
            self.credit_repo.get_by_source_payment_id(payment_id),
        )

    def get_credit(self, credit_id: UUID) -> CreditDetailResponse:
        credit = self.credit_repo.get_by_id(credit_id)
        if not credit:
            raise CreditNotFound(credit_id)
        return _credit_detail(credit, self.credit_application_repo.get_by_credit_id(credit_id))

    def list_customer_payments(
        self, customer_id: UUID, skip: int = 0, limit: int = 20
    ) -> list[PaymentDetailResponse]:
        """A customer's payments, newest first, with where each one went."""
        self._require_customer(customer_id)
        payments = self.payment_repo.get_all(skip=skip, limit=limit, customer_id=customer_id)
        return [
            _payment_detail(
                p,
                self.payment_application_repo.get_by_payment_id(p.id),
                self.credit_repo.get_by_source_payment_id(p.id),
            )
            for p in payments
        ]

    def get_customer_credits(
        self, customer_id: UUID, active_only: bool = True
    ) -> CustomerCreditsResponse:
        self._require_customer(customer_id)
        credits = self.credit_repo.get_by_customer_id(customer_id, active_only=active_only)
        return CustomerCreditsResponse(
            credits=[
                _credit_detail(c, self.credit_application_repo.get_by_credit_id(c.id))
                for c in credits
            ],
            total_available_credit=self.credit_repo.total_available(customer_id),
        )

    def get_payment_summary(self, now: datetime | None = None) -> PaymentSummaryResponse:
        """Payments received today and this month, with system-wide open totals."""
        if now is None:
            now = datetime.now(UTC)
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        month_start, month_end = _month_bounds(now)

        return PaymentSummaryResponse(
            total_payments_today=self.payment_repo.total_received_between(
                today, today + timedelta(days=1)
            ),
            total_payments_this_month=self.payment_repo.total_received_between(
                month_start, month_end
            ),
            total_outstanding=self.invoice_repo.total_outstanding(),
            total_credits=self.credit_repo.total_available(),
        )

    def verify_customer(self, customer_id: UUID) -> ReconciliationResponse:
        """Recompute stored balances from application rows and report differences.

        Checks every invoice balance, every payment's allocated/credit split
        and every credit's available amount. Nothing is corrected.
        """
        self._begin_snapshot()
        self._require_customer(customer_id)

        invoices = self.invoice_repo.get_by_customer_id(customer_id)
        payments = self.payment_repo.get_by_customer_id(customer_id)
        credits = self.credit_repo.get_by_customer_id(customer_id)
        payment_applications = self.payment_application_repo.get_for_customer(customer_id)
        credit_applications = self.credit_application_repo.get_for_customer(customer_id)

        applied_to_invoice: dict[UUID, Money] = defaultdict(Money.zero)
        applied_from_payment: dict[UUID, Money] = defaultdict(Money.zero)
        applied_from_credit: dict[UUID, Money] = defaultdict(Money.zero)
        for papp in payment_applications:
            applied_to_invoice[papp.invoice_id] += papp.amount_applied
            applied_from_payment[papp.payment_id] += papp.amount_applied
        for capp in credit_applications:
            applied_to_invoice[capp.invoice_id] += capp.amount_applied
            applied_from_credit[capp.credit_id] += capp.amount_applied

        overpayment_by_payment = {
            c.source_payment_id: c.amount for c in credits if c.source_payment_id
        }

        discrepancies: list[Discrepancy] = []

        def check(resource_type: str, resource_id: UUID, field: str, recorded, expected) -> None:
            if recorded != expected:
                discrepancies.append(
                    Discrepancy(
                        resource_type=resource_type,
                        resource_id=resource_id,
                        field=field,
                        recorded=recorded,
                        expected=expected,
                    )
                )

        for invoice in invoices:
            check(
                "invoice",
                invoice.id,
                "balance",
                invoice.balance,
                invoice.total_amount - applied_to_invoice[invoice.id],
            )
        for payment in payments:
            check(
                "payment",
                payment.id,
                "allocated_amount",
                payment.allocated_amount,
                applied_from_payment[payment.id],
            )
            check(
                "payment",
                payment.id,
                "credit_amount",
                payment.credit_amount,
                overpayment_by_payment.get(payment.id, Money.zero()),
            )
        for credit in credits:
            check(
                "credit",
                credit.id,
                "available_amount",
                credit.available_amount,
                credit.amount - applied_from_credit[credit.id],
            )

        return ReconciliationResponse(
            customer_id=customer_id,
            consistent=not discrepancies,
            discrepancies=discrepancies,
        )
