"""Invoice balance tracker.

The only code that changes ``Invoice.balance``. Every change is flushed
immediately so a stale ``version`` is detected at the point of the write.
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.orm import Session

from ledger.core.money import Money
from ledger.models.invoice import Invoice, InvoiceStatus
from ledger.repositories.invoice_repository import InvoiceRepository
from ledger.services.errors import InvalidAllocationAmount, InvalidInvoiceState, InvoiceNotFound

logger = logging.getLogger(__name__)


def is_open(invoice: Invoice) -> bool:
    """An invoice is open while money is owed on it and it is not cancelled."""
    return invoice.status != InvoiceStatus.CANCELLED.value and invoice.balance.is_positive()


def is_overdue(invoice: Invoice, now: datetime) -> bool:
    if invoice.due_date is None or not is_open(invoice):
        return False
    due = invoice.due_date
    if due.tzinfo is None:
        due = due.replace(tzinfo=UTC)
    return due < now


def status_for_balance(invoice: Invoice) -> str:
    """Status an invoice should carry after its balance changed."""
    if invoice.balance.is_zero():
        return InvoiceStatus.PAID.value
    if invoice.status == InvoiceStatus.OVERDUE.value:
        return InvoiceStatus.OVERDUE.value
    if invoice.balance < invoice.total_amount:
        return InvoiceStatus.PARTIAL.value
    return InvoiceStatus.OPEN.value


class InvoiceBalanceTracker:
    """Maintains invoice balances and the statuses derived from them."""

    def __init__(self, db: Session):
        self.db = db
        self.invoice_repo = InvoiceRepository(db)

    def apply_amount(self, invoice: Invoice, amount: Money) -> Invoice:
        """Reduce an invoice's balance by ``amount``.

        Raises:
            InvalidAllocationAmount: If the amount is not positive, exceeds the
                balance, or the invoice is cancelled.
        """
        if not amount.is_positive():
            raise InvalidAllocationAmount(f"Allocation amount must be positive, got {amount}")
        if invoice.status == InvoiceStatus.CANCELLED.value:
            raise InvalidAllocationAmount(f"Invoice {invoice.invoice_number} is cancelled")
        if amount > invoice.balance:
            raise InvalidAllocationAmount(
                f"Allocation of {amount} exceeds balance {invoice.balance} "
                f"of invoice {invoice.invoice_number}"
            )

        invoice.balance = invoice.balance - amount
        invoice.status = status_for_balance(invoice)
        return self.invoice_repo.save(invoice)

    def select_open_invoices(self, customer_id: UUID, lock: bool = False) -> list[Invoice]:
        """Open invoices for a customer, oldest debt first.

        Always issues a fresh query; with ``lock`` the rows are selected
        ``FOR UPDATE`` and reloaded over any stale identity-map state.
        """
        return self.invoice_repo.get_open_by_customer_id(customer_id, lock=lock)

    def cancel(self, invoice_id: UUID) -> Invoice:
        """Cancel an invoice nothing has been applied to."""
        invoice = self.invoice_repo.lock(invoice_id)
        if not invoice:
            raise InvoiceNotFound(invoice_id)
        if invoice.status == InvoiceStatus.CANCELLED.value:
            raise InvalidInvoiceState(f"Invoice {invoice.invoice_number} is already cancelled")
        if invoice.balance != invoice.total_amount:
            raise InvalidInvoiceState(
                f"Invoice {invoice.invoice_number} has payments or credits applied "
                "and cannot be cancelled"
            )

        invoice.status = InvoiceStatus.CANCELLED.value
        invoice.cancelled_at = datetime.now(UTC)
        return self.invoice_repo.save(invoice)

    def mark_overdue(self, now: datetime | None = None) -> int:
        """Flag open or partially paid invoices past their due date as overdue.

        Returns the number of invoices flagged.
        """
        if now is None:
            now = datetime.now(UTC)
        invoices = self.invoice_repo.get_overdue_candidates(now)
        for invoice in invoices:
            invoice.status = InvoiceStatus.OVERDUE.value
            self.invoice_repo.save(invoice)
        if invoices:
            logger.info("Marked %d invoices overdue", len(invoices))
        return len(invoices)
