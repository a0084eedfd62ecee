from datetime import datetime
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from ledger.core.money import Money
from ledger.models.invoice import Invoice, InvoiceStatus
from ledger.schemas.invoice import InvoiceCreate

# Oldest debt first, with a deterministic tie-break
OPEN_INVOICE_ORDER = (
    Invoice.due_date.is_(None).asc(),
    Invoice.due_date.asc(),
    Invoice.issue_date.asc(),
    Invoice.invoice_number.asc(),
)


class InvoiceRepository:
    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _filtered(
        query: Query,  # type: ignore[type-arg]
        customer_id: UUID | None,
        status: InvoiceStatus | None,
    ) -> Query:  # type: ignore[type-arg]
        if customer_id:
            query = query.filter(Invoice.customer_id == customer_id)
        if status:
            query = query.filter(Invoice.status == status.value)
        return query

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        customer_id: UUID | None = None,
        status: InvoiceStatus | None = None,
    ) -> list[Invoice]:
        query = self._filtered(self.db.query(Invoice), customer_id, status)
        return query.order_by(Invoice.issue_date.desc()).offset(skip).limit(limit).all()

    def count(
        self, customer_id: UUID | None = None, status: InvoiceStatus | None = None
    ) -> int:
        query = self._filtered(self.db.query(func.count(Invoice.id)), customer_id, status)
        return query.scalar() or 0

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        return self.db.query(Invoice).filter(Invoice.id == invoice_id).first()

    def lock(self, invoice_id: UUID) -> Invoice | None:
        return (
            self.db.query(Invoice)
            .filter(Invoice.id == invoice_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def get_by_invoice_number(self, invoice_number: str) -> Invoice | None:
        return self.db.query(Invoice).filter(Invoice.invoice_number == invoice_number).first()

    def get_by_customer_id(self, customer_id: UUID) -> list[Invoice]:
        return (
            self.db.query(Invoice)
            .filter(Invoice.customer_id == customer_id)
            .order_by(Invoice.issue_date.desc(), Invoice.invoice_number.desc())
            .all()
        )

    def get_open_by_customer_id(self, customer_id: UUID, lock: bool = False) -> list[Invoice]:
        """Invoices with money still owed, oldest debt first."""
        query = self.db.query(Invoice).filter(
            Invoice.customer_id == customer_id,
            Invoice.balance > 0,
            Invoice.status != InvoiceStatus.CANCELLED.value,
        )
        if lock:
            query = query.with_for_update().populate_existing()
        return query.order_by(*OPEN_INVOICE_ORDER).all()

    def get_overdue_candidates(self, now: datetime) -> list[Invoice]:
        return (
            self.db.query(Invoice)
            .filter(
                Invoice.status.in_([InvoiceStatus.OPEN.value, InvoiceStatus.PARTIAL.value]),
                Invoice.balance > 0,
                Invoice.due_date.isnot(None),
                Invoice.due_date < now,
            )
            .with_for_update()
            .all()
        )

    def total_outstanding(self) -> Money:
        balances = (
            self.db.query(Invoice.balance)
            .filter(
                Invoice.balance > 0,
                Invoice.status != InvoiceStatus.CANCELLED.value,
            )
            .all()
        )
        return Money.sum(row[0] for row in balances)

    def create(self, data: InvoiceCreate) -> Invoice:
        invoice = Invoice(
            invoice_number=data.invoice_number,
            customer_id=data.customer_id,
            total_amount=data.total_amount,
            balance=data.total_amount,
            status=InvoiceStatus.OPEN.value,
            issue_date=data.issue_date,
            due_date=data.due_date,
            notes=data.notes,
        )
        self.db.add(invoice)
        self.db.commit()
        self.db.refresh(invoice)
        return invoice

    def save(self, invoice: Invoice) -> Invoice:
        """Flush pending changes to an invoice inside the caller's transaction."""
        self.db.add(invoice)
        self.db.flush()
        return invoice
