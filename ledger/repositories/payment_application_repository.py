"""PaymentApplication repository for data access."""

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from ledger.core.money import Money
from ledger.models.payment import Payment
from ledger.models.payment_application import PaymentApplication


class PaymentApplicationRepository:
    """Repository for PaymentApplication model."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        payment_id: UUID,
        invoice_id: UUID,
        amount_applied: Money,
        applied_date: datetime,
        notes: str | None = None,
    ) -> PaymentApplication:
        application = PaymentApplication(
            payment_id=payment_id,
            invoice_id=invoice_id,
            amount_applied=amount_applied,
            applied_date=applied_date,
            notes=notes,
        )
        self.db.add(application)
        self.db.flush()
        return application

    def get_by_payment_id(self, payment_id: UUID) -> list[PaymentApplication]:
        return (
            self.db.query(PaymentApplication)
            .filter(PaymentApplication.payment_id == payment_id)
            .order_by(PaymentApplication.created_at.asc(), PaymentApplication.id.asc())
            .all()
        )

    def get_by_invoice_ids(self, invoice_ids: Iterable[UUID]) -> list[PaymentApplication]:
        ids = list(invoice_ids)
        if not ids:
            return []
        return (
            self.db.query(PaymentApplication)
            .filter(PaymentApplication.invoice_id.in_(ids))
            .order_by(PaymentApplication.applied_date.asc())
            .all()
        )

    def get_for_customer(self, customer_id: UUID) -> list[PaymentApplication]:
        """All payment applications made by the customer's payments."""
        return (
            self.db.query(PaymentApplication)
            .join(Payment, Payment.id == PaymentApplication.payment_id)
            .filter(Payment.customer_id == customer_id)
            .order_by(PaymentApplication.applied_date.asc())
            .all()
        )
