"""Payment repository for data access."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from ledger.core.money import Money
from ledger.core.sorting import apply_order_by
from ledger.models.payment import Payment, PaymentMethod, PaymentStatus

SORTABLE_FIELDS = ("payment_date", "amount", "created_at")


class PaymentRepository:
    """Repository for Payment model."""

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _filtered(
        query: Query,  # type: ignore[type-arg]
        customer_id: UUID | None,
        payment_method: PaymentMethod | None,
    ) -> Query:  # type: ignore[type-arg]
        if customer_id:
            query = query.filter(Payment.customer_id == customer_id)
        if payment_method:
            query = query.filter(Payment.payment_method == payment_method.value)
        return query

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        customer_id: UUID | None = None,
        payment_method: PaymentMethod | None = None,
        order_by: str | None = None,
    ) -> list[Payment]:
        """Get payments with optional filters."""
        query = self._filtered(self.db.query(Payment), customer_id, payment_method)
        query = apply_order_by(
            query, Payment, order_by, SORTABLE_FIELDS, default=(("payment_date", "desc"),)
        )
        return query.offset(skip).limit(limit).all()

    def count(
        self,
        customer_id: UUID | None = None,
        payment_method: PaymentMethod | None = None,
    ) -> int:
        query = self._filtered(
            self.db.query(func.count(Payment.id)), customer_id, payment_method
        )
        return query.scalar() or 0

    def get_by_id(self, payment_id: UUID) -> Payment | None:
        return self.db.query(Payment).filter(Payment.id == payment_id).first()

    def get_by_customer_id(self, customer_id: UUID) -> list[Payment]:
        return (
            self.db.query(Payment)
            .filter(Payment.customer_id == customer_id)
            .order_by(Payment.payment_date.desc(), Payment.created_at.desc())
            .all()
        )

    def total_received_between(self, start: datetime, end: datetime) -> Money:
        """Sum of completed payments received in ``[start, end)``."""
        amounts = (
            self.db.query(Payment.amount)
            .filter(
                Payment.status == PaymentStatus.COMPLETED.value,
                Payment.payment_date >= start,
                Payment.payment_date < end,
            )
            .all()
        )
        return Money.sum(row[0] for row in amounts)

    def create(
        self,
        *,
        customer_id: UUID,
        amount: Money,
        allocated_amount: Money,
        credit_amount: Money,
        payment_method: PaymentMethod,
        payment_date: datetime,
        recorded_by: UUID,
        reference_number: str | None = None,
        notes: str | None = None,
    ) -> Payment:
        """Add a payment to the current transaction."""
        payment = Payment(
            customer_id=customer_id,
            amount=amount,
            allocated_amount=allocated_amount,
            credit_amount=credit_amount,
            payment_method=payment_method.value,
            payment_date=payment_date,
            recorded_by=recorded_by,
            reference_number=reference_number,
            notes=notes,
            status=PaymentStatus.COMPLETED.value,
        )
        self.db.add(payment)
        self.db.flush()
        return payment
