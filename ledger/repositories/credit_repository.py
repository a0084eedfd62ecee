"""Credit repository for data access."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from ledger.core.money import Money
from ledger.models.credit import Credit, CreditReason, CreditStatus


class CreditRepository:
    """Repository for Credit model."""

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, credit_id: UUID) -> Credit | None:
        return self.db.query(Credit).filter(Credit.id == credit_id).first()

    def lock(self, credit_id: UUID) -> Credit | None:
        return (
            self.db.query(Credit)
            .filter(Credit.id == credit_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def get_by_customer_id(self, customer_id: UUID, active_only: bool = False) -> list[Credit]:
        query = self.db.query(Credit).filter(Credit.customer_id == customer_id)
        if active_only:
            query = query.filter(
                Credit.status == CreditStatus.ACTIVE.value,
                Credit.available_amount > 0,
            )
        return query.order_by(Credit.created_at.desc()).all()

    def get_by_source_payment_id(self, payment_id: UUID) -> Credit | None:
        return self.db.query(Credit).filter(Credit.source_payment_id == payment_id).first()

    def total_available(self, customer_id: UUID | None = None) -> Money:
        """Sum of credit still usable, across active credits."""
        query = self.db.query(Credit.available_amount).filter(
            Credit.status == CreditStatus.ACTIVE.value
        )
        if customer_id is not None:
            query = query.filter(Credit.customer_id == customer_id)
        return Money.sum(row[0] for row in query.all())

    def create(
        self,
        *,
        customer_id: UUID,
        amount: Money,
        reason: CreditReason,
        created_by: UUID,
        description: str | None = None,
        source_payment_id: UUID | None = None,
        expiry_date: datetime | None = None,
    ) -> Credit:
        """Add a new active credit, fully available, to the current transaction."""
        credit = Credit(
            customer_id=customer_id,
            amount=amount,
            available_amount=amount,
            reason=reason.value,
            description=description,
            status=CreditStatus.ACTIVE.value,
            created_by=created_by,
            source_payment_id=source_payment_id,
            expiry_date=expiry_date,
        )
        self.db.add(credit)
        self.db.flush()
        return credit

    def save(self, credit: Credit) -> Credit:
        self.db.add(credit)
        self.db.flush()
        return credit
