"""CreditApplication repository for data access."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from ledger.core.money import Money
from ledger.models.credit import Credit
from ledger.models.credit_application import CreditApplication


class CreditApplicationRepository:
    """Repository for CreditApplication model."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        credit_id: UUID,
        invoice_id: UUID,
        amount_applied: Money,
        applied_by: UUID,
        applied_date: datetime,
        notes: str | None = None,
    ) -> CreditApplication:
        application = CreditApplication(
            credit_id=credit_id,
            invoice_id=invoice_id,
            amount_applied=amount_applied,
            applied_by=applied_by,
            applied_date=applied_date,
            notes=notes,
        )
        self.db.add(application)
        self.db.flush()
        return application

    def get_by_credit_id(self, credit_id: UUID) -> list[CreditApplication]:
        return (
            self.db.query(CreditApplication)
            .filter(CreditApplication.credit_id == credit_id)
            .order_by(CreditApplication.applied_date.asc())
            .all()
        )

    def get_for_customer(self, customer_id: UUID) -> list[CreditApplication]:
        """All credit applications drawn from the customer's credits."""
        return (
            self.db.query(CreditApplication)
            .join(Credit, Credit.id == CreditApplication.credit_id)
            .filter(Credit.customer_id == customer_id)
            .order_by(CreditApplication.applied_date.asc())
            .all()
        )
