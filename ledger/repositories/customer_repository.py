from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ledger.models.customer import Customer
from ledger.schemas.customer import CustomerCreate, CustomerUpdate


class CustomerRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_all(self, skip: int = 0, limit: int = 100) -> list[Customer]:
        return (
            self.db.query(Customer)
            .order_by(Customer.name.asc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def count(self) -> int:
        return self.db.query(func.count(Customer.id)).scalar() or 0

    def get_by_id(self, customer_id: UUID) -> Customer | None:
        return self.db.query(Customer).filter(Customer.id == customer_id).first()

    def lock(self, customer_id: UUID) -> Customer | None:
        """Load the customer with a row lock, serializing allocations per customer."""
        return (
            self.db.query(Customer)
            .filter(Customer.id == customer_id)
            .with_for_update()
            .first()
        )

    def get_by_external_id(self, external_id: str) -> Customer | None:
        return self.db.query(Customer).filter(Customer.external_id == external_id).first()

    def create(self, data: CustomerCreate) -> Customer:
        customer = Customer(**data.model_dump(exclude={"opening_balance"}))
        customer.opening_balance = data.opening_balance  # type: ignore[assignment]
        self.db.add(customer)
        self.db.commit()
        self.db.refresh(customer)
        return customer

    def update(self, customer_id: UUID, data: CustomerUpdate) -> Customer | None:
        customer = self.get_by_id(customer_id)
        if not customer:
            return None
        update_data = data.model_dump(exclude_unset=True, exclude={"opening_balance"})
        for key, value in update_data.items():
            setattr(customer, key, value)
        if data.opening_balance is not None:
            customer.opening_balance = data.opening_balance  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(customer)
        return customer

    def external_id_exists(self, external_id: str) -> bool:
        """Check if a customer with the given external_id already exists."""
        return self.get_by_external_id(external_id) is not None
