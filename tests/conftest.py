"""Shared test fixtures for all test modules."""

import contextlib
import uuid
from datetime import UTC, datetime

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledger.core import database as db_module
from ledger.core.database import Base, get_db
from ledger.models import Customer, Invoice
from ledger.repositories.customer_repository import CustomerRepository
from ledger.repositories.invoice_repository import InvoiceRepository
from ledger.schemas.customer import CustomerCreate
from ledger.schemas.invoice import InvoiceCreate

# Create an in-memory SQLite engine with StaticPool so all connections
# share the same database state and there are no file-locking issues.
_test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_test_engine)

# Identity forwarded by the upstream auth middleware in API tests
DEFAULT_USER_ID = uuid.UUID("00000000-0000-0000-0000-0000000000aa")
AUTH_HEADERS = {"X-User-Id": str(DEFAULT_USER_ID)}


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and truncate all data after.

    Patches the module-level engine and SessionLocal so all application code
    uses the in-memory test database. Clears data after each test.
    """
    original_engine = db_module.engine
    original_session = db_module.SessionLocal
    db_module.engine = _test_engine
    db_module.SessionLocal = TestSessionLocal

    Base.metadata.create_all(bind=_test_engine)

    yield
    with _test_engine.connect() as conn:
        conn.execute(text("PRAGMA foreign_keys = OFF"))
        for table in reversed(Base.metadata.sorted_tables):
            with contextlib.suppress(OperationalError):
                conn.execute(table.delete())
        conn.execute(text("PRAGMA foreign_keys = ON"))
        conn.commit()

    db_module.engine = original_engine
    db_module.SessionLocal = original_session


@pytest.fixture
def db_session():
    """Create a database session for direct repository and service testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def session_factory():
    """Open further sessions on the test database, as a competing request would."""
    return db_module.SessionLocal


@pytest.fixture
def user_id():
    """Return the user recorded as acting in service tests."""
    return DEFAULT_USER_ID


def create_customer(
    db: Session,
    external_id: str | None = None,
    name: str = "Adaeze Stores",
    opening_balance: str = "0",
) -> Customer:
    """Insert a customer through the repository."""
    return CustomerRepository(db).create(
        CustomerCreate(
            external_id=external_id or f"cust_{uuid.uuid4()}",
            name=name,
            opening_balance=opening_balance,
        )
    )


def create_invoice(
    db: Session,
    customer_id: uuid.UUID,
    invoice_number: str,
    total: str,
    due_date: datetime | None = None,
    issue_date: datetime | None = None,
) -> Invoice:
    """Insert an open invoice owing its full total."""
    return InvoiceRepository(db).create(
        InvoiceCreate(
            invoice_number=invoice_number,
            customer_id=customer_id,
            total_amount=total,
            issue_date=issue_date or datetime(2024, 1, 1, tzinfo=UTC),
            due_date=due_date,
        )
    )


def post_customer(client, external_id: str = "cust_001", **extra) -> dict:
    """Create a customer through the API and return its JSON."""
    response = client.post(
        "/v1/customers/",
        json={"external_id": external_id, "name": "Adaeze Stores", **extra},
        headers=AUTH_HEADERS,
    )
    assert response.status_code == 201
    return response.json()


def post_invoice(client, customer_id: str, invoice_number: str, total: str, **extra) -> dict:
    """Create an invoice through the API and return its JSON."""
    response = client.post(
        "/v1/invoices/",
        json={
            "invoice_number": invoice_number,
            "customer_id": customer_id,
            "total_amount": total,
            "issue_date": "2024-01-01T00:00:00Z",
            **extra,
        },
        headers=AUTH_HEADERS,
    )
    assert response.status_code == 201
    return response.json()
