from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from ledger.core.auth import get_current_user
from ledger.core.database import get_db
from ledger.models.audit_log import AuditResource
from ledger.models.customer import Customer
from ledger.repositories.customer_repository import CustomerRepository
from ledger.schemas.credit import CustomerCreditsResponse
from ledger.schemas.customer import CustomerCreate, CustomerResponse, CustomerUpdate
from ledger.schemas.ledger import LedgerResponse, OpenInvoicesResponse, ReconciliationResponse
from ledger.schemas.payment import PaymentDetailResponse
from ledger.services.audit_service import AuditService
from ledger.services.errors import CustomerNotFound
from ledger.services.ledger_service import LedgerService

router = APIRouter()

_AUDITED_FIELDS = ("name", "email", "phone", "opening_balance")


def _snapshot(customer: Customer) -> dict[str, str | None]:
    return {
        field: None if getattr(customer, field) is None else str(getattr(customer, field))
        for field in _AUDITED_FIELDS
    }


@router.post(
    "/",
    response_model=CustomerResponse,
    status_code=201,
    summary="Create customer",
    responses={
        400: {"description": "Customer with this external_id already exists"},
        401: {"description": "Unauthorized – missing user identity"},
    },
)
async def create_customer(
    data: CustomerCreate,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> Customer:
    """Create a new customer."""
    repo = CustomerRepository(db)
    if repo.external_id_exists(data.external_id):
        raise HTTPException(status_code=400, detail="Customer with this external_id already exists")
    customer = repo.create(data)
    return customer


@router.get(
    "/",
    response_model=list[CustomerResponse],
    summary="List customers",
)
async def list_customers(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[Customer]:
    """List all customers with pagination."""
    repo = CustomerRepository(db)
    response.headers["X-Total-Count"] = str(repo.count())
    return repo.get_all(skip=skip, limit=limit)


@router.get(
    "/{customer_id}",
    response_model=CustomerResponse,
    summary="Get customer",
    responses={404: {"description": "Customer not found"}},
)
async def get_customer(
    customer_id: UUID,
    db: Session = Depends(get_db),
) -> Customer:
    """Get a customer by ID."""
    repo = CustomerRepository(db)
    customer = repo.get_by_id(customer_id)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.patch(
    "/{customer_id}",
    response_model=CustomerResponse,
    summary="Update customer",
    responses={
        401: {"description": "Unauthorized – missing user identity"},
        404: {"description": "Customer not found"},
    },
)
async def update_customer(
    customer_id: UUID,
    data: CustomerUpdate,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> Customer:
    """Update a customer, including importing its opening balance."""
    repo = CustomerRepository(db)
    existing = repo.get_by_id(customer_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Customer not found")

    old_data = _snapshot(existing)
    new_data = dict(old_data)
    for key, value in data.model_dump(exclude_unset=True, exclude={"opening_balance"}).items():
        new_data[key] = None if value is None else str(value)
    if data.opening_balance is not None:
        new_data["opening_balance"] = str(data.opening_balance)

    # Flushed here, committed together with the update below
    AuditService(db).log_update(
        AuditResource.CUSTOMER,
        customer_id,
        actor_type="user",
        actor_id=str(user_id),
        old_data=old_data,
        new_data=new_data,
    )
    customer = repo.update(customer_id, data)
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.get(
    "/{customer_id}/ledger",
    response_model=LedgerResponse,
    summary="Get customer ledger",
    responses={404: {"description": "Customer not found"}},
)
async def get_customer_ledger(
    customer_id: UUID,
    db: Session = Depends(get_db),
) -> LedgerResponse:
    """Invoices, payments and credits of a customer, with summary totals."""
    try:
        return LedgerService(db).get_ledger(customer_id)
    except CustomerNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from None


@router.get(
    "/{customer_id}/open_invoices",
    response_model=OpenInvoicesResponse,
    summary="List customer open invoices",
    responses={404: {"description": "Customer not found"}},
)
async def get_customer_open_invoices(
    customer_id: UUID,
    db: Session = Depends(get_db),
) -> OpenInvoicesResponse:
    """Invoices with money still owed, in the order payments are applied."""
    try:
        return LedgerService(db).get_open_invoices(customer_id)
    except CustomerNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from None


@router.get(
    "/{customer_id}/payments",
    response_model=list[PaymentDetailResponse],
    summary="List customer payments",
    responses={404: {"description": "Customer not found"}},
)
async def list_customer_payments(
    customer_id: UUID,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[PaymentDetailResponse]:
    """Payment history of a customer, newest first."""
    try:
        return LedgerService(db).list_customer_payments(customer_id, skip=skip, limit=limit)
    except CustomerNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from None


@router.get(
    "/{customer_id}/credits",
    response_model=CustomerCreditsResponse,
    summary="List customer credits",
    responses={404: {"description": "Customer not found"}},
)
async def get_customer_credits(
    customer_id: UUID,
    active_only: bool = Query(default=True),
    db: Session = Depends(get_db),
) -> CustomerCreditsResponse:
    """Credits of a customer and the total still available."""
    try:
        return LedgerService(db).get_customer_credits(customer_id, active_only=active_only)
    except CustomerNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from None


@router.get(
    "/{customer_id}/reconciliation",
    response_model=ReconciliationResponse,
    summary="Reconcile customer balances",
    responses={404: {"description": "Customer not found"}},
)
async def reconcile_customer(
    customer_id: UUID,
    db: Session = Depends(get_db),
) -> ReconciliationResponse:
    """Check stored balances against application history without changing anything."""
    try:
        return LedgerService(db).verify_customer(customer_id)
    except CustomerNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
