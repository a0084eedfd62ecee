"""Invoice API endpoints.

Invoices are handed over by the billing workflow; afterwards their balance
only moves through payments and credit applications.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger.core.auth import get_current_user
from ledger.core.database import get_db, transaction
from ledger.models.audit_log import AuditResource
from ledger.models.invoice import Invoice, InvoiceStatus
from ledger.repositories.customer_repository import CustomerRepository
from ledger.repositories.invoice_repository import InvoiceRepository
from ledger.schemas.invoice import InvoiceCreate, InvoiceResponse
from ledger.services.audit_service import AuditService
from ledger.services.errors import DuplicateInvoiceNumber, InvoiceNotFound
from ledger.services.invoice_balance import InvoiceBalanceTracker

router = APIRouter()


@router.post(
    "/",
    response_model=InvoiceResponse,
    status_code=201,
    summary="Create invoice",
    responses={
        400: {"description": "Invoice number already exists"},
        401: {"description": "Unauthorized – missing user identity"},
        404: {"description": "Customer not found"},
    },
)
async def create_invoice(
    data: InvoiceCreate,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> Invoice:
    """Create an invoice with its full total outstanding."""
    if not CustomerRepository(db).get_by_id(data.customer_id):
        raise HTTPException(status_code=404, detail="Customer not found")
    repo = InvoiceRepository(db)
    try:
        if repo.get_by_invoice_number(data.invoice_number):
            raise DuplicateInvoiceNumber(data.invoice_number)
        try:
            return repo.create(data)
        except IntegrityError:
            # another request inserted the same number after the check above
            db.rollback()
            raise DuplicateInvoiceNumber(data.invoice_number) from None
    except DuplicateInvoiceNumber as e:
        raise HTTPException(status_code=400, detail=str(e)) from None


@router.get(
    "/",
    response_model=list[InvoiceResponse],
    summary="List invoices",
)
async def list_invoices(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    customer_id: UUID | None = None,
    status: InvoiceStatus | None = None,
    db: Session = Depends(get_db),
) -> list[Invoice]:
    """List invoices with optional filters."""
    repo = InvoiceRepository(db)
    response.headers["X-Total-Count"] = str(repo.count(customer_id, status))
    return repo.get_all(skip=skip, limit=limit, customer_id=customer_id, status=status)


@router.get(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    summary="Get invoice",
    responses={404: {"description": "Invoice not found"}},
)
async def get_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
) -> Invoice:
    """Get an invoice by ID."""
    invoice = InvoiceRepository(db).get_by_id(invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice


@router.post(
    "/{invoice_id}/cancel",
    response_model=InvoiceResponse,
    summary="Cancel invoice",
    responses={
        400: {"description": "Invoice already cancelled or has applications"},
        401: {"description": "Unauthorized – missing user identity"},
        404: {"description": "Invoice not found"},
    },
)
async def cancel_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> Invoice:
    """Cancel an invoice nothing has been applied to yet."""
    existing = InvoiceRepository(db).get_by_id(invoice_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Invoice not found")
    old_status = str(existing.status)

    try:
        with transaction(db):
            invoice = InvoiceBalanceTracker(db).cancel(invoice_id)
            AuditService(db).log_status_change(
                AuditResource.INVOICE,
                invoice_id,
                old_status=old_status,
                new_status=InvoiceStatus.CANCELLED.value,
                actor_type="user",
                actor_id=str(user_id),
            )
    except InvoiceNotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    return invoice
