"""Payment API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from ledger.core.auth import get_current_user
from ledger.core.database import get_db
from ledger.models.payment import Payment, PaymentMethod
from ledger.repositories.payment_repository import PaymentRepository
from ledger.schemas.payment import (
    PaymentCreate,
    PaymentDetailResponse,
    PaymentMethodOption,
    PaymentResponse,
    PaymentSummaryResponse,
)
from ledger.services.errors import ConcurrencyConflict, NotFound, PaymentNotFound
from ledger.services.ledger_service import LedgerService
from ledger.services.payment_allocation import PaymentAllocationService

router = APIRouter()

RETRY_MESSAGE = "The ledger was updated by another request. Please try again."

PAYMENT_METHOD_LABELS = {
    PaymentMethod.CASH: "Cash",
    PaymentMethod.BANK_TRANSFER: "Bank Transfer",
    PaymentMethod.CHEQUE: "Cheque",
    PaymentMethod.CARD: "Card",
    PaymentMethod.MOBILE_MONEY: "Mobile Money",
}


@router.post(
    "/",
    response_model=PaymentDetailResponse,
    status_code=201,
    summary="Record payment",
    responses={
        400: {"description": "Invalid amount or target invoice"},
        401: {"description": "Unauthorized – missing user identity"},
        404: {"description": "Customer or invoice not found"},
        409: {"description": "Concurrent update, retry the request"},
    },
)
async def record_payment(
    data: PaymentCreate,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> PaymentDetailResponse:
    """Record money received and allocate it to the customer's invoices.

    Without ``target_invoice_id`` the amount settles invoices with the
    earliest due date first. Anything left over becomes customer credit.
    """
    service = PaymentAllocationService(db)
    try:
        payment = service.record_payment(
            customer_id=data.customer_id,
            amount=data.amount,
            method=data.payment_method,
            payment_date=data.payment_date,
            recorded_by=user_id,
            reference=data.reference_number,
            notes=data.notes,
            target_invoice_id=data.target_invoice_id,
        )
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except ConcurrencyConflict:
        raise HTTPException(status_code=409, detail=RETRY_MESSAGE) from None
    return LedgerService(db).get_payment(payment.id)  # type: ignore[arg-type]


@router.get(
    "/",
    response_model=list[PaymentResponse],
    summary="List payments",
)
async def list_payments(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    customer_id: UUID | None = None,
    payment_method: PaymentMethod | None = None,
    order_by: str | None = Query(default=None, description="e.g. payment_date:desc,amount:asc"),
    db: Session = Depends(get_db),
) -> list[Payment]:
    """List payments with optional filters."""
    repo = PaymentRepository(db)
    response.headers["X-Total-Count"] = str(repo.count(customer_id, payment_method))
    return repo.get_all(
        skip=skip,
        limit=limit,
        customer_id=customer_id,
        payment_method=payment_method,
        order_by=order_by,
    )


@router.get(
    "/summary",
    response_model=PaymentSummaryResponse,
    summary="Get payment summary",
)
async def get_payment_summary(
    db: Session = Depends(get_db),
) -> PaymentSummaryResponse:
    """Totals received today and this month, plus outstanding invoices and credit."""
    return LedgerService(db).get_payment_summary()


@router.get(
    "/methods",
    response_model=list[PaymentMethodOption],
    summary="List payment methods",
)
async def list_payment_methods() -> list[PaymentMethodOption]:
    return [
        PaymentMethodOption(value=method, label=label)
        for method, label in PAYMENT_METHOD_LABELS.items()
    ]


@router.get(
    "/{payment_id}",
    response_model=PaymentDetailResponse,
    summary="Get payment",
    responses={404: {"description": "Payment not found"}},
)
async def get_payment(
    payment_id: UUID,
    db: Session = Depends(get_db),
) -> PaymentDetailResponse:
    """Get a payment with its invoice applications and overpayment credit."""
    try:
        return LedgerService(db).get_payment(payment_id)
    except PaymentNotFound:
        raise HTTPException(status_code=404, detail="Payment not found") from None
