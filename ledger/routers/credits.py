"""Credit API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ledger.core.auth import get_current_user
from ledger.core.database import get_db
from ledger.models.credit_application import CreditApplication
from ledger.schemas.credit import (
    CreditApplicationResponse,
    CreditApply,
    CreditDetailResponse,
    CreditGrant,
)
from ledger.services.credit_application import CreditApplicationService
from ledger.services.errors import ConcurrencyConflict, CreditNotFound, NotFound
from ledger.services.ledger_service import LedgerService

router = APIRouter()

RETRY_MESSAGE = "The ledger was updated by another request. Please try again."


@router.post(
    "/",
    response_model=CreditDetailResponse,
    status_code=201,
    summary="Grant credit",
    responses={
        400: {"description": "Invalid amount or reason"},
        401: {"description": "Unauthorized – missing user identity"},
        404: {"description": "Customer not found"},
    },
)
async def grant_credit(
    data: CreditGrant,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> CreditDetailResponse:
    """Issue a return, goodwill or adjustment credit to a customer."""
    service = CreditApplicationService(db)
    try:
        credit = service.grant_credit(
            customer_id=data.customer_id,
            amount=data.amount,
            reason=data.reason,
            created_by=user_id,
            description=data.description,
            expiry_date=data.expiry_date,
        )
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    return LedgerService(db).get_credit(credit.id)  # type: ignore[arg-type]


@router.post(
    "/apply",
    response_model=CreditApplicationResponse,
    status_code=201,
    summary="Apply credit to invoice",
    responses={
        400: {"description": "Insufficient credit or invoice balance"},
        401: {"description": "Unauthorized – missing user identity"},
        404: {"description": "Credit or invoice not found"},
        409: {"description": "Concurrent update, retry the request"},
    },
)
async def apply_credit(
    data: CreditApply,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> CreditApplication:
    """Apply an amount of a customer's credit against one of their invoices."""
    service = CreditApplicationService(db)
    try:
        return service.apply_credit(
            credit_id=data.credit_id,
            invoice_id=data.invoice_id,
            amount=data.amount,
            applied_by=user_id,
            notes=data.notes,
        )
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except ConcurrencyConflict:
        raise HTTPException(status_code=409, detail=RETRY_MESSAGE) from None


@router.post(
    "/{credit_id}/void",
    response_model=CreditDetailResponse,
    summary="Void credit",
    responses={
        400: {"description": "Credit is not active"},
        401: {"description": "Unauthorized – missing user identity"},
        404: {"description": "Credit not found"},
        409: {"description": "Concurrent update, retry the request"},
    },
)
async def void_credit(
    credit_id: UUID,
    db: Session = Depends(get_db),
    user_id: UUID = Depends(get_current_user),
) -> CreditDetailResponse:
    """Void an active credit. Past applications of the credit are kept."""
    service = CreditApplicationService(db)
    try:
        service.void_credit(credit_id, actor=user_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except ConcurrencyConflict:
        raise HTTPException(status_code=409, detail=RETRY_MESSAGE) from None
    return LedgerService(db).get_credit(credit_id)


@router.get(
    "/{credit_id}",
    response_model=CreditDetailResponse,
    summary="Get credit",
    responses={404: {"description": "Credit not found"}},
)
async def get_credit(
    credit_id: UUID,
    db: Session = Depends(get_db),
) -> CreditDetailResponse:
    """Get a credit with its applications."""
    try:
        return LedgerService(db).get_credit(credit_id)
    except CreditNotFound:
        raise HTTPException(status_code=404, detail="Credit not found") from None
