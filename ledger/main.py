import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ledger.core.config import settings
from ledger.routers import audit_logs, credits, customers, invoices, payments

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

OPENAPI_TAGS = [
    {"name": "Customers", "description": "Customers, opening balances and customer ledgers."},
    {"name": "Invoices", "description": "Invoices handed over by billing, and cancellation."},
    {"name": "Payments", "description": "Record payments and allocate them to invoices."},
    {"name": "Credits", "description": "Grant, apply and void customer credits."},
    {"name": "Audit Logs", "description": "Query the audit trail for ledger records."},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Accounts-receivable ledger API. Record customer payments, allocate them "
        "to open invoices, manage credits and reconstruct customer ledgers."
    ),
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count"],
)

app.include_router(customers.router, prefix="/v1/customers", tags=["Customers"])
app.include_router(invoices.router, prefix="/v1/invoices", tags=["Invoices"])
app.include_router(payments.router, prefix="/v1/payments", tags=["Payments"])
app.include_router(credits.router, prefix="/v1/credits", tags=["Credits"])
app.include_router(audit_logs.router, prefix="/v1/audit_logs", tags=["Audit Logs"])


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "status": "running",
    }
