import logging
from datetime import UTC, datetime
from typing import Any

from arq import cron

from ledger.core.database import SessionLocal, transaction
from ledger.services.invoice_balance import InvoiceBalanceTracker
from ledger.tasks import redis_settings

logger = logging.getLogger(__name__)


async def mark_overdue_invoices_task(ctx: dict[str, Any]) -> int:
    """Background task: flag open and partially paid invoices past their due date.

    Runs daily.
    """
    db = SessionLocal()
    try:
        with transaction(db):
            count = InvoiceBalanceTracker(db).mark_overdue(datetime.now(UTC))
        if count > 0:
            logger.info("Flagged %d overdue invoices", count)
        return count
    finally:
        db.close()


class WorkerSettings:
    functions = [mark_overdue_invoices_task]
    cron_jobs = [
        cron(mark_overdue_invoices_task, hour=0, minute=5),  # daily just after midnight
    ]
    redis_settings = redis_settings
