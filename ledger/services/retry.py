"""Whole-operation retry for optimistic concurrency conflicts."""

import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ledger.core.config import settings
from ledger.core.database import transaction
from ledger.services.errors import ConcurrencyConflict, RetriesExhausted

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_with_retry(
    db: Session,
    operation: Callable[[], T],
    attempts: int | None = None,
) -> T:
    """Run ``operation`` in its own transaction, retrying it on conflict.

    A stale versioned write surfaces as ``StaleDataError`` and is treated as
    a ``ConcurrencyConflict``. A conflict rolls back everything the attempt
    wrote; the next attempt starts from freshly loaded rows. Any other error
    propagates after the rollback.

    Raises:
        RetriesExhausted: If every attempt conflicted.
    """
    max_attempts = attempts if attempts is not None else settings.ALLOCATION_MAX_RETRIES
    last_conflict: ConcurrencyConflict | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            with transaction(db):
                return operation()
        except StaleDataError as e:
            last_conflict = ConcurrencyConflict(str(e))
        except ConcurrencyConflict as e:
            last_conflict = e
        logger.warning(
            "Concurrent update detected (attempt %d/%d): %s", attempt, max_attempts, last_conflict
        )
    raise RetriesExhausted(max_attempts) from last_conflict
