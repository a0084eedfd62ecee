"""Column types and defaults shared by all ledger models."""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import BigInteger, String, TypeDecorator
from sqlalchemy.engine import Dialect

from ledger.core.money import Money


class UUIDType(TypeDecorator[uuid.UUID]):
    """Platform-independent UUID type.

    Uses String(36) for SQLite, native UUID for PostgreSQL.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return str(value)
        return str(uuid.UUID(value))

    def process_result_value(self, value: Any, dialect: Dialect) -> uuid.UUID | None:
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


class MoneyType(TypeDecorator[Money]):
    """Stores Money as a BIGINT count of minor units.

    Plain integers are accepted on bind so query literals such as
    ``Invoice.balance > 0`` work.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> int | None:
        if value is None:
            return None
        if isinstance(value, Money):
            return value.cents
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        raise TypeError(f"Cannot store {type(value).__name__} in a money column")

    def process_result_value(self, value: Any, dialect: Dialect) -> Money | None:
        if value is None:
            return None
        return Money(int(value))


def generate_uuid() -> uuid.UUID:
    """Generate a new UUID."""
    return uuid.uuid4()


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)
