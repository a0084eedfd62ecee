"""Ordering helpers for list endpoints."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import asc, desc
from sqlalchemy.orm import Query

from ledger.core.database import Base


def parse_order_by(
    order_by: str | None,
    allowed_fields: Sequence[str],
) -> list[tuple[str, str]]:
    """Parse ``"field:dir,field2:dir"`` into (field, direction) pairs.

    Unknown fields are dropped and unknown directions fall back to ``asc``.
    """
    if not order_by:
        return []
    parsed: list[tuple[str, str]] = []
    for chunk in order_by.split(","):
        field, _, direction = chunk.strip().partition(":")
        if field not in allowed_fields:
            continue
        parsed.append((field, direction if direction in ("asc", "desc") else "asc"))
    return parsed


def apply_order_by(
    query: Query,  # type: ignore[type-arg]
    model: type[Base],
    order_by: str | None,
    allowed_fields: Sequence[str],
    default: Sequence[tuple[str, str]] = (("created_at", "desc"),),
) -> Query:  # type: ignore[type-arg]
    """Apply a client-supplied ordering to a query.

    Args:
        query: The query to sort.
        model: The model whose columns are referenced.
        order_by: Sort string such as ``"payment_date:desc,amount:asc"``.
        allowed_fields: Columns clients may sort on.
        default: Ordering used when ``order_by`` yields nothing usable.

    Returns:
        The query with ordering applied.
    """
    ordering = parse_order_by(order_by, allowed_fields) or list(default)
    for field, direction in ordering:
        column = getattr(model, field)
        query = query.order_by(asc(column) if direction == "asc" else desc(column))
    return query
