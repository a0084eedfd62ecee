"""Pydantic boundary type for Money.

Request bodies carry amounts in major units, as decimal strings or JSON
numbers; they are validated into exact ``Money`` here so services never see
loosely-typed numbers. Responses render amounts back as decimal strings.
"""

from decimal import Decimal
from typing import Annotated, Any

from pydantic import PlainSerializer, PlainValidator, WithJsonSchema

from ledger.core.money import Money


def parse_money(value: Any) -> Money:
    if isinstance(value, Money):
        return value
    if isinstance(value, bool):
        raise ValueError("Amount must be a number")
    if isinstance(value, float):
        # JSON numbers arrive as floats; their shortest repr is the literal sent
        value = repr(value)
    if not isinstance(value, (str, int, Decimal)):
        raise ValueError("Amount must be a decimal string or number")
    try:
        return Money.from_decimal(value)
    except (TypeError, ValueError) as e:
        raise ValueError(str(e)) from None


def render_money(value: Money) -> str:
    return str(value.to_decimal())


MoneyAmount = Annotated[
    Money,
    PlainValidator(parse_money),
    PlainSerializer(render_money, return_type=str),
    WithJsonSchema({"type": "string", "format": "decimal", "examples": ["1250.00"]}),
]
