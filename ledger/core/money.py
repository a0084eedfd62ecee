"""Fixed-point currency amounts.

Every amount in the ledger is a whole number of minor units (kobo, cents).
Nothing here rounds: converting a major-unit decimal with more fractional
digits than the currency allows is an error, and floats are never accepted.
Human-readable rendering happens only at the API boundary via ``to_decimal``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from ledger.core.config import settings


@dataclass(frozen=True, order=True)
class Money:
    """An exact amount of the system currency, in minor units."""

    cents: int

    def __post_init__(self) -> None:
        if isinstance(self.cents, bool) or not isinstance(self.cents, int):
            raise TypeError(f"Money requires integer minor units, got {type(self.cents).__name__}")

    @classmethod
    def zero(cls) -> Money:
        return cls(0)

    @classmethod
    def from_decimal(cls, value: Decimal | str | int) -> Money:
        """Build Money from a major-unit amount such as ``"1250.50"``.

        Raises:
            TypeError: If given a float.
            ValueError: If the value is not a finite number, has more
                fractional digits than ``CURRENCY_MINOR_UNITS``, or is larger
                in magnitude than ``MAX_AMOUNT_MINOR_UNITS`` minor units.
        """
        if isinstance(value, float):
            raise TypeError("Money cannot be built from a float; pass a string or Decimal")
        if isinstance(value, bool):
            raise TypeError("Money cannot be built from a bool")
        try:
            amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {value!r}") from None
        if not amount.is_finite():
            raise ValueError(f"Invalid amount: {value!r}")

        scaled = amount.scaleb(settings.CURRENCY_MINOR_UNITS)
        if scaled != scaled.to_integral_value():
            raise ValueError(
                f"Amount {value} has more than {settings.CURRENCY_MINOR_UNITS} decimal places"
            )
        cents = int(scaled)
        if abs(cents) > settings.MAX_AMOUNT_MINOR_UNITS:
            raise ValueError(f"Amount {value} exceeds the largest amount the ledger can hold")
        return cls(cents)

    @classmethod
    def sum(cls, amounts: Iterable[Money]) -> Money:
        total = 0
        for amount in amounts:
            total += amount.cents
        return cls(total)

    @staticmethod
    def min(a: Money, b: Money) -> Money:
        return a if a.cents <= b.cents else b

    def add(self, other: Money) -> Money:
        return Money(self.cents + other.cents)

    def subtract(self, other: Money) -> Money:
        return Money(self.cents - other.cents)

    def compare(self, other: Money) -> int:
        """Return -1, 0 or 1 as self is less than, equal to or greater than other."""
        return (self.cents > other.cents) - (self.cents < other.cents)

    def is_zero(self) -> bool:
        return self.cents == 0

    def is_positive(self) -> bool:
        return self.cents > 0

    def is_negative(self) -> bool:
        return self.cents < 0

    def to_decimal(self) -> Decimal:
        return Decimal(self.cents).scaleb(-settings.CURRENCY_MINOR_UNITS)

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return self.subtract(other)

    def __neg__(self) -> Money:
        return Money(-self.cents)

    def __str__(self) -> str:
        return str(self.to_decimal())
