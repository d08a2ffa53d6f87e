"""Fixed-point money handling.

Amounts are ``Decimal`` values with two fractional digits. They are persisted
as integer minor units (cents) so that no backend ever round-trips a balance
through a binary float.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from sqlalchemy import BigInteger
from sqlalchemy.types import TypeDecorator

from .errors import InvalidAmountError

MONEY_SCALE = 2
ZERO = Decimal("0.00")
_QUANTUM = Decimal(1).scaleb(-MONEY_SCALE)
# Largest value a signed 64-bit minor-units column can hold.
_MAX_UNITS = 2**63 - 1
MAX_AMOUNT = Decimal(_MAX_UNITS).scaleb(-MONEY_SCALE)


def to_amount(value: Any) -> Decimal:
    """Normalise a caller-supplied amount to a positive two-place Decimal.

    Floats are refused outright and excess precision is rejected, never
    rounded away.
    """
    if isinstance(value, (bool, float)):
        raise InvalidAmountError(f"Amount must be a decimal value, got {type(value).__name__}")
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidAmountError(f"Amount {value!r} is not a number") from exc

    if not amount.is_finite():
        raise InvalidAmountError(f"Amount {value!r} is not a finite number")
    try:
        quantized = amount.quantize(_QUANTUM)
    except InvalidOperation as exc:
        raise InvalidAmountError(f"Amount {value!r} is out of range") from exc
    if amount != quantized:
        raise InvalidAmountError(
            f"Amount {value!r} has more than {MONEY_SCALE} decimal places"
        )
    if quantized <= 0:
        raise InvalidAmountError("Amount must be greater than zero")
    if quantized > MAX_AMOUNT:
        raise InvalidAmountError(f"Amount must not exceed {MAX_AMOUNT}")
    return quantized


class MinorUnits(TypeDecorator):
    """Decimal on the Python side, BIGINT minor units in the database."""

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value: Optional[Decimal], dialect) -> Optional[int]:
        if value is None:
            return None
        units = Decimal(value).scaleb(MONEY_SCALE)
        if units != units.to_integral_value():
            raise ValueError(f"{value!r} cannot be stored without losing precision")
        if abs(units) > _MAX_UNITS:
            raise ValueError(f"{value!r} does not fit in a 64-bit minor-units column")
        return int(units)

    def process_result_value(self, value: Optional[int], dialect) -> Optional[Decimal]:
        if value is None:
            return None
        return Decimal(value).scaleb(-MONEY_SCALE)
