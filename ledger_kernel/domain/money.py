"""
Money -- conversion and comparison primitives.

Responsibility:
    Decimal coercion of caller-supplied amounts, currency-code validation,
    foreign-to-base conversion, and 2-decimal monetary comparison.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - convert() is the only place a foreign amount becomes a base amount:
      round(amount * rate, 2), ROUND_HALF_UP.
    - amounts_equal() compares at 2 decimals, each side rounded first.
    - No floats survive to_decimal(); floats go through str() so 0.1 stays 0.1.

Failure modes:
    - InvalidAmountError for None, bool, NaN/Infinity or non-numeric input.
    - InvalidCurrencyError for codes outside the ISO 4217 set.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from ledger_kernel.db.types import MONEY_COMPARE_PLACES, is_valid_currency, round_money
from ledger_kernel.exceptions import InvalidAmountError, InvalidCurrencyError

ZERO = Decimal("0")
ONE = Decimal("1")

__all__ = [
    "ZERO",
    "ONE",
    "to_decimal",
    "convert",
    "amounts_equal",
    "round_money",
    "validate_currency",
]


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    """
    Coerce a caller-supplied numeric value to Decimal.

    Accepts Decimal, int, float (via its shortest repr) and numeric strings.
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmountError(field, value)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidAmountError(field, value) from None
    else:
        raise InvalidAmountError(field, value)
    if not result.is_finite():
        raise InvalidAmountError(field, value)
    return result


def convert(amount: Decimal, rate: Decimal) -> Decimal:
    """Convert a foreign amount into base currency: round(amount * rate, 2)."""
    return round_money(amount * rate)


def amounts_equal(a: Decimal, b: Decimal) -> bool:
    """True when both amounts agree at 2 decimals."""
    return round_money(a, MONEY_COMPARE_PLACES) == round_money(b, MONEY_COMPARE_PLACES)


def validate_currency(code: Any) -> str:
    """Normalize and validate an ISO 4217 code; returns the upper-case code."""
    if not isinstance(code, str) or not is_valid_currency(code):
        raise InvalidCurrencyError(str(code))
    return code.strip().upper()
