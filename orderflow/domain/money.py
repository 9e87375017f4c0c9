"""Decimal helpers for monetary values.

Amounts are never handled as floats inside the domain: they are converted to
`Decimal` on the way in and quantized to cents with ROUND_HALF_UP.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, Union

Number = Union[Decimal, int, float, str, None]

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

def to_decimal(value: Number) -> Decimal:
    if value is None or value == "":
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # str() keeps the shortest repr, so 0.1 stays 0.1 instead of 0.1000000000000000055...
        return Decimal(str(value))
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
    try:
        return Decimal(value)
    except InvalidOperation:
        raise ValueError(f"not a monetary value: {value!r}")

def quantize_money(value: Number) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)

def percentage_of(value: Number, percentage: Number) -> Decimal:
    """`value × percentage / 100`, rounded to cents."""
    return quantize_money(to_decimal(value) * to_decimal(percentage) / Decimal(100))

def sum_money(values: Iterable[Number]) -> Decimal:
    total = Decimal(0)
    for v in values:
        total += to_decimal(v)
    return quantize_money(total)
