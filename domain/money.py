"""
Domain: Money amounts.

All prices and bid amounts are decimal values in a single currency unit,
quantized to cents.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

CENT = Decimal("0.01")


def to_money(value: Union[Decimal, int, float, str]) -> Decimal:
    """
    Normalize a numeric value to a two-place Decimal.

    Floats go through str() so 220.1 becomes 220.10 rather than the binary
    expansion.
    """

    if isinstance(value, float):
        value = str(value)
    amount = Decimal(value)
    if not amount.is_finite():
        raise ValueError("amount must be a finite number")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)
