"""Decimal helpers for currency amounts."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

MONEY_QUANTUM = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Union[Decimal, int, float, str, None]) -> Decimal:
    """
    Normalize a value to a 2-place Decimal, rounding half up.

    Floats go through str() so 0.1 becomes Decimal("0.10") rather than its
    binary expansion.
    """
    if value is None:
        return ZERO
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def line_total(quantity: Union[int, Decimal], unit_price: Union[Decimal, int, float, str]) -> Decimal:
    return to_money(Decimal(quantity) * to_money(unit_price))
