"""
Currency arithmetic helpers.

All monetary amounts are ``decimal.Decimal`` values rounded to two decimal
places with ROUND_HALF_UP at the step that produces them.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

CURRENCY_QUANTUM = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """
    Convert a number or numeric string to Decimal without rounding.

    Floats go through ``str`` so that 0.1 becomes Decimal("0.1") rather than
    its binary expansion.

    Raises:
        ValueError: If the value is not numeric
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a numeric amount: {value!r}")
    try:
        if isinstance(value, float):
            return Decimal(str(value))
        if isinstance(value, str):
            return Decimal(value.strip())
        return Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"Not a numeric amount: {value!r}")


def to_money(value: Number) -> Decimal:
    """
    Round a value to currency precision (0.01, half up).

    Raises:
        ValueError: If the value is not numeric or too large to hold to the cent
    """
    amount = to_decimal(value)
    try:
        return amount.quantize(CURRENCY_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Amount cannot be held to the cent: {value!r}")


def percent_of(amount: Number, percentage: Number) -> Decimal:
    """
    Return ``percentage`` percent of ``amount``, rounded to currency precision.

    Args:
        amount: Base amount
        percentage: Percentage on a 0-100 scale

    Returns:
        Rounded Decimal amount
    """
    return to_money(to_decimal(amount) * to_decimal(percentage) / HUNDRED)


def format_money(value: Decimal) -> str:
    return f"${to_money(value):,.2f}"
