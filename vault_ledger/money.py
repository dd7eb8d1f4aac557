"""
Money Utility Module

Normalizes monetary values to a fixed 2-decimal Decimal representation.
NEVER uses float arithmetic for monetary values: floats are converted through
their decimal string so binary drift cannot accumulate across additions.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Any, Union

from .errors import InvalidAmount

# Set global decimal context for financial precision
getcontext().prec = 28

CENTS = Decimal("0.01")
MIN_AMOUNT = Decimal("0.01")
MAX_AMOUNT = Decimal("1000000.00")
ZERO = Decimal("0.00")

MoneyLike = Union[Decimal, int, float, str]


def to_decimal(value: Any) -> Decimal:
    """
    Convert a raw value to a finite Decimal.

    Raises:
        InvalidAmount: If the value is missing, boolean, non-numeric or not finite
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmount("Amount must be a valid number")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str) and value.strip():
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidAmount("Amount must be a valid number")
    else:
        raise InvalidAmount("Amount must be a valid number")

    if not result.is_finite():
        raise InvalidAmount("Amount must be a valid number")
    return result


def round_money(value: MoneyLike) -> Decimal:
    """Round to 2 places, half away from zero. No bounds are applied."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def normalize(amount: Any, minimum: Decimal = MIN_AMOUNT,
              maximum: Decimal = MAX_AMOUNT) -> Decimal:
    """
    Validate an operation amount and round it to 2 decimal places.

    Args:
        amount: Raw amount (Decimal, int, float or numeric string)
        minimum: Smallest accepted amount
        maximum: Largest accepted amount

    Returns:
        Amount as a 2-place Decimal

    Raises:
        InvalidAmount: If the amount is not a finite number, is <= 0,
            or falls outside [minimum, maximum]
    """
    value = to_decimal(amount)
    if value <= 0:
        raise InvalidAmount("Amount must be greater than 0")
    if value < minimum:
        raise InvalidAmount(f"Amount must be at least ${minimum}")
    if value > maximum:
        raise InvalidAmount(f"Amount cannot exceed ${maximum}")
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_money(value: MoneyLike) -> str:
    """Format for display with exactly two decimals"""
    return f"{round_money(value):.2f}"


def to_json_number(value: MoneyLike) -> float:
    """Rounded amount as a JSON number"""
    return float(round_money(value))
