"""Currency conversion between store decimals and integer cents"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

_CENT = Decimal("0.01")


def to_cents(value: Any) -> Optional[int]:
    """
    Convert a decimal currency amount to integer cents.

    Floats are routed through str() so 19.99 stays 1999 instead of 1998.
    Returns None for missing, non-numeric or non-finite input.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value)) if not isinstance(value, Decimal) else value
        if not amount.is_finite():
            return None
        # quantize raises past the context precision, e.g. 1e30
        return int((amount.quantize(_CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())
    except (InvalidOperation, ValueError):
        return None


def from_cents(cents: int) -> Decimal:
    """Integer cents back to a two-place Decimal"""
    return (Decimal(cents) / 100).quantize(_CENT)
