"""
Currency helpers shared by the pricing modules.

All amounts are ``Decimal``. Inputs coming from JSON/ORM columns may be
int, float or str and are converted through ``str`` so that ``0.1`` stays
``Decimal("0.1")`` instead of its binary approximation.
"""

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import Optional

WHOLE = Decimal("1")
CENTS = Decimal("0.01")


def to_decimal(value: Optional[Decimal | float | int | str]) -> Decimal:
    """Convert a number-ish value to Decimal, treating None as zero."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_whole(value: Decimal) -> Decimal:
    """Round half-up to whole currency units (72.5 -> 73)."""
    return to_decimal(value).quantize(WHOLE, rounding=ROUND_HALF_UP)


def ceil_whole(value: Decimal) -> Decimal:
    """Round up to whole currency units (3.01 -> 4, 3.00 -> 3)."""
    return to_decimal(value).quantize(WHOLE, rounding=ROUND_CEILING)


def round_cents(value: Decimal) -> Decimal:
    """Round half-up to cents."""
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)
