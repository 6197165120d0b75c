"""
Decimal Utilities
evaluation_platform/scoring/utils.py

Provides precision-safe decimal math for scoring calculations.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, List, Optional

TWO_PLACES = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    Convert a number (or numeric string) to Decimal without float noise.

    Raises ValueError for booleans, non-numeric input, NaN and infinities.
    """
    if isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, TypeError):
            raise ValueError(f"not a number: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return result


def round_display(value: Optional[Decimal]) -> Optional[Decimal]:
    """Round to 2 decimal places for display; None passes through."""
    if value is None:
        return None
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def clamp(
    value: Decimal,
    min_val: Decimal = Decimal("0"),
    max_val: Decimal = Decimal("100"),
) -> Decimal:
    """Clamp value to range [min_val, max_val]."""
    return max(min_val, min(max_val, value))


def mean(values: List[Decimal]) -> Optional[Decimal]:
    """
    Arithmetic mean at full precision.

    Returns None for an empty list.
    """
    if not values:
        return None
    return sum(values, Decimal("0")) / Decimal(len(values))

