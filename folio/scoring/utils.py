"""
Decimal Utilities
folio/scoring/utils.py

Precision-safe decimal math shared by the achievement and completeness scorers.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict

ZERO = Decimal("0")
ONE = Decimal("1")
PLACES = Decimal("0.0001")


def to_decimal(value: float, places: int = 4) -> Decimal:
    """Convert float to Decimal with explicit precision."""
    return Decimal(str(value)).quantize(
        Decimal(10) ** -places, rounding=ROUND_HALF_UP
    )


def quantize(value: Decimal) -> Decimal:
    """Round to the 4 decimal places every persisted score uses."""
    return value.quantize(PLACES, rounding=ROUND_HALF_UP)


def clamp(
    value: Decimal,
    min_val: Decimal = ZERO,
    max_val: Decimal = ONE,
) -> Decimal:
    """Clamp value to range [min_val, max_val]."""
    return max(min_val, min(max_val, value))


def ratio(part: int, whole: int) -> Decimal:
    """part / whole clamped to [0, 1]; 0 when whole is 0."""
    if whole <= 0:
        return ZERO
    return clamp(Decimal(part) / Decimal(whole))


def weighted_sum(components: Dict[str, Decimal], weights: Dict[str, Decimal]) -> Decimal:
    """
    Σ(component_i × weight_i) over the weight keys, quantized.

    Raises KeyError if a weighted component is missing.
    """
    total = sum((components[name] * w for name, w in weights.items()), ZERO)
    return quantize(total)
