from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence, Union

Number = Union[int, float, Decimal]

_TWO_PLACES = Decimal("0.01")


def round2(value: Number) -> Decimal:
    """Round half-up to two decimals (money and percentages)."""
    return Decimal(str(value)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def safe_ratio(numerator: Number, denominator: Number) -> Decimal:
    """numerator / denominator, 0 when the denominator is zero."""
    if not denominator:
        return Decimal("0")
    return Decimal(str(numerator)) / Decimal(str(denominator))


def percent(numerator: Number, denominator: Number) -> Decimal:
    """Percentage rounded to 2 decimals, 0 when the denominator is zero."""
    return round2(safe_ratio(numerator, denominator) * 100)


def average(values: Iterable[Number]) -> Optional[Decimal]:
    items = [Decimal(str(v)) for v in values]
    if not items:
        return None
    return sum(items, Decimal("0")) / len(items)


def median(values: Sequence[Number]) -> Optional[Decimal]:
    items = sorted(Decimal(str(v)) for v in values)
    if not items:
        return None
    mid = len(items) // 2
    if len(items) % 2:
        return items[mid]
    return (items[mid - 1] + items[mid]) / 2
