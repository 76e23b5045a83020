"""Statistics primitives shared by the aggregation calculators.

Only frequency, percentage and arithmetic mean are supported. Rounding is
half-up (``66.665 -> 66.67``) rather than Python's round-half-even, so stored
percentages agree with what the dashboard displays.
"""

import math
from collections import Counter
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List


def round_half_up(value: float, decimals: int = 2) -> float:
    """Round a number half-up to a fixed number of decimals.

    Args:
        value: Number to round
        decimals: Digits after the decimal point

    Returns:
        Rounded value as float

    Example:
        >>> round_half_up(2.675)
        2.68
        >>> round_half_up(66.66666)
        66.67
    """
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def percentage(count: int, total: int, decimals: int = 2) -> float:
    """Percentage of count in total, rounded half-up.

    Returns 0 when total is 0.
    """
    if total == 0:
        return 0.0
    return round_half_up(count / total * 100, decimals)


def mean(values: List[float]) -> float:
    """Arithmetic mean; 0 for an empty list."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def is_valid_number(value: Any) -> bool:
    """True for a present, finite int or float (bools excluded)."""
    if value is None or isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def count_occurrences(values: Iterable[str]) -> Dict[str, int]:
    """Count how many times each value appears.

    Args:
        values: Option keys

    Returns:
        Mapping of value to occurrence count
    """
    return dict(Counter(values))
