"""Numeric helpers shared by the engine modules."""

import math

# Percentage-point differences are rounded to this many places before any
# threshold comparison so binary float noise (28.0 - 22.1) cannot flip a band.
PCT_PLACES = 4


def pct_diff(a: float, b: float) -> float:
    """a - b in percentage points, free of float noise."""
    return round(a - b, PCT_PLACES)


def ratio_pct(part: float, whole: float) -> float:
    """part / whole as a percentage; 0.0 when whole is zero."""
    if not whole:
        return 0.0
    return round(part / whole * 100, PCT_PLACES)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (Python's round() is
    banker's rounding, 92.5 -> 92)."""
    return int(math.floor(round(value, 6) + 0.5))


def mean(values: list[float], places: int = 2) -> float:
    if not values:
        return 0.0
    return round(sum(values) / len(values), places)
