"""
Rounding helpers for dashboard ratios.

Ratios are rounded half-up (as operators read them), never banker's rounding.
Degenerate denominators resolve to 0.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float, places: int = 0) -> float:
    """Round a float half away from zero to the given number of decimal places."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def percentage(part: int, whole: int, places: int = 1) -> float:
    """part / whole * 100, rounded; 0.0 when whole is 0."""
    if whole <= 0:
        return 0.0
    return round_half_up(part * 100 / whole, places)


def ratio(part: int, whole: int, places: int = 2) -> float:
    """part / whole, rounded; 0.0 when whole is 0."""
    if whole <= 0:
        return 0.0
    return round_half_up(part / whole, places)
