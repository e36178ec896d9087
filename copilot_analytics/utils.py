"""
Utility functions for the analytics pipelines.
"""

from decimal import Decimal, ROUND_HALF_UP


def round_half_up(value: float, places: int = 0) -> float:
    """
    Round half away from zero, the way the reporting database does.

    Unlike round(), exact halves go up: round_half_up(2.5) == 3.0.

    Args:
        value: Number to round
        places: Decimal places to keep

    Returns:
        Rounded value as float
    """
    exponent = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP))


def ratio_percent(part: int, whole: int) -> float:
    """Percentage with 2 decimals; 0 when there is nothing to divide by."""
    if not whole:
        return 0.0
    return round_half_up(100 * part / whole, 2)
