"""Number formatting shared by reason strings, notes and log details."""

import math


def as_percent(value: float) -> int:
    """0.625 -> 63. Rounds half up, not half to even."""
    return int(math.floor(value * 100 + 0.5))


def as_percent_1dp(value: float) -> float:
    """0.12345 -> 12.3"""
    return math.floor(value * 1000 + 0.5) / 10


def format_number(value: float) -> str:
    """Render whole floats without a trailing '.0' (10000.0 -> '10000')."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
