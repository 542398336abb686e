import math

__all__ = ["percent", "round_half_up"]


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive inputs (2.5 -> 3), unlike round()."""
    return math.floor(value + 0.5)


def percent(part: float, whole: float) -> int:
    if not whole:
        return 0
    return round_half_up(part / whole * 100)
