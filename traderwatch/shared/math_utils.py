"""Rounding helpers for monetary and percentage outputs."""
from __future__ import annotations

import math


def round_half_up(value: float, digits: int = 2) -> float:
    """Round halves toward +inf: 0.125 -> 0.13, -0.125 -> -0.12.

    ``round()`` uses banker's rounding; outputs here must match the
    ``Math.round(x * 100) / 100`` convention used by the dashboard.
    """
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def round_usd(value: float) -> float:
    """Round a USD amount to cents."""
    return round_half_up(value, 2)


def round_pct(value: float) -> float:
    """Round a percentage to one decimal."""
    return round_half_up(value, 1)
