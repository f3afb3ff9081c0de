"""
Colour scale for heatmap values.

Values are mapped onto an 8-stop plasma-like palette. The position along
the domain is clamped to [0.07, 0.93] so the darkest and brightest stops
are reserved for the extremes.
"""
from __future__ import annotations

import math
from typing import List, Tuple

RGB = Tuple[int, int, int]

PALETTE: Tuple[RGB, ...] = (
    (13, 8, 135), (91, 2, 163), (154, 23, 155), (203, 70, 121),
    (237, 121, 83), (251, 159, 58), (253, 202, 38), (240, 249, 33),
)
NO_DATA: RGB = (226, 232, 240)

T_MIN = 0.07
T_MAX = 0.93


def color_for(value: float, lo: float, hi: float) -> RGB:
    if not math.isfinite(value) or hi <= lo:
        return NO_DATA
    t = min(T_MAX, max(T_MIN, (value - lo) / (hi - lo)))
    i = min(len(PALETTE) - 1, int(math.floor(t * (len(PALETTE) - 1))))
    return PALETTE[i]


def to_hex(rgb: RGB) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)


def legend_stops(lo: float, hi: float, n: int = len(PALETTE)) -> List[float]:
    """Evenly spaced domain values, one per palette stop."""
    if n < 2:
        return [lo]
    return [lo + (hi - lo) * i / (n - 1) for i in range(n)]
