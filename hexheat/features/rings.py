"""
Ring canonicalization shared by the boundary builder and the sanitizer.

A raw ring goes through four steps, in this order:

1. drop vertices that are not a pair of finite numbers
2. swap axes when the ring looks like ``(lat, lng)`` rather than ``(lng, lat)``
3. close the ring
4. reverse it when it winds clockwise

The axis test is a whole-ring vote on average magnitudes, not a per-vertex
check, so rings near the equator or the prime meridian never flip-flop.
It is a pragmatic approximation: a ring that sits within 90 degrees of the
prime meridian and is delivered as ``(lat, lng)`` is left as is.
"""
from __future__ import annotations

import math
from typing import Iterable, List, Optional

import numpy as np

from .schema import Position, Ring

MIN_DISTINCT_POSITIONS = 3


def finite_positions(coords: Optional[Iterable]) -> List[Position]:
    """Keep the vertices whose first two components are finite numbers."""
    out: List[Position] = []
    if coords is None or isinstance(coords, (str, bytes)):
        return out
    try:
        iterator = iter(coords)
    except TypeError:
        return out
    for pt in iterator:
        if isinstance(pt, (str, bytes)):
            continue
        try:
            x = float(pt[0])
            y = float(pt[1])
        except (TypeError, ValueError, IndexError, KeyError):
            continue
        if math.isfinite(x) and math.isfinite(y):
            out.append((x, y))
    return out


def needs_axis_swap(ring: List[Position]) -> bool:
    """True when the ring averages look like ``(lat, lng)`` ordering."""
    mean_abs = np.abs(np.asarray(ring, dtype=float)).mean(axis=0)
    return bool(mean_abs[0] <= 90.0 and mean_abs[1] > 90.0)


def normalize_axis_order(ring: List[Position]) -> List[Position]:
    if needs_axis_swap(ring):
        return [(y, x) for x, y in ring]
    return list(ring)


def close_ring(ring: List[Position]) -> List[Position]:
    if ring[0] != ring[-1]:
        return list(ring) + [ring[0]]
    return list(ring)


def signed_area(ring) -> float:
    """
    Shoelace sum ``0.5 * sum((x2 - x1) * (y2 + y1))`` over a closed ring.

    Positive means clockwise, negative counter-clockwise, with x as
    longitude and y as latitude.
    """
    arr = np.asarray(ring, dtype=float)
    if len(arr) < 2:
        return 0.0
    x, y = arr[:, 0], arr[:, 1]
    return float(0.5 * np.sum((x[1:] - x[:-1]) * (y[1:] + y[:-1])))


def enforce_ccw(ring: List[Position]) -> List[Position]:
    if signed_area(ring) > 0:
        return list(reversed(ring))
    return list(ring)


def canonical_ring(coords) -> Optional[Ring]:
    """
    Run the full canonicalization on a raw ring.

    Returns None when fewer than three distinct finite vertices survive.
    """
    points = finite_positions(coords)
    if len(set(points)) < MIN_DISTINCT_POSITIONS:
        return None
    points = normalize_axis_order(points)
    points = close_ring(points)
    points = enforce_ccw(points)
    return tuple(points)
