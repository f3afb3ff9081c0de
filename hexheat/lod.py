"""
Zoom → H3 resolution level-of-detail selection.
"""
from __future__ import annotations

import math
from bisect import bisect_right
from dataclasses import dataclass
from typing import Sequence, Tuple

from . import config


@dataclass(frozen=True)
class LodTable:
    """
    Ascending step function from camera zoom to H3 resolution.

    ``steps`` holds ``(zoom_threshold, resolution)`` pairs. A zoom below a
    threshold gets that step's resolution (the first match wins); zooms at
    or past the last threshold get ``max_resolution``.
    """
    steps: Tuple[Tuple[float, int], ...]
    max_resolution: int

    def __post_init__(self):
        if not self.steps:
            raise ValueError("LOD table needs at least one step")
        thresholds = [t for t, _ in self.steps]
        resolutions = [r for _, r in self.steps] + [self.max_resolution]
        if any(not math.isfinite(t) for t in thresholds):
            raise ValueError(f"LOD thresholds must be finite: {thresholds}")
        if any(b <= a for a, b in zip(thresholds, thresholds[1:])):
            raise ValueError(f"LOD thresholds must be strictly ascending: {thresholds}")
        if any(b < a for a, b in zip(resolutions, resolutions[1:])):
            raise ValueError(f"LOD resolutions must not decrease: {resolutions}")

    @classmethod
    def from_pairs(cls, steps: Sequence[Tuple[float, int]], max_resolution: int) -> "LodTable":
        return cls(tuple((float(t), int(r)) for t, r in steps), int(max_resolution))

    @property
    def thresholds(self) -> Tuple[float, ...]:
        return tuple(t for t, _ in self.steps)

    @property
    def resolutions(self) -> Tuple[int, ...]:
        return tuple(r for _, r in self.steps) + (self.max_resolution,)

    def select(self, zoom: float) -> int:
        zoom = float(zoom)
        if math.isnan(zoom):
            raise ValueError("zoom must be a number, got NaN")
        idx = bisect_right(self.thresholds, zoom)
        if idx >= len(self.steps):
            return self.max_resolution
        return self.steps[idx][1]


DEFAULT_LOD_TABLE = LodTable.from_pairs(config.LOD_STEPS, config.LOD_MAX_RESOLUTION)


def select_resolution(zoom: float, table: LodTable = DEFAULT_LOD_TABLE) -> int:
    return table.select(zoom)


def clamp_zoom(zoom: float, min_zoom: float = config.MIN_ZOOM, max_zoom: float = config.MAX_ZOOM) -> float:
    return min(max_zoom, max(min_zoom, float(zoom)))
