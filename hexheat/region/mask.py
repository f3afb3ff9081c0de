"""
Per-resolution H3 cover of the reference region, built once and memoized.

Up to ``ceiling`` the cover is computed directly. Past it the number of
cells grows by ~7x per level, so finer masks reuse the ceiling cover and
test a cell through its ancestor at the ceiling resolution. That slightly
over-includes fine cells along the region edge, which is accepted.
"""
from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List

from .. import config
from ..features.schema import HexFeature
from ..h3_utils import (
    cell_resolution,
    cell_to_parent,
    check_resolution,
    latlng_to_cell,
    normalize_cell,
    polygon_to_cells,
)
from ..inflight import InFlight

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegionMask:
    """
    Cells covering the region at ``resolution``.

    ``cells`` are at ``lookup_resolution``, which equals ``resolution`` for
    exact masks and the ceiling for masks above it.
    """
    resolution: int
    cells: FrozenSet[str]
    lookup_resolution: int

    @property
    def is_exact(self) -> bool:
        return self.lookup_resolution == self.resolution

    def __len__(self) -> int:
        return len(self.cells)

    def __contains__(self, cell) -> bool:
        index = normalize_cell(cell)
        if index is None:
            return False
        if cell_resolution(index) > self.lookup_resolution:
            index = cell_to_parent(index, self.lookup_resolution)
        return index in self.cells

    def contains_feature(self, feature: HexFeature) -> bool:
        """Membership by cell id, or by the ring centroid for non-cell ids."""
        if normalize_cell(feature.id) is not None:
            return feature.id in self
        lng, lat = feature.centroid
        try:
            return latlng_to_cell(lat, lng, self.resolution) in self
        except Exception:  # h3 raises its own error types per version
            return False

    def filter(self, features: Iterable[HexFeature]) -> List[HexFeature]:
        return [f for f in features if self.contains_feature(f)]


class RegionMaskCache:
    """
    Memo of RegionMasks for a single reference boundary.

    The boundary is fixed for the life of the cache; handing ``mask`` a
    different geometry drops every memoized mask and starts over. Repeated
    calls for a resolution return the same RegionMask object, and
    ``build_count`` only moves when a direct cover is computed.
    """

    def __init__(
        self,
        boundary=None,
        ceiling: int = config.MASK_CEILING,
        contain: str = config.MASK_CONTAIN,
    ):
        self.ceiling = check_resolution(ceiling)
        self.contain = contain
        self._boundary = boundary
        self._masks: Dict[int, RegionMask] = {}
        self._epoch = 0
        self._lock = threading.Lock()
        self._inflight = InFlight()
        self.build_count = 0
        self.builds_by_resolution: Counter = Counter()

    @property
    def boundary(self):
        return self._boundary

    def __len__(self) -> int:
        with self._lock:
            return len(self._masks)

    def _reset_locked(self, boundary) -> None:
        self._masks.clear()
        self._epoch += 1
        if boundary is not None:
            self._boundary = boundary

    def invalidate(self, boundary=None) -> None:
        """Forget all masks, optionally switching to a new boundary."""
        with self._lock:
            self._reset_locked(boundary)
        logger.info("Region mask cache invalidated")

    def _adopt(self, boundary) -> None:
        with self._lock:
            current = self._boundary
            if boundary is None:
                if current is None:
                    raise ValueError("RegionMaskCache has no reference boundary")
                return
            if current is boundary or (current is not None and current.equals(boundary)):
                return
            self._reset_locked(boundary)
        logger.info("Region mask cache invalidated for a new boundary")

    def mask(self, boundary, resolution: int) -> RegionMask:
        """
        Cells covering ``boundary`` at ``resolution``.

        Pass ``None`` as the boundary to use the one the cache holds.
        """
        resolution = check_resolution(resolution)
        self._adopt(boundary)
        if resolution <= self.ceiling:
            return self._exact(resolution)

        with self._lock:
            hit = self._masks.get(resolution)
            epoch = self._epoch
        if hit is not None:
            return hit
        base = self._exact(self.ceiling)
        derived = RegionMask(resolution=resolution, cells=base.cells, lookup_resolution=self.ceiling)
        with self._lock:
            # a boundary swap during assembly leaves nothing behind
            if epoch != self._epoch:
                return derived
            return self._masks.setdefault(resolution, derived)

    def _exact(self, resolution: int) -> RegionMask:
        with self._lock:
            hit = self._masks.get(resolution)
            epoch = self._epoch
        if hit is not None:
            return hit
        return self._inflight.run((epoch, resolution), lambda: self._build(resolution, epoch))

    def _build(self, resolution: int, epoch: int) -> RegionMask:
        with self._lock:
            hit = self._masks.get(resolution)
            boundary = self._boundary
        if hit is not None:
            return hit

        cells = frozenset(polygon_to_cells(boundary, resolution, contain=self.contain))
        built = RegionMask(resolution=resolution, cells=cells, lookup_resolution=resolution)
        with self._lock:
            self.build_count += 1
            self.builds_by_resolution[resolution] += 1
            if epoch == self._epoch:
                self._masks[resolution] = built
        logger.info("Built region mask r%s with %s cells", resolution, len(cells))
        return built

