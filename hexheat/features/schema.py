"""
Canonical heatmap feature definition.

Every record that reaches the renderer, whatever shape it arrived in, ends up
as a HexFeature: an id, a finite value and one closed, counter-clockwise
exterior ring in ``(lng, lat)`` order.
"""
from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from shapely.geometry import Polygon

Position = Tuple[float, float]
Ring = Tuple[Position, ...]

# Field names that may carry a cell id, in priority order
ID_ALIASES = ("h3", "h3Index", "h3_index", "cell", "hex", "h3_id", "id", "index")

# Id used for polygon payloads that carry no usable id
UNKNOWN_ID = "unknown"


def finite_value(raw) -> Optional[float]:
    """Coerce a loosely-typed value to a finite float, or None."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, numbers.Real):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            return None
    else:
        return None
    return value if math.isfinite(value) else None


@dataclass(frozen=True)
class HexFeature:
    id: str
    value: float
    ring: Ring

    @property
    def __geo_interface__(self) -> dict:
        return {
            "type": "Feature",
            "properties": {"id": self.id, "value": self.value},
            "geometry": {
                "type": "Polygon",
                "coordinates": [[list(pt) for pt in self.ring]],
            },
        }

    @property
    def centroid(self) -> Position:
        """Vertex average of the exterior ring (closing vertex excluded)."""
        pts = self.ring[:-1] or self.ring
        n = len(pts)
        return (sum(p[0] for p in pts) / n, sum(p[1] for p in pts) / n)

    def to_shapely(self) -> Polygon:
        return Polygon(self.ring)


def feature_collection(features: Iterable[HexFeature], **extra) -> dict:
    """Wrap features in a GeoJSON FeatureCollection, plus any extra members."""
    collection = {
        "type": "FeatureCollection",
        "features": [f.__geo_interface__ for f in features],
    }
    collection.update(extra)
    return collection
