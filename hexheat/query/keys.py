"""
Query bounds and cache keys.

Key generation lives here so the pipeline, the API and the tests all agree
on what counts as "the same query".
"""
from __future__ import annotations

import datetime as dt
import json
import math
from dataclasses import asdict, dataclass
from typing import Optional, Tuple

from .. import config


@dataclass(frozen=True)
class Bounds:
    """Geographic bounds in decimal degrees, ordered (south, west, north, east)."""
    south: float
    west: float
    north: float
    east: float

    def __post_init__(self):
        for name in ("south", "west", "north", "east"):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"Bounds.{name} must be finite, got {getattr(self, name)!r}")

    @classmethod
    def from_tuple(cls, values) -> "Bounds":
        south, west, north, east = (float(v) for v in values)
        return cls(south, west, north, east)

    @classmethod
    def from_param(cls, raw: str) -> "Bounds":
        """Parse ``"south,west,north,east"``."""
        parts = [p.strip() for p in str(raw).split(",")]
        if len(parts) != 4:
            raise ValueError(f"Expected bbox 'south,west,north,east', got {raw!r}")
        try:
            return cls.from_tuple(parts)
        except ValueError as exc:
            raise ValueError(f"Invalid bbox {raw!r}: {exc}") from exc

    @classmethod
    def from_geometry(cls, geom) -> "Bounds":
        """Bounds of a Shapely geometry in EPSG:4326."""
        west, south, east, north = geom.bounds
        return cls(south, west, north, east)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.south, self.west, self.north, self.east)

    def ordered(self) -> "Bounds":
        """Swap inverted edges so south <= north and west <= east."""
        return Bounds(
            min(self.south, self.north), min(self.west, self.east),
            max(self.south, self.north), max(self.west, self.east),
        )

    def clamp(self, envelope: "Bounds") -> "Bounds":
        """
        Clip to an outer envelope.

        The result can be empty (south > north or west > east) when the
        bounds lie entirely outside the envelope; see ``is_empty``.
        """
        b = self.ordered()
        return Bounds(
            max(b.south, envelope.south),
            max(b.west, envelope.west),
            min(b.north, envelope.north),
            min(b.east, envelope.east),
        )

    @property
    def is_empty(self) -> bool:
        return self.south > self.north or self.west > self.east

    def to_param(self, precision: Optional[int] = None) -> str:
        if precision is None:
            return ",".join(repr(float(v)) for v in self.as_tuple())
        return ",".join(_fmt(v, precision) for v in self.as_tuple())


LOWER48 = Bounds.from_tuple(config.LOWER48_ENVELOPE)


def _fmt(value: float, precision: int) -> str:
    text = f"{value:.{precision}f}"
    # -0.000 and 0.000 are the same bound
    if float(text) == 0.0:
        text = f"{0.0:.{precision}f}"
    return text


def _at_text(at) -> str:
    if isinstance(at, (dt.date, dt.datetime)):
        return at.isoformat()
    return str(at).strip()


@dataclass(frozen=True)
class QueryKey:
    metric: str
    bucket: str
    at: str
    resolution: int
    bbox: str

    @classmethod
    def build(
        cls,
        metric: str,
        bucket: str,
        at,
        resolution: int,
        bounds: Bounds,
        precision: int = config.BBOX_PRECISION,
    ) -> "QueryKey":
        """Canonical key: bounds rounded so float jitter maps to one entry."""
        return cls(
            metric=str(metric).strip(),
            bucket=str(bucket).strip(),
            at=_at_text(at),
            resolution=int(resolution),
            bbox=bounds.to_param(precision),
        )

    def __str__(self) -> str:
        return json.dumps(asdict(self), sort_keys=True, separators=(",", ":"))
