"""
Shared H3 utilities for the heatmap core.

This module gives the rest of the package one consistent interface to the
h3 library (cell validation, boundaries, parents, polygon cover), handling
the v3/v4 naming differences in one place. Cells are always handled in
their 15-digit hexadecimal string form.
"""
from __future__ import annotations

import numbers
from typing import Iterable, List, Optional, Set, Tuple

import h3

# H3 API compatibility layer - handles v3 and v4 naming
H3_IS_VALID = getattr(h3, "is_valid_cell", None) or getattr(h3, "h3_is_valid", None)
H3_INT_TO_STR = getattr(h3, "int_to_str", None) or getattr(h3, "h3_to_string", None)
H3_GET_RESOLUTION = getattr(h3, "get_resolution", None) or getattr(h3, "h3_get_resolution", None)
H3_TO_PARENT = getattr(h3, "cell_to_parent", None) or getattr(h3, "h3_to_parent", None)
H3_CELL_TO_BOUNDARY = getattr(h3, "cell_to_boundary", None)
H3_TO_GEO_BOUNDARY = getattr(h3, "h3_to_geo_boundary", None)
H3_LATLNG_TO_CELL = getattr(h3, "latlng_to_cell", None) or getattr(h3, "geo_to_h3", None)
H3_GEO_TO_CELLS = getattr(h3, "geo_to_cells", None)
H3_POLYFILL_GEOJSON = getattr(h3, "polyfill_geojson", None)
H3_GEO_TO_SHAPE = getattr(h3, "geo_to_h3shape", None)
H3_SHAPE_TO_CELLS_EXPERIMENTAL = getattr(h3, "h3shape_to_cells_experimental", None)

MAX_RESOLUTION = 15
CONTAIN_MODES = ("center", "full", "overlap", "bbox_overlap")


def normalize_cell(cell) -> Optional[str]:
    """
    Return the canonical string form of an H3 address, or None.

    Accepts the hex string form (any case, surrounding whitespace ignored)
    and the uint64 integer form. Anything the h3 library does not accept as
    a valid cell yields None; this function never raises.
    """
    if isinstance(cell, bool) or cell is None:
        return None
    if isinstance(cell, numbers.Integral):
        try:
            cell = H3_INT_TO_STR(int(cell))
        except Exception:  # h3 raises its own error types per version
            return None
    if not isinstance(cell, str):
        return None
    cell = cell.strip().lower()
    if not cell:
        return None
    try:
        if not H3_IS_VALID(cell):
            return None
    except Exception:  # h3 raises its own error types per version
        return None
    return cell


def is_valid_cell(cell) -> bool:
    return normalize_cell(cell) is not None


def cell_resolution(cell: str) -> int:
    return int(H3_GET_RESOLUTION(cell))


def cell_to_parent(cell: str, resolution: int) -> str:
    return H3_TO_PARENT(cell, resolution)


def cell_boundary(cell: str) -> List[Tuple[float, float]]:
    """
    Boundary vertices of a cell in GeoJSON ``(lng, lat)`` order.

    h3 hands vertices back as ``(lat, lng)``; the flip happens here so
    callers can treat every ring the same way. The ring is returned open
    (no repeated closing vertex), exactly as h3 produces it.
    """
    if callable(H3_CELL_TO_BOUNDARY):
        boundary = H3_CELL_TO_BOUNDARY(cell)
    elif callable(H3_TO_GEO_BOUNDARY):
        boundary = H3_TO_GEO_BOUNDARY(cell)
    else:  # pragma: no cover - import guard
        raise RuntimeError("No suitable H3 boundary function available.")
    return [(lng, lat) for lat, lng in boundary]


def latlng_to_cell(lat: float, lng: float, resolution: int) -> str:
    return H3_LATLNG_TO_CELL(lat, lng, resolution)


def check_resolution(resolution) -> int:
    if isinstance(resolution, bool) or not isinstance(resolution, numbers.Integral):
        raise ValueError(f"H3 resolution must be an integer, got {resolution!r}")
    resolution = int(resolution)
    if not 0 <= resolution <= MAX_RESOLUTION:
        raise ValueError(f"H3 resolution must be within 0..{MAX_RESOLUTION}, got {resolution}")
    return resolution


def _polygon_parts(geom) -> Iterable[dict]:
    mapping = geom.__geo_interface__
    if mapping["type"] == "Polygon":
        return [mapping]
    if mapping["type"] == "MultiPolygon":
        return (
            {"type": "Polygon", "coordinates": coords}
            for coords in mapping["coordinates"]
        )
    if mapping["type"] == "GeometryCollection":
        parts: List[dict] = []
        for member in geom.geoms:
            parts.extend(_polygon_parts(member))
        return parts
    return []


def polygon_to_cells(geom, resolution: int, contain: str = "center") -> Set[str]:
    """
    Cover a Shapely polygon or multipolygon with H3 cells.

    Args:
        geom: Shapely geometry in EPSG:4326 (Polygon, MultiPolygon or a
            collection containing them)
        resolution: H3 resolution level (0-15)
        contain: H3 containment mode. "center" keeps cells whose centroid
            falls inside the geometry; the other modes need an h3 build
            that ships ``h3shape_to_cells_experimental``.

    Returns:
        Set of H3 cell addresses (strings)
    """
    resolution = check_resolution(resolution)
    if contain not in CONTAIN_MODES:
        raise ValueError(f"Unknown containment mode {contain!r}; expected one of {CONTAIN_MODES}")
    if geom is None or geom.is_empty:
        return set()

    result: Set[str] = set()
    for poly in _polygon_parts(geom):
        if contain != "center":
            if not (callable(H3_SHAPE_TO_CELLS_EXPERIMENTAL) and callable(H3_GEO_TO_SHAPE)):
                raise RuntimeError(f"Containment mode {contain!r} needs h3 >= 4.1")
            cells = H3_SHAPE_TO_CELLS_EXPERIMENTAL(H3_GEO_TO_SHAPE(poly), resolution, contain=contain)
        elif callable(H3_GEO_TO_CELLS):
            cells = H3_GEO_TO_CELLS(poly, resolution)
        elif callable(H3_POLYFILL_GEOJSON):
            cells = H3_POLYFILL_GEOJSON(poly, resolution)
        else:  # pragma: no cover - import guard
            raise RuntimeError("No suitable H3 polyfill function available.")
        result.update(cells)
    return result
