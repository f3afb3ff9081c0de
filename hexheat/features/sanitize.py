"""
Sanitize polygon payloads supplied by the backend into HexFeatures.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Optional

from .cells import resolve_cell_id
from .rings import canonical_ring
from .schema import UNKNOWN_ID, HexFeature, finite_value

logger = logging.getLogger(__name__)

POLYGON_TAG = "Polygon"


def _as_mapping(payload) -> Optional[Mapping]:
    if isinstance(payload, Mapping):
        return payload
    geo = getattr(payload, "__geo_interface__", None)
    if isinstance(geo, Mapping):
        return geo
    return None


def _raw_id(raw) -> Optional[str]:
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, int):
        return str(raw)
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return None


def _feature_id(record: Mapping, props: Mapping) -> str:
    return (
        resolve_cell_id(props)
        or resolve_cell_id(record)
        or _raw_id(props.get("id"))
        or _raw_id(record.get("id"))
        or UNKNOWN_ID
    )


def sanitize_polygon_feature(payload) -> Optional[HexFeature]:
    """
    Validate a polygon-shaped payload and return its canonical HexFeature.

    Accepts a GeoJSON Feature, a bare Polygon geometry (id and value then
    live on the geometry object itself) or anything exposing
    ``__geo_interface__``, including HexFeature. Only the exterior ring is
    kept. Returns None when the type tag is not a polygon, the ring has
    fewer than three distinct finite vertices, or the value is missing or
    not finite. Sanitizing a sanitized feature returns an equal feature.
    """
    record = _as_mapping(payload)
    if record is None:
        return None

    if record.get("type") == "Feature":
        geometry = record.get("geometry")
        if not isinstance(geometry, Mapping):
            return None
    else:
        geometry = record
    if geometry.get("type") != POLYGON_TAG:
        logger.debug("Dropping payload with geometry type %r", geometry.get("type"))
        return None

    rings = geometry.get("coordinates")
    if not isinstance(rings, (list, tuple)) or not rings:
        return None
    ring = canonical_ring(rings[0])
    if ring is None:
        logger.debug("Dropping polygon whose exterior ring has fewer than 3 usable vertices")
        return None

    props = record.get("properties")
    if not isinstance(props, Mapping):
        props = {}
    value = finite_value(props["value"] if "value" in props else record.get("value"))
    if value is None:
        logger.debug("Dropping polygon without a finite value")
        return None

    return HexFeature(id=_feature_id(record, props), value=value, ring=ring)
