"""
Build canonical polygon features from H3 cell ids.
"""
from __future__ import annotations

import logging
from typing import Optional

from ..h3_utils import cell_boundary, normalize_cell
from .rings import canonical_ring
from .schema import HexFeature, finite_value

logger = logging.getLogger(__name__)


def build_hex_feature(cell, value) -> Optional[HexFeature]:
    """
    Turn a cell id and a value into a HexFeature.

    Returns None (never raises) when the cell is not a valid H3 address, the
    value is not a finite number, or the boundary collapses to fewer than
    three distinct finite vertices. The same inputs always produce an equal
    feature.
    """
    index = normalize_cell(cell)
    if index is None:
        logger.debug("Dropping record with invalid cell %r", cell)
        return None
    val = finite_value(value)
    if val is None:
        logger.debug("Dropping cell %s with non-finite value %r", index, value)
        return None
    try:
        raw = cell_boundary(index)
    except Exception as exc:  # h3 raises its own error types per version
        logger.debug("No boundary for cell %s: %s", index, exc)
        return None
    ring = canonical_ring(raw)
    if ring is None:
        logger.debug("Boundary of cell %s degenerated to fewer than 3 vertices", index)
        return None
    return HexFeature(id=index, value=val, ring=ring)
