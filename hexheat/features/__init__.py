"""
hexheat.features - Turn backend rows into canonical heatmap polygons.

Cell ids are resolved and validated, H3 boundaries are built, polygon
payloads are sanitized, and every ring comes out closed, finite and
counter-clockwise in (lng, lat) order.
"""

from .schema import HexFeature, ID_ALIASES, UNKNOWN_ID, feature_collection, finite_value
from .cells import resolve_cell_id
from .boundary import build_hex_feature
from .sanitize import sanitize_polygon_feature
from .ingest import (
    IdValuePair,
    IngestReport,
    PolygonPayload,
    Unrecognized,
    classify_record,
    ingest_rows,
)

__all__ = [
    "HexFeature",
    "ID_ALIASES",
    "UNKNOWN_ID",
    "feature_collection",
    "finite_value",
    "resolve_cell_id",
    "build_hex_feature",
    "sanitize_polygon_feature",
    "IdValuePair",
    "IngestReport",
    "PolygonPayload",
    "Unrecognized",
    "classify_record",
    "ingest_rows",
]
