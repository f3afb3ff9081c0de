"""
hexheat - H3 heatmap viewer core.

Turns loosely-typed backend rows into render-safe hexagon polygons, picks the
H3 resolution for the current zoom, restricts results to a reference region
and memoizes both region masks and raw query results.
"""

from .features import HexFeature, build_hex_feature, resolve_cell_id, sanitize_polygon_feature
from .lod import DEFAULT_LOD_TABLE, LodTable, select_resolution
from .pipeline import HeatmapPipeline, HeatmapResult, Status, ViewportController, ViewportQuery
from .query import Bounds, CancelToken, HeatmapClient, QueryKey, QueryResultCache
from .region import RegionMask, RegionMaskCache

__all__ = [
    "HexFeature",
    "build_hex_feature",
    "resolve_cell_id",
    "sanitize_polygon_feature",
    "DEFAULT_LOD_TABLE",
    "LodTable",
    "select_resolution",
    "HeatmapPipeline",
    "HeatmapResult",
    "Status",
    "ViewportController",
    "ViewportQuery",
    "Bounds",
    "CancelToken",
    "HeatmapClient",
    "QueryKey",
    "QueryResultCache",
    "RegionMask",
    "RegionMaskCache",
]
