"""
Load the reference region (a US state outline) used to build region masks.
"""
from __future__ import annotations

import logging
from typing import Optional

import geopandas as gpd
import shapely
from shapely.geometry.base import BaseGeometry

from .. import config
from ..query.keys import Bounds

logger = logging.getLogger(__name__)

H3_CRS = "EPSG:4326"

# Columns that may carry a state FIPS code / name, depending on the source
FIPS_COLUMNS = ("id", "STATEFP", "GEOID", "fips", "state_fips")
NAME_COLUMNS = ("name", "NAME", "state_name")
ABBR_COLUMNS = ("STUSPS", "abbr", "state_abbr")


def _state_keys(state: str):
    """(fips, abbreviation, lowercase name) candidates for a state argument."""
    text = str(state).strip()
    fips = None
    abbr = None
    if text.isdigit():
        fips = text.zfill(2)
        abbr = config.STATE_FIPS.get(fips)
    elif len(text) == 2:
        abbr = text.upper()
        fips = next((code for code, a in config.STATE_FIPS.items() if a == abbr), None)
    return fips, abbr, text.lower()


def clean_polygons(gdf: gpd.GeoDataFrame) -> gpd.GeoSeries:
    """Non-empty, valid polygonal geometries only."""
    g = gdf.geometry
    g = g[g.notna()]
    g = g[~g.is_empty]
    g = g[g.apply(lambda x: isinstance(x, BaseGeometry))]
    g = g.apply(lambda x: shapely.make_valid(x))
    return g[g.geom_type.isin(["Polygon", "MultiPolygon", "GeometryCollection"])]


def select_state(gdf: gpd.GeoDataFrame, state: str) -> gpd.GeoDataFrame:
    """
    Rows of a states layer matching a FIPS code, postal abbreviation or name.

    Raises:
        ValueError: if nothing matches
    """
    fips, abbr, name = _state_keys(state)
    mask = None
    for col in gdf.columns:
        if col == gdf.geometry.name:
            continue
        values = gdf[col].astype(str).str.strip()
        hit = None
        if col in FIPS_COLUMNS and fips is not None:
            hit = values.str.zfill(2) == fips
        elif col in ABBR_COLUMNS and abbr is not None:
            hit = values.str.upper() == abbr
        elif col in NAME_COLUMNS:
            hit = values.str.lower() == name
        if hit is not None:
            mask = hit if mask is None else (mask | hit)
    if mask is None or not mask.any():
        raise ValueError(f"No state matching {state!r} in boundary layer (columns: {list(gdf.columns)})")
    return gdf[mask]


def load_state_boundary(
    path: str = config.BOUNDARY_PATH,
    state: str = config.STATE,
    layer: Optional[str] = config.BOUNDARY_LAYER,
) -> BaseGeometry:
    """
    Read a states layer and return one state's outline in EPSG:4326.

    Args:
        path: Any source geopandas can read (GeoJSON, TopoJSON, shapefile, URL)
        state: FIPS code ("34"), postal abbreviation ("NJ") or name ("New Jersey")
        layer: Layer name for multi-layer sources such as TopoJSON; pass
            None for single-layer files

    Returns:
        Polygon or MultiPolygon of the state
    """
    logger.info("Loading reference boundary for %s from %s", state, path)
    gdf = gpd.read_file(path, layer=layer) if layer else gpd.read_file(path)
    if gdf.crs is not None and gdf.crs != H3_CRS:
        gdf = gdf.to_crs(H3_CRS)

    selected = select_state(gdf, state)
    geoms = clean_polygons(selected)
    if geoms.empty:
        raise ValueError(f"State {state!r} has no polygon geometry in {path}")
    outline = shapely.union_all(list(geoms))
    logger.info("Reference boundary bounds: %s", Bounds.from_geometry(outline).to_param(4))
    return outline


def boundary_bounds(geom: BaseGeometry) -> Bounds:
    return Bounds.from_geometry(geom)
