#!/usr/bin/env python3
# api/main.py

import logging
import os
from functools import lru_cache
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from hexheat import config
from hexheat.colors import PALETTE, legend_stops, to_hex
from hexheat.features import feature_collection
from hexheat.lod import clamp_zoom
from hexheat.pipeline import HeatmapPipeline, Status, ViewportQuery
from hexheat.query import Bounds, HeatmapClient
from hexheat.region import RegionMaskCache, load_state_boundary

APP_NAME = "hexheat H3 heatmap API"

logger = logging.getLogger("hexheat.api")

# ---------- Config ----------
_FRONTEND_ORIGIN = (os.environ.get("HEXHEAT_FRONTEND_ORIGIN") or "*").strip()
_MASK_ENABLED = os.environ.get("HEXHEAT_MASK", "1").strip().lower() not in {"0", "false", "no", "off"}


# ---------- Pipeline (cached for the process lifetime) ----------
@lru_cache(maxsize=1)
def get_pipeline() -> HeatmapPipeline:
    boundary = None
    if _MASK_ENABLED:
        try:
            boundary = load_state_boundary(config.BOUNDARY_PATH, config.STATE, layer=config.BOUNDARY_LAYER or None)
        except (OSError, ValueError) as exc:
            logger.warning("Reference boundary unavailable, serving unmasked results: %s", exc)
    return HeatmapPipeline(
        client=HeatmapClient(),
        mask_cache=RegionMaskCache(boundary),
        use_fallback=config.USE_FALLBACK,
    )


# ---------- FastAPI ----------
app = FastAPI(title=APP_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[_FRONTEND_ORIGIN],
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"ok": True, "app": APP_NAME}


@app.get("/api/heatmap")
def get_heatmap(
    metric: str = Query(config.DEFAULT_METRIC, description="Metric name, e.g. 'price'"),
    bucket: str = Query(config.DEFAULT_BUCKET, description="Aggregation bucket: day, week or month"),
    at: str = Query(config.DEFAULT_AT, description="As-of date, YYYY-MM-DD"),
    zoom: float = Query(config.START_ZOOM, description="Camera zoom; picks the H3 resolution"),
    resolution: Optional[int] = Query(None, ge=0, le=15, description="Force an H3 resolution"),
    bbox: Optional[str] = Query(None, description="south,west,north,east"),
    pipeline: HeatmapPipeline = Depends(get_pipeline),
):
    """
    Heatmap polygons for one viewport as a GeoJSON FeatureCollection.

    Extra members: ``status`` (ok / empty / failed), ``domain`` [min, max],
    ``legend`` colour stops, ``resolution`` and ``degraded`` when the
    built-in fallback cells stand in for a failed backend call.
    """
    if bucket not in config.BUCKETS:
        raise HTTPException(status_code=400, detail=f"Unknown bucket '{bucket}'; expected one of {list(config.BUCKETS)}")
    try:
        bounds = Bounds.from_param(bbox) if bbox else None
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    query = ViewportQuery(
        metric=metric,
        bucket=bucket,
        at=at,
        zoom=clamp_zoom(zoom),
        bounds=bounds,
        resolution=resolution,
    )
    result = pipeline.run(query)
    if result.status is Status.FAILED and not result.degraded:
        raise HTTPException(status_code=502, detail=f"Heatmap backend failed: {result.reason}")

    lo, hi = result.domain
    return feature_collection(
        result.features,
        status=result.status.value,
        reason=result.reason,
        resolution=result.resolution,
        domain=[lo, hi],
        legend=[
            {"value": v, "color": to_hex(c)}
            for v, c in zip(legend_stops(lo, hi), PALETTE)
        ],
        degraded=result.degraded,
        cached=result.from_cache,
    )


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5174))
    print(f"Starting hexheat API on http://0.0.0.0:{port}")
    print(f"Using STATE={config.STATE} backend={config.API_HOST}")
    uvicorn.run(app, host="0.0.0.0", port=port, reload=False)
