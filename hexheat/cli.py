"""
Command line entry point.

    hexheat validate [cells.json]
    hexheat fetch --zoom 6.2 --out nj_heatmap.geojson
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Optional, Sequence

from . import config
from .features import feature_collection
from .h3_utils import check_resolution
from .lod import clamp_zoom
from .pipeline import HeatmapPipeline, Status, ViewportQuery
from .query import Bounds, HeatmapClient
from .region import RegionMaskCache, load_state_boundary
from .validation import summarize, validate_records


def _load_records(path: Optional[str]):
    if path:
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)
    if os.path.exists("cells.json"):
        with open("cells.json", "r", encoding="utf-8") as fh:
            return json.load(fh)
    return list(config.FALLBACK_ROWS)


def cmd_validate(args: argparse.Namespace) -> int:
    try:
        records = _load_records(args.path)
    except (OSError, ValueError) as exc:
        print(f"[error] Could not read records: {exc}")
        return 1
    report = validate_records(records)
    stats = summarize(report)
    print(f"Validated {stats['total']} items -> ok={stats['ok']}, closed={stats['closed']}, bad={stats['bad']}")
    issues = report[~report["ok"]]
    if not issues.empty:
        print("Issues:", json.dumps(issues.head(10).to_dict(orient="records"), indent=2))
    return 0 if stats["bad"] == 0 else 1


def cmd_fetch(args: argparse.Namespace) -> int:
    try:
        bounds = Bounds.from_param(args.bbox) if args.bbox else None
        resolution = check_resolution(args.resolution) if args.resolution is not None else None
        check_resolution(args.mask_ceiling)
    except ValueError as exc:
        print(f"[error] {exc}")
        return 1

    boundary = None
    if not args.no_mask:
        try:
            boundary = load_state_boundary(args.boundary, args.state, layer=args.layer or None)
        except (OSError, ValueError) as exc:
            print(f"[error] Could not load reference boundary: {exc}")
            return 1

    pipeline = HeatmapPipeline(
        client=HeatmapClient(api_host=args.api_host, timeout=args.timeout),
        mask_cache=RegionMaskCache(boundary, ceiling=args.mask_ceiling),
        use_fallback=args.fallback,
    )
    query = ViewportQuery(
        metric=args.metric,
        bucket=args.bucket,
        at=args.at,
        zoom=clamp_zoom(args.zoom),
        bounds=bounds,
        resolution=resolution,
    )
    result = pipeline.run(query)
    if result.status is Status.FAILED:
        print(f"[warn] Heatmap fetch failed: {result.reason}")
    if result.features or result.status is not Status.FAILED:
        collection = feature_collection(
            result.features,
            domain=list(result.domain),
            resolution=result.resolution,
            status=result.status.value,
        )
        with open(args.out, "w", encoding="utf-8") as fh:
            json.dump(collection, fh)
        print(f"[info] Wrote {len(result.features)} features (r{result.resolution}) to {args.out}")
    return 0 if result.ok else 2


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="H3 heatmap viewer core tools")
    ap.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...).")
    sub = ap.add_subparsers(dest="command", required=True)

    val = sub.add_parser("validate", help="Check cell records resolve to valid H3 boundaries")
    val.add_argument("path", nargs="?", help="JSON list of cell records (default: ./cells.json or built-in samples)")
    val.set_defaults(func=cmd_validate)

    fetch = sub.add_parser("fetch", help="Fetch one heatmap view and write it as GeoJSON")
    fetch.add_argument("--metric", default=config.DEFAULT_METRIC)
    fetch.add_argument("--bucket", default=config.DEFAULT_BUCKET, choices=config.BUCKETS)
    fetch.add_argument("--at", default=config.DEFAULT_AT, help="As-of date (YYYY-MM-DD)")
    fetch.add_argument("--zoom", type=float, default=config.START_ZOOM)
    fetch.add_argument("--resolution", type=int, help="Force an H3 resolution instead of deriving it from --zoom")
    fetch.add_argument("--bbox", help="south,west,north,east (default: reference region bbox)")
    fetch.add_argument("--out", required=True, help="Output GeoJSON path")
    fetch.add_argument("--api-host", default=config.API_HOST)
    fetch.add_argument("--timeout", type=float, default=config.REQUEST_TIMEOUT)
    fetch.add_argument("--boundary", default=config.BOUNDARY_PATH, help="States layer (GeoJSON/TopoJSON/shapefile)")
    fetch.add_argument("--layer", default=config.BOUNDARY_LAYER, help="Layer name inside --boundary ('' for none)")
    fetch.add_argument("--state", default=config.STATE, help="FIPS code, postal abbreviation or name")
    fetch.add_argument("--mask-ceiling", type=int, default=config.MASK_CEILING)
    fetch.add_argument("--no-mask", action="store_true", help="Skip the reference region mask")
    fetch.add_argument("--fallback", action="store_true", default=config.USE_FALLBACK,
                       help="Render the built-in sample cells when the backend fails")
    fetch.set_defaults(func=cmd_fetch)
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO))
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
