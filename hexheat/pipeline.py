"""
Viewport → heatmap features.

HeatmapPipeline runs one query end to end:

    zoom → resolution → region mask → query key → cache / fetch
         → ingest (builder or sanitizer) → mask filter → HeatmapResult

ViewportController sits in front of it for interactive use: every viewport
change gets a new generation and cancels the previous one, queries wait a
short settle delay, and only the newest generation's result is applied.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence, Tuple

from . import config
from .errors import FetchCancelled, FetchError
from .features import HexFeature, ingest_rows
from .h3_utils import check_resolution
from .lod import DEFAULT_LOD_TABLE, LodTable
from .query import LOWER48, Bounds, CancelToken, HeatmapClient, QueryKey, QueryResultCache
from .region import RegionMaskCache

logger = logging.getLogger(__name__)

Domain = Tuple[float, float]
EMPTY_DOMAIN: Domain = (0.0, 1.0)


class Status(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ViewportQuery:
    metric: str = config.DEFAULT_METRIC
    bucket: str = config.DEFAULT_BUCKET
    at: str = config.DEFAULT_AT
    zoom: float = config.START_ZOOM
    bounds: Optional[Bounds] = None
    # Overrides the zoom-derived resolution when set
    resolution: Optional[int] = None

    @property
    def scope(self) -> Tuple[str, str, str]:
        return (self.metric, self.bucket, str(self.at))


@dataclass(frozen=True)
class HeatmapResult:
    status: Status
    features: Tuple[HexFeature, ...] = ()
    domain: Domain = EMPTY_DOMAIN
    reason: Optional[str] = None
    resolution: Optional[int] = None
    key: Optional[QueryKey] = None
    generation: int = 0
    from_cache: bool = False
    degraded: bool = False
    dropped: int = 0

    @property
    def ok(self) -> bool:
        return self.status in (Status.OK, Status.EMPTY)


def value_domain(features: Iterable[HexFeature]) -> Domain:
    """(min, max) of feature values; (0, 1) for an empty set."""
    lo = hi = None
    for f in features:
        if lo is None or f.value < lo:
            lo = f.value
        if hi is None or f.value > hi:
            hi = f.value
    if lo is None:
        return EMPTY_DOMAIN
    return (lo, hi)


class DomainTracker:
    """
    Colour domain that only widens while metric, bucket and date stay put.

    Keeps colours stable while panning and zooming; a new scope starts over.
    """

    def __init__(self):
        self._scope = None
        self._domain: Optional[Domain] = None

    @property
    def domain(self) -> Optional[Domain]:
        return self._domain

    def reset(self) -> None:
        self._scope = None
        self._domain = None

    def update(self, scope, result: HeatmapResult) -> Domain:
        if scope != self._scope:
            self._scope = scope
            self._domain = None
        if result.features:
            lo, hi = result.domain
            if self._domain is not None:
                lo = min(lo, self._domain[0])
                hi = max(hi, self._domain[1])
            self._domain = (lo, hi)
        return self._domain or result.domain


class HeatmapPipeline:
    def __init__(
        self,
        client: Optional[HeatmapClient] = None,
        boundary=None,
        mask_cache: Optional[RegionMaskCache] = None,
        query_cache: Optional[QueryResultCache] = None,
        lod: LodTable = DEFAULT_LOD_TABLE,
        envelope: Bounds = LOWER48,
        use_fallback: bool = config.USE_FALLBACK,
        fallback_rows: Sequence = config.FALLBACK_ROWS,
    ):
        self.client = client if client is not None else HeatmapClient()
        if mask_cache is None:
            mask_cache = RegionMaskCache(boundary)
        elif boundary is not None and mask_cache.boundary is not boundary:
            mask_cache.invalidate(boundary)
        self.mask_cache = mask_cache
        self.query_cache = query_cache if query_cache is not None else QueryResultCache()
        self.lod = lod
        self.envelope = envelope
        self.use_fallback = use_fallback
        self.fallback_rows = tuple(fallback_rows)

    @property
    def boundary(self):
        return self.mask_cache.boundary

    def resolution_for(self, query: ViewportQuery) -> int:
        if query.resolution is not None:
            return check_resolution(query.resolution)
        return self.lod.select(query.zoom)

    def bounds_for(self, query: ViewportQuery) -> Bounds:
        """Query region clamped to the envelope; defaults to the boundary's bbox."""
        if query.bounds is not None:
            region = query.bounds
        elif self.boundary is not None:
            region = Bounds.from_geometry(self.boundary)
        else:
            region = self.envelope
        return region.clamp(self.envelope)

    def _fetch(self, key: QueryKey, bounds: Bounds, token: CancelToken):
        rows = self.client.fetch(key, bounds=bounds, token=token)
        # the HTTP call cannot always be interrupted; never cache a superseded answer
        token.raise_if_cancelled()
        return rows

    def run(
        self,
        query: ViewportQuery,
        token: Optional[CancelToken] = None,
        generation: int = 0,
    ) -> HeatmapResult:
        token = token or CancelToken()
        resolution = self.resolution_for(query)
        bounds = self.bounds_for(query)
        if bounds.is_empty:
            return HeatmapResult(
                Status.EMPTY, reason="viewport outside the query envelope",
                resolution=resolution, generation=generation,
            )

        mask = self.mask_cache.mask(None, resolution) if self.boundary is not None else None
        key = QueryKey.build(query.metric, query.bucket, query.at, resolution, bounds)
        from_cache = key in self.query_cache

        try:
            rows = self.query_cache.get_or_fetch(key, lambda: self._fetch(key, bounds, token))
        except FetchCancelled:
            logger.debug("Generation %s cancelled while fetching %s", generation, key)
            return HeatmapResult(Status.CANCELLED, resolution=resolution, key=key, generation=generation)
        except FetchError as exc:
            return self._failed(exc.reason, resolution, key, generation)

        if token.cancelled:
            return HeatmapResult(Status.CANCELLED, resolution=resolution, key=key, generation=generation)

        report = ingest_rows(rows)
        features = mask.filter(report.features) if mask is not None else report.features
        status = Status.OK if features else Status.EMPTY
        logger.info(
            "r%s %s: %s rows -> %s features (%s dropped, cache=%s)",
            resolution, query.metric, len(rows), len(features), report.dropped_total, from_cache,
        )
        return HeatmapResult(
            status,
            features=tuple(features),
            domain=value_domain(features),
            resolution=resolution,
            key=key,
            generation=generation,
            from_cache=from_cache,
            dropped=report.dropped_total,
        )

    def _failed(self, reason: str, resolution: int, key: QueryKey, generation: int) -> HeatmapResult:
        logger.warning("Heatmap fetch failed for %s: %s", key, reason)
        if not self.use_fallback:
            return HeatmapResult(Status.FAILED, reason=reason, resolution=resolution, key=key, generation=generation)
        features = ingest_rows(self.fallback_rows).features
        return HeatmapResult(
            Status.FAILED,
            features=tuple(features),
            domain=value_domain(features),
            reason=reason,
            resolution=resolution,
            key=key,
            generation=generation,
            degraded=True,
        )


class ViewportController:
    """
    Serializes viewport changes onto the pipeline.

    ``submit`` returns a Future for the query's HeatmapResult. A result
    whose generation is no longer the newest comes back as CANCELLED and is
    never applied, whatever order responses arrive in.
    """

    def __init__(
        self,
        pipeline: HeatmapPipeline,
        settle_seconds: float = config.SETTLE_SECONDS,
        max_workers: int = 4,
        on_result: Optional[Callable[[HeatmapResult], None]] = None,
    ):
        self.pipeline = pipeline
        self.settle_seconds = settle_seconds
        self.on_result = on_result
        self.domain = DomainTracker()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="hexheat")
        self._lock = threading.RLock()
        self._generation = 0
        self._token: Optional[CancelToken] = None
        self._latest: Optional[HeatmapResult] = None

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def latest(self) -> Optional[HeatmapResult]:
        with self._lock:
            return self._latest

    def submit(self, query: ViewportQuery) -> "Future[HeatmapResult]":
        with self._lock:
            self._generation += 1
            generation = self._generation
            if self._token is not None:
                self._token.cancel()
            token = CancelToken()
            self._token = token
        return self._executor.submit(self._run, query, token, generation)

    def _run(self, query: ViewportQuery, token: CancelToken, generation: int) -> HeatmapResult:
        if token.wait(self.settle_seconds):
            return HeatmapResult(Status.CANCELLED, reason="superseded", generation=generation)
        try:
            result = self.pipeline.run(query, token=token, generation=generation)
        except Exception as exc:
            logger.exception("Heatmap pipeline failed for generation %s", generation)
            result = HeatmapResult(Status.FAILED, reason=str(exc), generation=generation)
        return self._apply(query, result)

    def _apply(self, query: ViewportQuery, result: HeatmapResult) -> HeatmapResult:
        with self._lock:
            if result.status is Status.CANCELLED:
                return result
            if result.generation != self._generation:
                logger.debug("Discarding generation %s (latest is %s)", result.generation, self._generation)
                return replace(result, status=Status.CANCELLED, features=(), reason="superseded")
            self._latest = result
            self.domain.update(query.scope, result)
            if self.on_result is not None:
                self.on_result(result)
            return result

    def close(self) -> None:
        with self._lock:
            if self._token is not None:
                self._token.cancel()
        self._executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
