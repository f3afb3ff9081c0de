"""
Route heterogeneous backend rows to the builder or the sanitizer.

Each row is classified once into a tagged variant:

- PolygonPayload: a GeoJSON Feature / Polygon (or anything with
  ``__geo_interface__``), handled by the sanitizer
- IdValuePair: a ``[cell, value]`` tuple or an object carrying a value and
  one of the recognized id fields, handled by the boundary builder
- Unrecognized: dropped, with a reason for the ingest report
"""
from __future__ import annotations

import logging
import numbers
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Union

from .boundary import build_hex_feature
from .cells import candidate_cell, resolve_cell_id
from .sanitize import sanitize_polygon_feature
from .schema import HexFeature, finite_value

logger = logging.getLogger(__name__)

GEOMETRY_TAGS = {"Feature", "Polygon", "MultiPolygon", "Point", "LineString",
                 "MultiPoint", "MultiLineString", "GeometryCollection"}


@dataclass(frozen=True)
class PolygonPayload:
    payload: Any


@dataclass(frozen=True)
class IdValuePair:
    cell: str
    value: Any


@dataclass(frozen=True)
class Unrecognized:
    record: Any
    reason: str


Ingested = Union[PolygonPayload, IdValuePair, Unrecognized]


def _is_geometry_mapping(record: Mapping) -> bool:
    tag = record.get("type")
    if isinstance(tag, str) and tag in GEOMETRY_TAGS:
        return True
    return isinstance(record.get("geometry"), Mapping)


def _id_value(record, has_value: bool, value) -> Ingested:
    if candidate_cell(record) is None:
        return Unrecognized(record, "missing-cell")
    cell = resolve_cell_id(record)
    if cell is None:
        return Unrecognized(record, "invalid-cell")
    if not has_value:
        return Unrecognized(record, "missing-value")
    return IdValuePair(cell, value)


def classify_record(record) -> Ingested:
    if isinstance(record, HexFeature):
        return PolygonPayload(record)

    if isinstance(record, Mapping):
        if _is_geometry_mapping(record):
            return PolygonPayload(record)
        return _id_value(record, "value" in record, record.get("value"))

    if isinstance(record, (list, tuple)):
        if len(record) != 2:
            return Unrecognized(record, "unsupported-shape")
        cell = resolve_cell_id(record[0])
        if cell is None:
            return Unrecognized(record, "invalid-cell")
        return IdValuePair(cell, record[1])

    if hasattr(record, "__geo_interface__"):
        return PolygonPayload(record)

    # objects exposing the id and value as attributes (ORM rows, namespaces)
    if record is None or isinstance(record, (str, bytes, numbers.Number)):
        return Unrecognized(record, "unsupported-shape")
    return _id_value(record, hasattr(record, "value"), getattr(record, "value", None))


def to_feature(item: Ingested) -> Optional[HexFeature]:
    if isinstance(item, PolygonPayload):
        return sanitize_polygon_feature(item.payload)
    if isinstance(item, IdValuePair):
        return build_hex_feature(item.cell, item.value)
    return None


@dataclass
class IngestReport:
    features: List[HexFeature] = field(default_factory=list)
    dropped: Counter = field(default_factory=Counter)

    @property
    def dropped_total(self) -> int:
        return sum(self.dropped.values())


def ingest_rows(rows: Iterable) -> IngestReport:
    """
    Convert raw rows into HexFeatures, dropping the ones that do not make it.

    Input order is preserved. A bad row never aborts the batch; it is
    counted in ``report.dropped`` under a short reason.
    """
    report = IngestReport()
    for row in rows:
        item = classify_record(row)
        if isinstance(item, Unrecognized):
            report.dropped[item.reason] += 1
            continue
        feature = to_feature(item)
        if feature is None:
            if isinstance(item, PolygonPayload):
                reason = "invalid-polygon"
            elif finite_value(item.value) is None:
                reason = "invalid-value"
            else:
                reason = "invalid-boundary"
            report.dropped[reason] += 1
            continue
        report.features.append(feature)
    if report.dropped:
        logger.debug("Dropped %s rows: %s", report.dropped_total, dict(report.dropped))
    return report
