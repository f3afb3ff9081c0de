"""
Batch validation of cell records.

Checks that every record names an H3 cell whose boundary comes back as a
ring of finite vertices, and reports which raw boundaries were already
closed. Used by ``hexheat validate`` to vet backend dumps.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

import pandas as pd

from .features.cells import candidate_cell
from .h3_utils import cell_boundary, normalize_cell

REPORT_COLUMNS = ["cell", "ok", "closed", "reason"]

# Field names scanned for the cell id, in the order the validator has always used
VALIDATION_ALIASES = ("cell", "h3Index", "index", "h3", "hex", "id")


@dataclass(frozen=True)
class CellCheck:
    ok: bool
    closed: bool = False
    reason: Optional[str] = None


def _is_finite_pair(pt) -> bool:
    return (
        len(pt) == 2
        and all(isinstance(c, (int, float)) and math.isfinite(c) for c in pt)
    )


def validate_cell(cell) -> CellCheck:
    index = normalize_cell(cell)
    if index is None:
        return CellCheck(ok=False, reason="invalid-cell")
    try:
        ring = cell_boundary(index)
    except Exception as exc:  # h3 raises its own error types per version
        return CellCheck(ok=False, reason=f"exception:{exc}")
    if len(ring) < 3:
        return CellCheck(ok=False, reason="ring-too-short")
    if not all(_is_finite_pair(pt) for pt in ring):
        return CellCheck(ok=False, reason="non-finite-coords")
    return CellCheck(ok=True, closed=tuple(ring[0]) == tuple(ring[-1]))


def validate_records(records: Iterable) -> pd.DataFrame:
    """One report row per record: cell, ok, closed, reason."""
    rows = []
    for item in records:
        cell = candidate_cell(item, VALIDATION_ALIASES)
        if cell is None:
            rows.append({"cell": None, "ok": False, "closed": False, "reason": "missing-cell"})
            continue
        check = validate_cell(cell)
        rows.append({"cell": str(cell), "ok": check.ok, "closed": check.closed, "reason": check.reason})
    if not rows:
        return pd.DataFrame(columns=REPORT_COLUMNS)
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def summarize(report: pd.DataFrame) -> dict:
    ok = int(report["ok"].sum()) if len(report) else 0
    closed = int((report["ok"] & report["closed"]).sum()) if len(report) else 0
    return {"total": len(report), "ok": ok, "closed": closed, "bad": len(report) - ok}
