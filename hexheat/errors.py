"""
Exception types raised by the query side of hexheat.

Per-record problems (bad ids, broken rings, missing values) never raise:
the builder and sanitizer return ``None`` and the record is dropped.
"""


class HeatmapError(Exception):
    """Base class for hexheat errors."""


class FetchCancelled(HeatmapError):
    """A newer viewport state superseded this fetch; not a failure."""


class FetchError(HeatmapError):
    """Transport, HTTP status or payload parse failure."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason
