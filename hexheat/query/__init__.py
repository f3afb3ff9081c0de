"""
hexheat.query - Query keys, the raw-result cache and the backend client.
"""

from .keys import Bounds, LOWER48, QueryKey
from .cache import QueryResultCache
from .client import CancelToken, HeatmapClient, unwrap_rows

__all__ = [
    "Bounds",
    "LOWER48",
    "QueryKey",
    "QueryResultCache",
    "CancelToken",
    "HeatmapClient",
    "unwrap_rows",
]
