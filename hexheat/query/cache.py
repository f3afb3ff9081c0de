"""
Process-lifetime memo of raw heatmap query results.

Entries never expire: a different metric, bucket, date, resolution or
region is simply a different key, so returning to an earlier query is
served without a backend call.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Iterable, Optional, Tuple

from ..errors import FetchCancelled
from ..inflight import InFlight
from .keys import QueryKey

logger = logging.getLogger(__name__)

Rows = Tuple


class QueryResultCache:
    def __init__(self):
        self._entries: Dict[QueryKey, Rows] = {}
        self._lock = threading.Lock()
        self._inflight = InFlight()
        self.hits = 0
        self.misses = 0
        self.fetch_count = 0

    def __contains__(self, key: QueryKey) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: QueryKey) -> Optional[Rows]:
        with self._lock:
            rows = self._entries.get(key)
            if rows is None:
                self.misses += 1
            else:
                self.hits += 1
            return rows

    def put(self, key: QueryKey, rows: Iterable) -> Rows:
        """Store a snapshot of ``rows``, replacing any previous entry."""
        snapshot = tuple(rows)
        with self._lock:
            self._entries[key] = snapshot
        return snapshot

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_or_fetch(self, key: QueryKey, fetch: Callable[[], Iterable]) -> Rows:
        """
        Cached rows for ``key``, calling ``fetch`` at most once per miss.

        Concurrent misses on the same key wait for the running fetch. A fetch
        that raises (failure or cancellation) stores nothing; a caller that
        was only waiting on a cancelled fetch runs its own.
        """
        rows = self.get(key)
        if rows is not None:
            return rows
        return self._inflight.run(key, lambda: self._fetch_and_store(key, fetch), retry_on=(FetchCancelled,))

    def _fetch_and_store(self, key: QueryKey, fetch: Callable[[], Iterable]) -> Rows:
        with self._lock:
            rows = self._entries.get(key)
            if rows is None:
                self.fetch_count += 1
        if rows is not None:
            return rows
        logger.debug("Query cache miss, fetching %s", key)
        rows = fetch()
        return self.put(key, rows)
