"""
HTTP client for the heatmap backend.

The backend answers ``GET /api/v2/heatmap/h3`` with a JSON list of rows
(``[cell, value]`` tuples, cell/value objects or GeoJSON features) or a
FeatureCollection. Requests always carry a timeout and a CancelToken; a
cancelled request raises FetchCancelled even when the HTTP call itself
could not be interrupted.
"""
from __future__ import annotations

import logging
import threading
from typing import List, Optional

import requests

from .. import config
from ..errors import FetchCancelled, FetchError
from .keys import Bounds, QueryKey

logger = logging.getLogger(__name__)


class CancelToken:
    """Cooperative cancellation flag shared between a request and its owner."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds; True if cancelled meanwhile."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise FetchCancelled("superseded by a newer request")


def unwrap_rows(payload) -> List:
    """Row list from a decoded response body."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for member in ("features", "data", "rows"):
            rows = payload.get(member)
            if isinstance(rows, list):
                return rows
    raise FetchError(f"unexpected payload of type {type(payload).__name__}")


class HeatmapClient:
    def __init__(
        self,
        api_host: str = config.API_HOST,
        timeout: float = config.REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.api_host = api_host.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    @property
    def url(self) -> str:
        return f"{self.api_host}{config.HEATMAP_PATH}"

    def build_params(self, key: QueryKey, bounds: Optional[Bounds] = None) -> dict:
        return {
            "metric": key.metric,
            "resolution": str(key.resolution),
            "bucket": key.bucket,
            "at": key.at,
            "bbox": bounds.to_param() if bounds is not None else key.bbox,
        }

    def fetch(
        self,
        key: QueryKey,
        bounds: Optional[Bounds] = None,
        token: Optional[CancelToken] = None,
    ) -> List:
        """
        Fetch raw rows for a query.

        Raises:
            FetchCancelled: if ``token`` was cancelled before or during the call
            FetchError: on transport errors, non-2xx status or a bad body
        """
        token = token or CancelToken()
        token.raise_if_cancelled()
        params = self.build_params(key, bounds)
        try:
            logger.debug("GET %s %s", self.url, params)
            response = self._session.get(self.url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            token.raise_if_cancelled()
            raise FetchError(f"request failed: {exc}") from exc
        token.raise_if_cancelled()

        if not response.ok:
            raise FetchError(f"HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(f"invalid JSON body: {exc}") from exc
        rows = unwrap_rows(payload)
        logger.info("Fetched %s rows for %s", len(rows), key)
        return rows

    def close(self) -> None:
        self._session.close()
