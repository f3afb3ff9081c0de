"""
Shared fixtures: a handful of real H3 cells around downtown San Francisco,
a small reference region around them, and a backend stand-in.
"""
import threading

import h3
import pytest
from shapely.geometry import Point

SAMPLE_ROWS = [
    {"h3Index": "8928308280fffff", "value": 1.2},
    {"h3Index": "8928308280bffff", "value": 2.8},
    {"h3Index": "89283082807ffff", "value": 4.5},
]

CENTER_CELL = "8928308280fffff"
# Kansas, far outside the San Francisco region
FAR_LAT, FAR_LNG = 38.5, -98.0


class FakeClient:
    """Stands in for HeatmapClient; records every fetch."""

    def __init__(self, rows=None, error=None, gate=None):
        self.rows = list(rows or [])
        self.error = error
        self.gate = gate
        self.calls = []
        self._lock = threading.Lock()

    def fetch(self, key, bounds=None, token=None):
        with self._lock:
            self.calls.append(key)
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        return list(self.rows)


@pytest.fixture
def sample_rows():
    return [dict(r) for r in SAMPLE_ROWS]


@pytest.fixture
def region():
    """~5 km radius disc centred on CENTER_CELL."""
    lat, lng = h3.cell_to_latlng(CENTER_CELL)
    return Point(lng, lat).buffer(0.05)


@pytest.fixture
def far_cell():
    return h3.latlng_to_cell(FAR_LAT, FAR_LNG, 9)


@pytest.fixture
def fake_client(sample_rows):
    return FakeClient(rows=sample_rows)
