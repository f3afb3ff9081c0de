"""
Test the heatmap HTTP API
"""
import pytest
from fastapi.testclient import TestClient

from api.main import app, get_pipeline
from hexheat.errors import FetchError
from hexheat.pipeline import HeatmapPipeline
from hexheat.region import RegionMaskCache

from conftest import FakeClient


@pytest.fixture
def backend(sample_rows):
    return FakeClient(rows=sample_rows)


@pytest.fixture
def client(backend):
    pipeline = HeatmapPipeline(client=backend, mask_cache=RegionMaskCache(None), use_fallback=False)
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHeatmapApi:
    def test_health(self, client):
        assert client.get("/health").json()["ok"] is True

    def test_heatmap(self, client, backend):
        resp = client.get("/api/heatmap", params={"metric": "price", "zoom": 9.5, "bbox": "37.7,-122.5,37.8,-122.4"})
        assert resp.status_code == 200
        body = resp.json()

        assert body["type"] == "FeatureCollection"
        assert body["status"] == "ok"
        assert body["resolution"] == 10
        assert body["domain"] == [1.2, 4.5]
        assert len(body["legend"]) == 8
        assert body["cached"] is False

        feature = body["features"][0]
        assert feature["properties"] == {"id": "8928308280fffff", "value": 1.2}
        ring = feature["geometry"]["coordinates"][0]
        assert ring[0] == ring[-1]
        assert backend.calls[0].bbox == "37.700,-122.500,37.800,-122.400"

    def test_second_request_is_cached(self, client, backend):
        client.get("/api/heatmap", params={"resolution": 9})
        body = client.get("/api/heatmap", params={"resolution": 9}).json()
        assert body["cached"] is True
        assert len(backend.calls) == 1

    def test_zoom_is_clamped(self, client):
        assert client.get("/api/heatmap", params={"zoom": 1}).json()["resolution"] == 5

    def test_unknown_bucket(self, client):
        assert client.get("/api/heatmap", params={"bucket": "year"}).status_code == 400

    def test_bad_bbox(self, client):
        assert client.get("/api/heatmap", params={"bbox": "1,2,3"}).status_code == 400

    def test_resolution_out_of_range(self, client):
        assert client.get("/api/heatmap", params={"resolution": 16}).status_code == 422

    def test_backend_failure(self, client, backend):
        backend.error = FetchError("HTTP 503")
        resp = client.get("/api/heatmap", params={"resolution": 9})
        assert resp.status_code == 502
        assert "HTTP 503" in resp.json()["detail"]

    def test_outside_envelope_is_empty(self, client, backend):
        body = client.get("/api/heatmap", params={"bbox": "48,2,49,3"}).json()
        assert body["status"] == "empty"
        assert body["features"] == []
        assert backend.calls == []
