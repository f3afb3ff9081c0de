"""
Test Heatmap Pipeline and Viewport Controller

End to end with a stand-in backend: resolution choice, masking, caching,
the tri-state outcome and generation ordering.
"""
import threading

import h3
import pytest

from hexheat.errors import FetchError
from hexheat.features import build_hex_feature
from hexheat.pipeline import (
    DomainTracker,
    HeatmapPipeline,
    HeatmapResult,
    Status,
    ViewportController,
    ViewportQuery,
)
from hexheat.query import Bounds, CancelToken
from hexheat.region import RegionMaskCache

from conftest import CENTER_CELL, FakeClient


def make_pipeline(client, boundary=None, **kwargs):
    return HeatmapPipeline(client=client, mask_cache=RegionMaskCache(boundary), **kwargs)


class TestHeatmapPipeline:
    def test_masked_end_to_end(self, region, sample_rows, far_cell):
        client = FakeClient(rows=sample_rows + [{"h3Index": far_cell, "value": 99.0}])
        pipeline = make_pipeline(client, region)

        result = pipeline.run(ViewportQuery(resolution=9))

        assert result.status is Status.OK
        assert result.ok
        assert [f.id for f in result.features] == [r["h3Index"] for r in sample_rows]
        assert result.domain == (1.2, 4.5)
        assert result.resolution == 9
        assert not result.from_cache

    def test_zoom_picks_resolution(self, fake_client):
        pipeline = make_pipeline(fake_client)
        result = pipeline.run(ViewportQuery(zoom=6.2))
        assert result.resolution == 8
        assert fake_client.calls[0].resolution == 8

    def test_unmasked_when_no_boundary(self, fake_client):
        result = make_pipeline(fake_client).run(ViewportQuery(resolution=9))
        assert len(result.features) == 3

    def test_finer_than_ceiling_masks_through_parents(self, region):
        children = sorted(h3.cell_to_children(CENTER_CELL, 10))[:3]
        client = FakeClient(rows=[[c, i] for i, c in enumerate(children)])
        pipeline = make_pipeline(client, region)

        result = pipeline.run(ViewportQuery(resolution=10))

        assert [f.id for f in result.features] == children
        assert pipeline.mask_cache.builds_by_resolution[10] == 0

    def test_repeat_query_is_served_from_cache(self, fake_client):
        pipeline = make_pipeline(fake_client)
        query = ViewportQuery(resolution=9, bounds=Bounds(37.7, -122.5, 37.8, -122.4))

        first = pipeline.run(query)
        second = pipeline.run(ViewportQuery(resolution=9, bounds=Bounds(37.70001, -122.5, 37.8, -122.40002)))

        assert len(fake_client.calls) == 1
        assert not first.from_cache
        assert second.from_cache
        assert second.features == first.features

    def test_new_date_fetches_again(self, fake_client):
        pipeline = make_pipeline(fake_client)
        pipeline.run(ViewportQuery(resolution=9, at="2025-09-08"))
        pipeline.run(ViewportQuery(resolution=9, at="2025-09-09"))
        pipeline.run(ViewportQuery(resolution=9, at="2025-09-08"))
        assert [k.at for k in fake_client.calls] == ["2025-09-08", "2025-09-09"]

    def test_failure_has_a_reason(self):
        client = FakeClient(error=FetchError("HTTP 503"))
        pipeline = make_pipeline(client, use_fallback=False)
        result = pipeline.run(ViewportQuery(resolution=9))

        assert result.status is Status.FAILED
        assert not result.ok
        assert result.reason == "HTTP 503"
        assert result.features == ()
        assert not result.degraded
        # failures are not cached
        assert len(pipeline.query_cache) == 0

    def test_failure_with_fallback(self):
        client = FakeClient(error=FetchError("HTTP 503"))
        result = make_pipeline(client, use_fallback=True).run(ViewportQuery(resolution=9))

        assert result.status is Status.FAILED
        assert result.degraded
        assert len(result.features) == 5
        assert result.domain == (1.2, 4.5)

    def test_cancelled_token_is_not_cached(self, fake_client):
        pipeline = make_pipeline(fake_client)
        token = CancelToken()
        token.cancel()

        result = pipeline.run(ViewportQuery(resolution=9), token=token)

        assert result.status is Status.CANCELLED
        assert len(pipeline.query_cache) == 0

    def test_cancelled_mid_fetch_is_not_cached(self, sample_rows):
        token = CancelToken()

        class CancellingClient(FakeClient):
            def fetch(self, key, bounds=None, token=None):
                rows = super().fetch(key, bounds=bounds, token=token)
                token.cancel()
                return rows

        pipeline = make_pipeline(CancellingClient(rows=sample_rows))
        result = pipeline.run(ViewportQuery(resolution=9), token=token)

        assert result.status is Status.CANCELLED
        assert result.features == ()
        assert len(pipeline.query_cache) == 0

    def test_resolution_out_of_range(self, fake_client):
        with pytest.raises(ValueError):
            make_pipeline(fake_client).run(ViewportQuery(resolution=16))
        assert fake_client.calls == []

    def test_viewport_outside_envelope(self, fake_client):
        result = make_pipeline(fake_client).run(
            ViewportQuery(resolution=7, bounds=Bounds(48.0, 2.0, 49.0, 3.0))
        )
        assert result.status is Status.EMPTY
        assert result.ok
        assert fake_client.calls == []

    def test_empty_response(self):
        result = make_pipeline(FakeClient(rows=[])).run(ViewportQuery(resolution=9))
        assert result.status is Status.EMPTY
        assert result.domain == (0.0, 1.0)

    def test_bad_rows_are_counted(self, sample_rows):
        rows = sample_rows + [{"h3Index": "garbage", "value": 1}, ["8928308280fffff", float("nan")]]
        result = make_pipeline(FakeClient(rows=rows)).run(ViewportQuery(resolution=9))
        assert len(result.features) == 3
        assert result.dropped == 2

    def test_default_bounds_follow_boundary(self, region, fake_client):
        pipeline = make_pipeline(fake_client, region)
        pipeline.run(ViewportQuery(resolution=9))
        west, south, east, north = region.bounds
        assert fake_client.calls[0].bbox == Bounds(south, west, north, east).to_param(3)


class TestDomainTracker:
    def result(self, lo, hi):
        feature = build_hex_feature(CENTER_CELL, lo)
        return HeatmapResult(Status.OK, features=(feature,), domain=(lo, hi))

    def test_widens_within_scope(self):
        tracker = DomainTracker()
        scope = ("price", "day", "2025-09-08")
        assert tracker.update(scope, self.result(2, 5)) == (2, 5)
        assert tracker.update(scope, self.result(3, 4)) == (2, 5)
        assert tracker.update(scope, self.result(1, 6)) == (1, 6)

    def test_new_scope_resets(self):
        tracker = DomainTracker()
        tracker.update(("price", "day", "a"), self.result(2, 5))
        assert tracker.update(("price", "week", "a"), self.result(3, 4)) == (3, 4)

    def test_empty_result_keeps_domain(self):
        tracker = DomainTracker()
        scope = ("price", "day", "a")
        tracker.update(scope, self.result(2, 5))
        assert tracker.update(scope, HeatmapResult(Status.EMPTY)) == (2, 5)


class TestViewportController:
    def test_only_latest_generation_is_applied(self, sample_rows):
        gate = threading.Event()
        slow = FakeClient(rows=sample_rows, gate=gate)
        applied = []
        pipeline = make_pipeline(slow)

        with ViewportController(pipeline, settle_seconds=0, on_result=applied.append) as controller:
            first = controller.submit(ViewportQuery(metric="price", resolution=9))
            second = controller.submit(ViewportQuery(metric="rent", resolution=9))
            gate.set()
            newer = second.result(timeout=5)
            older = first.result(timeout=5)

        assert newer.status is Status.OK
        assert newer.generation == 2
        assert older.status is Status.CANCELLED
        assert applied == [newer]
        assert controller.latest is newer

    def test_settle_delay_skips_superseded_queries(self, fake_client):
        with ViewportController(make_pipeline(fake_client), settle_seconds=0.5) as controller:
            futures = [controller.submit(ViewportQuery(resolution=9, zoom=z)) for z in (4.0, 4.5, 5.0)]
            results = [f.result(timeout=5) for f in futures]

        assert [r.status for r in results] == [Status.CANCELLED, Status.CANCELLED, Status.OK]
        assert len(fake_client.calls) == 1

    def test_pipeline_exception_becomes_failed(self):
        class Broken(FakeClient):
            def fetch(self, key, bounds=None, token=None):
                raise RuntimeError("boom")

        with ViewportController(make_pipeline(Broken()), settle_seconds=0) as controller:
            result = controller.submit(ViewportQuery(resolution=9)).result(timeout=5)
        assert result.status is Status.FAILED
        assert result.reason == "boom"

    def test_domain_tracks_applied_results(self, fake_client):
        with ViewportController(make_pipeline(fake_client), settle_seconds=0) as controller:
            controller.submit(ViewportQuery(resolution=9)).result(timeout=5)
        assert controller.domain.domain == (1.2, 4.5)
