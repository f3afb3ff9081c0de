"""
Test Cell Record Validation and the command line tools
"""
import json

import pytest

from hexheat import cli
from hexheat.colors import NO_DATA, PALETTE, color_for, legend_stops, to_hex
from hexheat.validation import REPORT_COLUMNS, summarize, validate_cell, validate_records

from conftest import FakeClient


class TestValidateCell:
    def test_valid_cell(self):
        check = validate_cell("8928308280fffff")
        assert check.ok
        assert not check.closed
        assert check.reason is None

    def test_invalid_cell(self):
        assert validate_cell("nope").reason == "invalid-cell"


class TestValidateRecords:
    def test_report(self, sample_rows):
        records = sample_rows + [{"cell": "ffffffffffffffff"}, {"value": 1}, "8928308280bffff"]
        report = validate_records(records)

        assert list(report.columns) == REPORT_COLUMNS
        assert list(report["ok"]) == [True, True, True, False, False, True]
        assert list(report["reason"][3:5]) == ["invalid-cell", "missing-cell"]
        assert summarize(report) == {"total": 6, "ok": 4, "closed": 0, "bad": 2}

    def test_empty(self):
        report = validate_records([])
        assert summarize(report) == {"total": 0, "ok": 0, "closed": 0, "bad": 0}


class TestColors:
    def test_extremes_are_clamped(self):
        assert color_for(0.0, 0.0, 1.0) == PALETTE[0]
        assert color_for(1.0, 0.0, 1.0) == PALETTE[6]
        assert color_for(0.5, 0.0, 1.0) == PALETTE[3]

    def test_degenerate_domain(self):
        assert color_for(1.0, 2.0, 2.0) == NO_DATA
        assert color_for(float("nan"), 0.0, 1.0) == NO_DATA

    def test_legend(self):
        stops = legend_stops(0.0, 7.0)
        assert stops == [0.0, 1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0]
        assert to_hex((13, 8, 135)) == "#0d0887"


class TestCli:
    def test_validate_ok(self, tmp_path, capsys, sample_rows):
        path = tmp_path / "cells.json"
        path.write_text(json.dumps(sample_rows))

        assert cli.main(["validate", str(path)]) == 0
        out = capsys.readouterr().out
        assert "Validated 3 items -> ok=3, closed=0, bad=0" in out

    def test_validate_reports_bad_rows(self, tmp_path, capsys):
        path = tmp_path / "cells.json"
        path.write_text(json.dumps([{"cell": "8928308280fffff"}, {"cell": "bogus"}]))

        assert cli.main(["validate", str(path)]) == 1
        out = capsys.readouterr().out
        assert "bad=1" in out
        assert "invalid-cell" in out

    def test_validate_builtin_samples(self, tmp_path, monkeypatch, capsys):
        monkeypatch.chdir(tmp_path)
        assert cli.main(["validate"]) == 0
        assert "Validated 5 items" in capsys.readouterr().out

    def test_validate_unreadable(self, tmp_path, capsys):
        assert cli.main(["validate", str(tmp_path / "missing.json")]) == 1
        assert "[error]" in capsys.readouterr().out

    def test_fetch_writes_geojson(self, tmp_path, monkeypatch, sample_rows):
        monkeypatch.setattr(cli, "HeatmapClient", lambda **kwargs: FakeClient(rows=sample_rows))
        out = tmp_path / "heat.geojson"

        assert cli.main(["fetch", "--no-mask", "--resolution", "9", "--out", str(out)]) == 0
        collection = json.loads(out.read_text())
        assert collection["type"] == "FeatureCollection"
        assert len(collection["features"]) == 3
        assert collection["resolution"] == 9
        assert collection["domain"] == [1.2, 4.5]

    def test_bad_bucket_is_rejected(self, tmp_path):
        with pytest.raises(SystemExit):
            cli.main(["fetch", "--bucket", "year", "--out", str(tmp_path / "x.geojson")])

    @pytest.mark.parametrize(
        "extra",
        [["--bbox", "1,2,3"], ["--bbox", "a,b,c,d"], ["--resolution", "16"], ["--mask-ceiling", "-1"]],
    )
    def test_fetch_bad_arguments(self, tmp_path, capsys, monkeypatch, extra):
        client = FakeClient()
        monkeypatch.setattr(cli, "HeatmapClient", lambda **kwargs: client)
        out = tmp_path / "heat.geojson"

        assert cli.main(["fetch", "--no-mask", "--out", str(out)] + extra) == 1
        assert capsys.readouterr().out.startswith("[error]")
        assert client.calls == []
        assert not out.exists()
