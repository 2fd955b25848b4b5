"""CLI integration tests for revcost."""

from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from revcost import __version__
from revcost.cli import app

runner = CliRunner()


def _write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def _datasets(tmp_path: Path) -> list[Path]:
    revenue = _write(
        tmp_path,
        "company_revenue.csv",
        "Source,Jan,Feb,Mar\nAds,100,200,abc\nShop,50,60,70\n",
    )
    cost = _write(
        tmp_path,
        "annual_cost.csv",
        "Source,Jan,Feb,Mar\nRent,10,10,10\nStaff,10,10,10\n",
    )
    return [revenue, cost]


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_chart_writes_merged_records(tmp_path: Path) -> None:
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app,
        [
            "chart",
            *map(str, _datasets(tmp_path)),
            "-r", "Feb", "-r", "Mar", "-c", "Jan",
            "--out-dir", str(out_dir),
            "--quiet",
        ],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads((out_dir / "chart_data.json").read_text(encoding="utf-8"))
    assert payload["records"] == [
        {"month": "Jan", "Rent": 10.0, "Staff": 10.0},
        {"month": "Feb", "Ads": 200.0, "Shop": 60.0},
        {"month": "Mar", "Ads": 0.0, "Shop": 70.0},
    ]
    assert payload["selection"] == {"revenue": ["Feb", "Mar"], "cost": ["Jan"]}
    assert payload["diagnostics"]["revenue"]["coercion_failures"] == 1
    manifest = json.loads((out_dir / "run_manifest.json").read_text(encoding="utf-8"))
    assert manifest["status"] == "success"
    assert manifest["command"] == "chart"
    assert set(manifest["inputs"]) == {"revenue", "cost"}


def test_chart_all_periods_selects_every_column(tmp_path: Path) -> None:
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app,
        ["chart", *map(str, _datasets(tmp_path)), "--all-periods", "-o", str(out_dir), "-q"],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads((out_dir / "chart_data.json").read_text(encoding="utf-8"))
    assert [r["month"] for r in payload["records"]] == ["Jan", "Jan", "Feb", "Feb", "Mar", "Mar"]


def test_chart_without_cost_file_fails_with_manifest(tmp_path: Path) -> None:
    revenue = _write(tmp_path, "revenue.csv", "Source,Jan\nAds,1\n")
    out_dir = tmp_path / "out"

    result = runner.invoke(app, ["chart", str(revenue), "-o", str(out_dir), "-q"])

    assert result.exit_code == 2
    manifest = json.loads((out_dir / "run_manifest.json").read_text(encoding="utf-8"))
    assert manifest["status"] == "failed"
    assert "both a revenue and a cost file" in manifest["error_message"]
    assert not (out_dir / "chart_data.json").exists()


def test_chart_missing_source_column_fails(tmp_path: Path) -> None:
    revenue = _write(tmp_path, "revenue.csv", "Name,Jan\nAds,1\n")
    cost = _write(tmp_path, "cost.csv", "Source,Jan\nRent,1\n")
    out_dir = tmp_path / "out"

    result = runner.invoke(app, ["chart", str(revenue), str(cost), "-o", str(out_dir)])

    assert result.exit_code == 2
    manifest = json.loads((out_dir / "run_manifest.json").read_text(encoding="utf-8"))
    assert "missing column(s): Source" in manifest["error_message"]


def test_outliers_writes_report_for_each_kind(tmp_path: Path) -> None:
    revenue = _write(
        tmp_path,
        "revenue.csv",
        "Source,Jan,Feb,Mar,Apr,May\nA,10,10,10,10,10\nB,10,10,100,10,10\n",
    )
    cost = _write(tmp_path, "cost.csv", "Source,Jan,Feb\nRent,5,5\n")
    out_dir = tmp_path / "out"

    result = runner.invoke(app, ["outliers", str(revenue), str(cost), "-o", str(out_dir)])

    assert result.exit_code == 0, result.output
    assert "Revenue outlier: B - Mar: 100" in result.output
    data = json.loads((out_dir / "outliers.json").read_text(encoding="utf-8"))
    assert data["revenue"]["outliers"] == [{"month": "Mar", "source": "B", "value": 100.0}]
    assert data["cost"]["outliers"] == []
    assert data["cost"]["std_dev"] == 0.0


def test_outliers_single_kind_and_threshold(tmp_path: Path) -> None:
    revenue = _write(tmp_path, "revenue.csv", "Source,Jan,Feb,Mar,Apr\nA,1,2,3,10\n")
    cost = _write(tmp_path, "cost.csv", "Source,Jan\nRent,5\n")
    out_dir = tmp_path / "out"

    result = runner.invoke(
        app,
        ["outliers", str(revenue), str(cost), "--kind", "revenue", "--threshold", "1",
         "-o", str(out_dir), "-q"],
    )

    assert result.exit_code == 0, result.output
    data = json.loads((out_dir / "outliers.json").read_text(encoding="utf-8"))
    assert set(data) == {"revenue"}
    assert [e["month"] for e in data["revenue"]["outliers"]] == ["Apr"]


def test_outliers_replaces_previous_result(tmp_path: Path) -> None:
    revenue = _write(tmp_path, "revenue.csv", "Source,Jan\nA,1\n")
    cost = _write(tmp_path, "cost.csv", "Source,Jan\nRent,5\n")
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    (out_dir / "outliers.json").write_text('{"stale": true}', encoding="utf-8")

    result = runner.invoke(
        app, ["outliers", str(revenue), str(cost), "-k", "cost", "-o", str(out_dir), "-q"]
    )

    assert result.exit_code == 0, result.output
    data = json.loads((out_dir / "outliers.json").read_text(encoding="utf-8"))
    assert set(data) == {"cost"}


def test_outliers_without_numeric_values_exits_2(tmp_path: Path) -> None:
    revenue = _write(tmp_path, "revenue.csv", "Source,Jan,Feb\nA,n/a,x\n")
    cost = _write(tmp_path, "cost.csv", "Source,Jan\nRent,5\n")
    out_dir = tmp_path / "out"

    result = runner.invoke(app, ["outliers", str(revenue), str(cost), "-o", str(out_dir), "-q"])

    assert result.exit_code == 2
    data = json.loads((out_dir / "outliers.json").read_text(encoding="utf-8"))
    assert "no numeric values" in data["revenue"]["error"]
    assert data["cost"]["outliers"] == []
    manifest = json.loads((out_dir / "run_manifest.json").read_text(encoding="utf-8"))
    assert manifest["status"] == "failed"
    assert manifest["error_code"] == 2


def test_periods_lists_columns(tmp_path: Path) -> None:
    result = runner.invoke(app, ["periods", *map(str, _datasets(tmp_path))])

    assert result.exit_code == 0, result.output
    assert "Revenue" in result.output
    assert "Jan" in result.output
    assert "1900-03-01" in result.output


def test_unexpected_error_exits_1(tmp_path: Path, monkeypatch) -> None:  # type: ignore[no-untyped-def]
    import revcost.cli as cli_mod

    def _boom(*_args: object, **_kwargs: object) -> None:
        raise RuntimeError("kaboom")

    monkeypatch.setattr(cli_mod, "prepare_chart_data", _boom)
    out_dir = tmp_path / "out"

    result = runner.invoke(app, ["chart", *map(str, _datasets(tmp_path)), "-o", str(out_dir)])

    assert result.exit_code == 1
    manifest = json.loads((out_dir / "run_manifest.json").read_text(encoding="utf-8"))
    assert "kaboom" in manifest["error_message"]
