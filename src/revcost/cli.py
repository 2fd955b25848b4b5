"""CLI entry point for revcost."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table as RichTable

from revcost import DEFAULT_OUTLIER_THRESHOLD, __version__
from revcost.io import find_dataset_files, load_table, sha256_file, utcnow_iso, write_json
from revcost.models import (
    DatasetKind,
    InsufficientDataError,
    OutlierReport,
    RunManifest,
    SourceSelection,
    TableReport,
)
from revcost.outliers import compute_outlier_report, format_outlier_lines
from revcost.periods import parse_period
from revcost.reshape import prepare_chart_data
from revcost.tables import available_periods, clean_table

app = typer.Typer(
    name="revcost",
    help="revcost — Chart-ready revenue/cost series and outlier reports from spreadsheets.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

Datasets = dict[DatasetKind, list[dict[str, Any]]]


class NumberLocaleOption(str, Enum):
    auto = "auto"
    us = "us"
    eu = "eu"


class KindOption(str, Enum):
    revenue = "revenue"
    cost = "cost"
    all = "all"

    def kinds(self) -> list[DatasetKind]:
        if self is KindOption.all:
            return list(DatasetKind)
        return [DatasetKind(self.value)]


class InputError(ValueError):
    """An input file that cannot be used; reported with exit code 2."""


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"revcost v{__version__}")
        raise typer.Exit()


# ── Helpers ──────────────────────────────────────────────────────


def _load_datasets(
    paths: dict[DatasetKind, Path], echo: Callable[..., None]
) -> tuple[Datasets, dict[DatasetKind, TableReport]]:
    tables: Datasets = {}
    reports: dict[DatasetKind, TableReport] = {}
    for kind, path in paths.items():
        echo(f"[blue]>[/blue] Loading {kind.value} data from {path.name} …")
        table, report = clean_table(load_table(path), kind)
        if report.missing_columns:
            raise InputError(
                f"{kind.value.capitalize()} file {path.name} is missing column(s): "
                f"{', '.join(report.missing_columns)}"
            )
        if report.rows_out == 0:
            raise InputError(
                f"{kind.value.capitalize()} file {path.name} has no usable rows"
                + (f" ({report.warnings[0]})" if report.warnings else "")
            )
        for warning in report.warnings:
            echo(f"  [yellow]![/yellow] {kind.value}: {escape(warning)}")
        echo(f"  {report.rows_out} sources x {len(report.periods)} periods")
        tables[kind] = table
        reports[kind] = report
    return tables, reports


def _write_manifest(
    out_dir: Path,
    command: str,
    paths: dict[DatasetKind, Path],
    created_at: str,
    *,
    status: str = "success",
    error_code: int | None = None,
    error_message: str = "",
) -> Path:
    inputs: dict[str, dict[str, str]] = {}
    for kind, path in paths.items():
        try:
            digest = sha256_file(path)
        except OSError:
            digest = ""
        inputs[kind.value] = {"path": str(path.resolve()), "sha256": digest}

    manifest = RunManifest(
        version=__version__,
        command=command,
        created_at_utc=created_at,
        inputs=inputs,
        output_dir=str(out_dir.resolve()),
        status=status,
        error_code=error_code,
        error_message=error_message,
    )
    return write_json(out_dir / "run_manifest.json", manifest.to_dict())


def _fail(
    out_dir: Path,
    command: str,
    paths: dict[DatasetKind, Path],
    created_at: str,
    message: str,
    *,
    code: int,
) -> NoReturn:
    manifest_path = _write_manifest(
        out_dir,
        command,
        paths,
        created_at,
        status="failed",
        error_code=code,
        error_message=message,
    )
    _err(message)
    console.print(f"  Manifest -> {manifest_path}")
    raise typer.Exit(code=code)


def _resolve_selection(
    tables: Datasets,
    revenue_periods: list[str] | None,
    cost_periods: list[str] | None,
    *,
    all_periods: bool,
    echo: Callable[..., None],
) -> SourceSelection:
    requested = {
        DatasetKind.revenue: revenue_periods or [],
        DatasetKind.cost: cost_periods or [],
    }
    chosen: dict[str, list[str]] = {}
    for kind, table in tables.items():
        offered = available_periods(table)
        picks = offered if all_periods else requested[kind]
        unknown = [p for p in picks if p not in offered]
        for period in unknown:
            echo(f"  [yellow]![/yellow] {kind.value}: period {period!r} not in the file")
        chosen[kind.value] = picks
    return SourceSelection(revenue=chosen["revenue"], cost=chosen["cost"])


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """revcost CLI."""


def _files_argument() -> Any:
    return typer.Argument(
        ...,
        help="Revenue and cost files (.csv/.xlsx/.xls); names must contain 'revenue' and 'cost'.",
        exists=True,
        readable=True,
        dir_okay=False,
    )


# ── periods command ──────────────────────────────────────────────


@app.command()
def periods(
    files: list[Path] = _files_argument(),
    dayfirst: bool = typer.Option(
        False,
        "--dayfirst/--monthfirst",
        help="Date parsing mode for ambiguous period labels like 01/02/2024.",
    ),
) -> None:
    """List the selectable period columns of both datasets."""
    try:
        paths = find_dataset_files(files)
        tables, _reports = _load_datasets(paths, _noop)
    except (FileNotFoundError, ValueError, OSError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    for kind, table in tables.items():
        tbl = RichTable(title=f"{kind.value.capitalize()} periods ({paths[kind].name})")
        tbl.add_column("Period", style="bold")
        tbl.add_column("Parsed as")
        for label in available_periods(table):
            parsed = parse_period(label, dayfirst=dayfirst)
            shown = parsed.date().isoformat() if parsed else "[yellow]unparsed[/yellow]"
            tbl.add_row(label, shown)
        console.print(tbl)


# ── chart command ────────────────────────────────────────────────


@app.command()
def chart(
    files: list[Path] = _files_argument(),
    revenue_periods: list[str] | None = typer.Option(
        None, "--revenue-period", "-r",
        help="Revenue period column to plot (repeatable).",
    ),
    cost_periods: list[str] | None = typer.Option(
        None, "--cost-period", "-c",
        help="Cost period column to plot (repeatable).",
    ),
    all_periods: bool = typer.Option(
        False, "--all-periods",
        help="Plot every period column of both datasets.",
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for chart_data.json + manifest.",
    ),
    dayfirst: bool = typer.Option(
        False,
        "--dayfirst/--monthfirst",
        help="Date parsing mode for ambiguous period labels like 01/02/2024.",
    ),
    number_locale: NumberLocaleOption = typer.Option(
        NumberLocaleOption.auto,
        "--number-locale",
        help="Numeric parsing mode: auto, us, or eu.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes all artifacts.",
    ),
) -> None:
    """Build the merged, month-ordered chart series."""
    echo = _printer(quiet)
    created_at = utcnow_iso()
    out_dir.mkdir(parents=True, exist_ok=True)
    paths: dict[DatasetKind, Path] = {}
    try:
        paths = find_dataset_files(files)
        tables, table_reports = _load_datasets(paths, echo)
    except (FileNotFoundError, ValueError, OSError) as exc:
        _fail(out_dir, "chart", paths, created_at, str(exc), code=2)

    try:
        selection = _resolve_selection(
            tables, revenue_periods, cost_periods, all_periods=all_periods, echo=echo
        )
        if not selection.revenue and not selection.cost:
            echo("  [yellow]![/yellow] No periods selected; the chart will be empty")

        echo("[blue]>[/blue] Reshaping …")
        records, reshape_reports = prepare_chart_data(
            tables[DatasetKind.revenue],
            tables[DatasetKind.cost],
            selection,
            number_locale=number_locale.value,
            dayfirst=dayfirst,
        )
        for kind, report in reshape_reports.items():
            for warning in report.warnings:
                echo(f"  [yellow]![/yellow] {kind}: {escape(warning)}")

        payload = {
            "selection": selection.to_dict(),
            "records": records,
            "diagnostics": {kind: r.to_dict() for kind, r in reshape_reports.items()},
            "tables": {kind.value: r.to_dict() for kind, r in table_reports.items()},
        }
        chart_path = write_json(out_dir / "chart_data.json", payload, sort_keys=False)
        echo(f"  Chart data -> {chart_path}")
        manifest_path = _write_manifest(out_dir, "chart", paths, created_at)
        echo(f"  Manifest   -> {manifest_path}")

        if not quiet:
            console.print(Panel(
                f"[green]Done[/green] — {len(records)} records -> {chart_path}",
                title="Chart Data", border_style="green",
            ))
    except typer.Exit:
        raise
    except Exception as exc:
        _fail(out_dir, "chart", paths, created_at, f"Unexpected internal error: {exc}", code=1)


# ── outliers command ─────────────────────────────────────────────


@app.command()
def outliers(
    files: list[Path] = _files_argument(),
    kind: KindOption = typer.Option(
        KindOption.all, "--kind", "-k",
        help="Dataset to scan: revenue, cost, or all.",
    ),
    threshold: float = typer.Option(
        DEFAULT_OUTLIER_THRESHOLD, "--threshold", "-t",
        min=0.0,
        help="Flag values more than this many standard deviations from the mean.",
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for outliers.json + manifest.",
    ),
    number_locale: NumberLocaleOption = typer.Option(
        NumberLocaleOption.auto,
        "--number-locale",
        help="Numeric parsing mode: auto, us, or eu.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes all artifacts.",
    ),
) -> None:
    """Find values far from their dataset's mean.

    Writes outliers.json, replacing any earlier result.
    Exit 0 = OK, exit 2 = bad input or not enough numeric data.
    """
    echo = _printer(quiet)
    created_at = utcnow_iso()
    out_dir.mkdir(parents=True, exist_ok=True)
    paths: dict[DatasetKind, Path] = {}
    try:
        paths = find_dataset_files(files)
        tables, _table_reports = _load_datasets(paths, echo)
    except (FileNotFoundError, ValueError, OSError) as exc:
        _fail(out_dir, "outliers", paths, created_at, str(exc), code=2)

    try:
        results: dict[str, Any] = {}
        reports: dict[DatasetKind, OutlierReport] = {}
        errors: list[str] = []
        for dataset in kind.kinds():
            echo(f"[blue]>[/blue] Scanning {dataset.value} …")
            try:
                report = compute_outlier_report(
                    tables[dataset],
                    dataset,
                    threshold=threshold,
                    number_locale=number_locale.value,
                )
            except InsufficientDataError as exc:
                errors.append(f"{dataset.value}: {exc}")
                results[dataset.value] = {"kind": dataset.value, "error": str(exc)}
                continue
            reports[dataset] = report
            results[dataset.value] = report.to_dict()
            echo(
                f"  mean={report.mean:g} std_dev={report.std_dev:g} "
                f"-> {len(report.outliers)} outlier(s)"
            )
            if report.skipped_cells:
                echo(
                    f"  [yellow]![/yellow] {report.skipped_cells} non-numeric cell(s) "
                    "counted as 0 in the statistics and not flagged"
                )

        outliers_path = write_json(out_dir / "outliers.json", results)
        echo(f"  Outliers -> {outliers_path}")

        lines = [
            line
            for dataset, report in reports.items()
            for line in format_outlier_lines(dataset, report.outliers)
        ]
        if lines:
            console.print(Panel(
                escape("\n".join(lines)), title="Outliers Detected", border_style="yellow",
            ))
        elif not quiet and reports:
            console.print("  [green]No outliers found[/green]")

        if errors:
            _fail(out_dir, "outliers", paths, created_at, "; ".join(errors), code=2)

        manifest_path = _write_manifest(out_dir, "outliers", paths, created_at)
        echo(f"  Manifest -> {manifest_path}")
    except typer.Exit:
        raise
    except Exception as exc:
        _fail(
            out_dir, "outliers", paths, created_at,
            f"Unexpected internal error: {exc}", code=1,
        )
