"""Outlier detection — flag cells far from the dataset-wide mean."""

from __future__ import annotations

from collections.abc import Iterable

import pandas as pd

from revcost import DEFAULT_OUTLIER_THRESHOLD, SOURCE_KEY
from revcost.coercion import NumberLocale, parse_number
from revcost.models import (
    DatasetKind,
    InsufficientDataError,
    OutlierEntry,
    OutlierReport,
    Table,
    validate_threshold,
)

_Cell = tuple[str, str, float | None]


def _parse_cells(table: Table, *, locale: NumberLocale) -> list[_Cell]:
    if len(table) == 0:
        raise InsufficientDataError("Cannot detect outliers: table has no rows")
    cells: list[_Cell] = []
    for row in table:
        source = str(row.get(SOURCE_KEY, ""))
        for period, raw in row.items():
            if period != SOURCE_KEY:
                cells.append((source, period, parse_number(raw, locale=locale)))
    if all(value is None for _source, _period, value in cells):
        raise InsufficientDataError("Cannot detect outliers: table has no numeric values")
    return cells


def _mean_and_std(cells: list[_Cell]) -> tuple[float, float]:
    # Non-numeric cells weigh in as 0, the same way the chart plots them.
    values = pd.Series(
        [0.0 if value is None else value for _source, _period, value in cells],
        dtype="float64",
    )
    return float(values.mean()), float(values.std(ddof=0))


def _flag(cells: list[_Cell], mean: float, limit: float) -> list[OutlierEntry]:
    # Non-numeric cells are never flagged.
    return [
        OutlierEntry(source=source, month=period, value=value)
        for source, period, value in cells
        if value is not None and abs(value - mean) > limit
    ]


def detect_outliers(
    table: Table,
    *,
    threshold: float = DEFAULT_OUTLIER_THRESHOLD,
    number_locale: NumberLocale = "auto",
) -> list[OutlierEntry]:
    """Return the cells of *table* more than *threshold* std-devs from the mean.

    The mean and population standard deviation span every source and every
    period of the table. Entries come back in row-then-column order.

    Raises
    ------
    InsufficientDataError
        If *table* has no rows or not a single numeric cell.
    ValueError
        If *threshold* is negative or not finite.
    """
    threshold = validate_threshold(threshold)
    cells = _parse_cells(table, locale=number_locale)
    mean, std_dev = _mean_and_std(cells)
    return _flag(cells, mean, threshold * std_dev)


def compute_outlier_report(
    table: Table,
    kind: DatasetKind | str,
    *,
    threshold: float = DEFAULT_OUTLIER_THRESHOLD,
    number_locale: NumberLocale = "auto",
) -> OutlierReport:
    """Like :func:`detect_outliers`, but keep the statistics alongside the entries."""
    threshold = validate_threshold(threshold)
    cells = _parse_cells(table, locale=number_locale)
    mean, std_dev = _mean_and_std(cells)
    return OutlierReport(
        kind=kind,
        threshold=threshold,
        mean=mean,
        std_dev=std_dev,
        values_count=len(cells),
        skipped_cells=sum(1 for _source, _period, value in cells if value is None),
        outliers=_flag(cells, mean, threshold * std_dev),
    )


def _format_value(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def format_outlier_lines(
    kind: DatasetKind | str, entries: Iterable[OutlierEntry]
) -> list[str]:
    """Render entries as alert lines, e.g. ``Revenue outlier: A - Jan: 100``."""
    label = DatasetKind(kind).value.capitalize()
    return [
        f"{label} outlier: {e.source} - {e.month}: {_format_value(e.value)}"
        for e in entries
    ]
