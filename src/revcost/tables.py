"""Turn loaded sheets into Tables — pure functions, no I/O."""

from __future__ import annotations

import re
from collections import Counter
from typing import Any

import pandas as pd

from revcost import SOURCE_KEY
from revcost.models import DatasetKind, Row, Table, TableReport

# pandas names blank header cells "Unnamed: 3".
_UNNAMED_RE = re.compile(r"^Unnamed: \d+$")


def _normalize_header(name: object) -> str:
    text = " ".join(str(name).split())
    return "" if _UNNAMED_RE.fullmatch(text) else text


def _cell(value: Any) -> Any:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        # Array-like cells have no single NA answer; keep them as-is.
        return value
    item = getattr(value, "item", None)
    if callable(item) and not isinstance(value, str):
        return item()
    return value


def clean_table(
    df: pd.DataFrame, kind: DatasetKind | str | None = None
) -> tuple[list[dict[str, Any]], TableReport]:
    """Convert a loaded sheet into a Table of row dicts.

    Returns ``(rows, report)``. Headers are trimmed, the ``Source`` column is
    matched case-insensitively, blank-header columns are dropped and rows
    without a source name are dropped. Missing cells become ``None``.
    If there is no ``Source`` column the returned table is empty and the
    report lists it under ``missing_columns``.
    """
    report = TableReport(kind=kind, rows_in=len(df), rows_out=len(df), dropped_rows=0)

    def _fail(message: str) -> tuple[list[dict[str, Any]], TableReport]:
        report.warnings.append(message)
        report.rows_out = 0
        report.dropped_rows = report.rows_in
        return [], report

    headers = [_normalize_header(c) for c in df.columns]
    source_cols = [h for h in headers if h.lower() == SOURCE_KEY.lower()]
    if not source_cols:
        report.missing_columns = [SOURCE_KEY]
        return _fail(f"Missing required column: {SOURCE_KEY}")
    if len(source_cols) > 1:
        return _fail(f"Found {len(source_cols)} {SOURCE_KEY} columns; keep only one")

    headers = [SOURCE_KEY if h.lower() == SOURCE_KEY.lower() else h for h in headers]
    blank = headers.count("")
    if blank:
        suffix = "" if blank == 1 else "s"
        report.warnings.append(f"Ignored {blank} column{suffix} with a blank header")

    duplicates = sorted(h for h, n in Counter(headers).items() if h and n > 1)
    if duplicates:
        return _fail(f"Duplicate period columns after normalization: {', '.join(duplicates)}")

    df = df.copy()
    df.columns = pd.Index(headers)
    df = df.loc[:, [bool(h) for h in headers]]
    report.periods = [h for h in df.columns if h != SOURCE_KEY]

    rows: list[dict[str, Any]] = []
    for record in df.to_dict(orient="records"):
        source = _cell(record[SOURCE_KEY])
        source = "" if source is None else str(source).strip()
        if not source:
            continue
        row: dict[str, Any] = {SOURCE_KEY: source}
        for period in report.periods:
            row[period] = _cell(record[period])
        rows.append(row)

    dropped = report.rows_in - len(rows)
    if dropped:
        report.warnings.append(f"Dropped {dropped} rows without a {SOURCE_KEY} name")

    repeated = sorted(s for s, n in Counter(r[SOURCE_KEY] for r in rows).items() if n > 1)
    if repeated:
        report.warnings.append(
            f"Duplicate {SOURCE_KEY} names (later rows win on the chart): {', '.join(repeated)}"
        )

    report.rows_out = len(rows)
    report.dropped_rows = report.rows_in - report.rows_out
    if not rows:
        report.warnings.append("Table is empty — no rows with a source name remain")
    return rows, report


def available_periods(table: Table) -> list[str]:
    """Return the selectable period columns, taken from the first row."""
    if len(table) == 0:
        return []
    first: Row = table[0]
    return [str(key) for key in first if key != SOURCE_KEY and str(key).strip()]
