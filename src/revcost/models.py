"""Data models shared by the reshaper, the outlier detector and the CLI."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from numbers import Integral, Real
from typing import Any

Row = Mapping[str, Any]
Table = Sequence[Row]
MergedRecord = dict[str, Any]

MAX_DETAILED_WARNINGS = 20
"""Per-cell warnings kept in a report before collapsing into a summary line."""


class DatasetKind(str, Enum):
    revenue = "revenue"
    cost = "cost"


class InsufficientDataError(ValueError):
    """Raised when a table holds no numeric values to compute statistics from.

    An empty outlier list means nothing unusual was found; this means the
    statistics could not be computed at all.
    """


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_float(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise TypeError(f"{field_name} must be a number")
    return float(value)


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


def _to_string_set(values: Iterable[Any] | None, field_name: str) -> frozenset[str]:
    if values is None:
        return frozenset()
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a collection of strings")
    return frozenset(_to_string_list(list(values), field_name))


def _to_kind(value: Any) -> DatasetKind:
    try:
        return DatasetKind(value)
    except ValueError:
        raise ValueError(
            f"Invalid dataset kind: {value!r}. Use revenue or cost."
        ) from None


def validate_threshold(threshold: Any) -> float:
    """Return *threshold* as a float, rejecting negative or non-finite values."""
    result = _to_float(threshold, "threshold")
    if not math.isfinite(result) or result < 0:
        raise ValueError("threshold must be a finite number >= 0")
    return result


# ── Selection ────────────────────────────────────────────────────


@dataclass(frozen=True)
class SourceSelection:
    """Period columns the caller wants plotted, per dataset kind."""

    revenue: frozenset[str] = frozenset()
    cost: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "revenue", _to_string_set(self.revenue, "revenue"))
        object.__setattr__(self, "cost", _to_string_set(self.cost, "cost"))

    def for_kind(self, kind: DatasetKind | str) -> frozenset[str]:
        return getattr(self, _to_kind(kind).value)

    def to_dict(self) -> dict[str, list[str]]:
        return {"revenue": sorted(self.revenue), "cost": sorted(self.cost)}


# ── Outliers ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class OutlierEntry:
    source: str
    month: str
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "month": self.month, "value": self.value}


@dataclass
class OutlierReport:
    """Statistics behind one outlier detection run for a single dataset.

    Each run replaces the previous report for the same ``kind``; reports are
    never merged.
    """

    kind: DatasetKind
    threshold: float
    mean: float
    std_dev: float
    values_count: int = 0
    skipped_cells: int = 0
    outliers: list[OutlierEntry] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.kind = _to_kind(self.kind)
        self.threshold = validate_threshold(self.threshold)
        self.mean = _to_float(self.mean, "mean")
        self.std_dev = _to_float(self.std_dev, "std_dev")
        if self.std_dev < 0:
            raise ValueError("std_dev must be >= 0")
        self.values_count = _to_non_negative_int(self.values_count, "values_count")
        self.skipped_cells = _to_non_negative_int(self.skipped_cells, "skipped_cells")
        if self.skipped_cells > self.values_count:
            raise ValueError("skipped_cells must be <= values_count")
        for entry in self.outliers:
            if not isinstance(entry, OutlierEntry):
                raise TypeError("outliers items must be OutlierEntry")

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "threshold": self.threshold,
            "mean": self.mean,
            "std_dev": self.std_dev,
            "values_count": self.values_count,
            "skipped_cells": self.skipped_cells,
            "outliers": [entry.to_dict() for entry in self.outliers],
        }


# ── Diagnostics ──────────────────────────────────────────────────


@dataclass
class ReshapeReport:
    """Counters for one or more reshape calls.

    Non-numeric cells are plotted as 0 instead of failing; every such
    substitution is counted here. Passing the same report to several calls
    accumulates the counts and keeps a single overflow summary line.
    """

    kind: DatasetKind | None = None
    cells_seen: int = 0
    cells_selected: int = 0
    coercion_failures: int = 0
    skipped_cells: int = 0
    warnings: list[str] = field(default_factory=list)
    _summary_index: int | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.kind is not None:
            self.kind = _to_kind(self.kind)
        self.cells_seen = _to_non_negative_int(self.cells_seen, "cells_seen")
        self.cells_selected = _to_non_negative_int(self.cells_selected, "cells_selected")
        self.coercion_failures = _to_non_negative_int(
            self.coercion_failures, "coercion_failures"
        )
        self.skipped_cells = _to_non_negative_int(self.skipped_cells, "skipped_cells")
        self.warnings = _to_string_list(self.warnings, "warnings")
        if self.cells_selected > self.cells_seen:
            raise ValueError("cells_selected must be <= cells_seen")

    def record_coercion_failure(self, source: str, period: str, raw: Any) -> None:
        self.coercion_failures += 1
        if self.coercion_failures <= MAX_DETAILED_WARNINGS:
            self.warnings.append(
                f"Source {source!r}, period {period!r}: "
                f"non-numeric value {raw!r} plotted as 0"
            )

    def finish(self) -> None:
        """Write the summary line for failures beyond the detailed limit.

        A later call replaces the earlier summary instead of adding another.
        """
        hidden = self.coercion_failures - MAX_DETAILED_WARNINGS
        if hidden <= 0:
            return
        suffix = "" if hidden == 1 else "s"
        line = f"{hidden} more non-numeric value{suffix} plotted as 0"
        if self._summary_index is None:
            self._summary_index = len(self.warnings)
            self.warnings.append(line)
        else:
            self.warnings[self._summary_index] = line

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value if self.kind is not None else None,
            "cells_seen": self.cells_seen,
            "cells_selected": self.cells_selected,
            "coercion_failures": self.coercion_failures,
            "skipped_cells": self.skipped_cells,
            "warnings": list(self.warnings),
        }


@dataclass
class TableReport:
    """Report on turning a loaded sheet into a Table.

    Contract invariant: ``dropped_rows == rows_in - rows_out``.
    """

    kind: DatasetKind | None = None
    rows_in: int = 0
    rows_out: int = 0
    dropped_rows: int = 0
    periods: list[str] = field(default_factory=list)
    missing_columns: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.kind is not None:
            self.kind = _to_kind(self.kind)
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")
        self.dropped_rows = _to_non_negative_int(self.dropped_rows, "dropped_rows")
        self.periods = _to_string_list(self.periods, "periods")
        self.missing_columns = _to_string_list(self.missing_columns, "missing_columns")
        self.warnings = _to_string_list(self.warnings, "warnings")
        if self.rows_out > self.rows_in:
            raise ValueError("rows_out must be <= rows_in")
        if self.dropped_rows != self.rows_in - self.rows_out:
            raise ValueError("dropped_rows must equal rows_in - rows_out")

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value if self.kind is not None else None,
            "rows_in": self.rows_in,
            "rows_out": self.rows_out,
            "dropped_rows": self.dropped_rows,
            "periods": list(self.periods),
            "missing_columns": list(self.missing_columns),
            "warnings": list(self.warnings),
        }


@dataclass
class RunManifest:
    """Audit-trail manifest for a single CLI run."""

    tool: str = "revcost"
    version: str = ""
    command: str = ""
    created_at_utc: str = ""
    inputs: dict[str, dict[str, str]] = field(default_factory=dict)
    output_dir: str = ""
    status: str = "success"
    error_code: int | None = None
    error_message: str = ""

    def __post_init__(self) -> None:
        if self.status not in {"success", "failed"}:
            raise ValueError("status must be 'success' or 'failed'")
        if self.error_code is not None:
            self.error_code = _to_non_negative_int(self.error_code, "error_code")

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "version": self.version,
            "command": self.command,
            "created_at_utc": self.created_at_utc,
            "inputs": {kind: dict(info) for kind, info in self.inputs.items()},
            "output_dir": self.output_dir,
            "status": self.status,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }
