"""Reshaper — source-keyed rows into month-keyed, chart-ready records.

Pure functions: every call builds fresh records from its inputs. The only
object mutated is a :class:`ReshapeReport` the caller chooses to pass in.
"""

from __future__ import annotations

from collections.abc import Collection

from revcost import MONTH_KEY, SOURCE_KEY
from revcost.coercion import NumberLocale, coerce_number
from revcost.models import (
    DatasetKind,
    MergedRecord,
    ReshapeReport,
    SourceSelection,
    Table,
)
from revcost.periods import period_sort_key


def reshape(
    table: Table,
    selected_sources: Collection[str],
    *,
    report: ReshapeReport | None = None,
    number_locale: NumberLocale = "auto",
) -> list[MergedRecord]:
    """Fold *table* into one record per month, in first-seen month order.

    Only ``(period, value)`` pairs whose period is in *selected_sources* are
    kept. Each kept cell lands in the record for its month under the row's
    ``Source`` name; a later row with the same source overwrites an earlier
    one. Non-numeric cells are plotted as ``0`` and counted in *report*.
    """
    report = report if report is not None else ReshapeReport()
    selected = frozenset(selected_sources)
    records: list[MergedRecord] = []
    by_month: dict[str, MergedRecord] = {}

    for row in table:
        source = str(row.get(SOURCE_KEY, ""))
        collided = 0
        for period, raw in row.items():
            if period == SOURCE_KEY:
                continue
            report.cells_seen += 1
            if period not in selected:
                continue
            if source == MONTH_KEY:
                collided += 1
                continue
            report.cells_selected += 1

            value, parsed = coerce_number(raw, locale=number_locale)
            if not parsed:
                report.record_coercion_failure(source, period, raw)

            record = by_month.get(period)
            if record is None:
                record = {MONTH_KEY: period}
                by_month[period] = record
                records.append(record)
            record[source] = value

        if collided:
            report.skipped_cells += collided
            suffix = "" if collided == 1 else "s"
            report.warnings.append(
                f"Source named {MONTH_KEY!r} collides with the month axis; "
                f"skipped {collided} period{suffix}"
            )

    report.finish()
    return records


def merge_and_sort(
    revenue_records: list[MergedRecord],
    cost_records: list[MergedRecord],
    *,
    dayfirst: bool = False,
) -> list[MergedRecord]:
    """Concatenate revenue then cost records and sort them by month date.

    Records for the same month from the two datasets stay separate entries;
    on equal dates revenue keeps coming first. Unparsable months sort last.
    """
    combined = [dict(record) for record in (*revenue_records, *cost_records)]
    return sorted(
        combined,
        key=lambda record: period_sort_key(record[MONTH_KEY], dayfirst=dayfirst),
    )


def prepare_chart_data(
    revenue: Table,
    cost: Table,
    selection: SourceSelection,
    *,
    number_locale: NumberLocale = "auto",
    dayfirst: bool = False,
) -> tuple[list[MergedRecord], dict[str, ReshapeReport]]:
    """Reshape both datasets with their own selections and merge the result.

    Returns ``(records, reports)`` with one report per dataset kind.
    """
    reports: dict[str, ReshapeReport] = {}
    series: dict[str, list[MergedRecord]] = {}
    for kind, table in ((DatasetKind.revenue, revenue), (DatasetKind.cost, cost)):
        report = ReshapeReport(kind=kind)
        series[kind.value] = reshape(
            table,
            selection.for_kind(kind),
            report=report,
            number_locale=number_locale,
        )
        reports[kind.value] = report

    records = merge_and_sort(series["revenue"], series["cost"], dayfirst=dayfirst)
    return records, reports
