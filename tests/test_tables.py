from __future__ import annotations

import pandas as pd

from revcost.tables import available_periods, clean_table


def test_clean_table_builds_row_dicts() -> None:
    df = pd.DataFrame(
        {"Source": ["Ads", "Shop"], "Jan": ["100", "50"], "Feb": ["200", pd.NA]},
        dtype="string",
    )

    rows, report = clean_table(df, "revenue")

    assert rows == [
        {"Source": "Ads", "Jan": "100", "Feb": "200"},
        {"Source": "Shop", "Jan": "50", "Feb": None},
    ]
    assert report.periods == ["Jan", "Feb"]
    assert report.rows_in == 2
    assert report.rows_out == 2
    assert report.warnings == []


def test_source_header_is_matched_case_insensitively_and_trimmed() -> None:
    df = pd.DataFrame({" source ": ["Ads"], " Jan ": ["1"]})

    rows, _report = clean_table(df)

    assert rows == [{"Source": "Ads", "Jan": "1"}]


def test_missing_source_column_returns_empty_table() -> None:
    df = pd.DataFrame({"Name": ["Ads"], "Jan": ["1"]})

    rows, report = clean_table(df, "cost")

    assert rows == []
    assert report.missing_columns == ["Source"]
    assert report.rows_out == 0
    assert report.dropped_rows == 1


def test_rows_without_source_and_blank_headers_are_dropped() -> None:
    df = pd.DataFrame(
        {"Source": ["Ads", None, "  "], "Jan": ["1", "2", "3"], "Unnamed: 2": [None, None, None]}
    )

    rows, report = clean_table(df)

    assert rows == [{"Source": "Ads", "Jan": "1"}]
    assert report.dropped_rows == 2
    assert any("blank header" in w for w in report.warnings)
    assert any("Dropped 2 rows" in w for w in report.warnings)


def test_duplicate_sources_are_kept_with_warning() -> None:
    df = pd.DataFrame({"Source": ["Ads", "Ads"], "Jan": ["1", "2"]})

    rows, report = clean_table(df)

    assert len(rows) == 2
    assert any("Duplicate Source names" in w for w in report.warnings)


def test_duplicate_period_columns_fail() -> None:
    df = pd.DataFrame([["Ads", "1", "2"]], columns=["Source", "Jan", "Jan "])

    rows, report = clean_table(df)

    assert rows == []
    assert "Duplicate period columns" in report.warnings[0]


def test_numeric_cells_become_python_numbers() -> None:
    df = pd.DataFrame({"Source": ["Ads"], "Jan": [1.5]})

    rows, _report = clean_table(df)

    assert rows[0]["Jan"] == 1.5
    assert type(rows[0]["Jan"]) is float


def test_available_periods_come_from_first_row() -> None:
    table = [{"Source": "A", "Jan": "1", " ": "x", "Feb": "2"}, {"Source": "B", "Mar": "3"}]

    assert available_periods(table) == ["Jan", "Feb"]
    assert available_periods([]) == []
