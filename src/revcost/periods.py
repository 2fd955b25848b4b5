"""Period labels: parsing month headers into dates and ordering them."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

import pandas as pd

# Month-first layouts spreadsheets commonly use for column headers. Labels
# without a year (``Jan``) land in 1900, which keeps them in calendar order.
_PERIOD_FORMATS: tuple[str, ...] = (
    "%b",
    "%B",
    "%b %Y",
    "%B %Y",
    "%b-%Y",
    "%B-%Y",
    "%b %y",
    "%b-%y",
    "%Y-%m",
    "%Y/%m",
    "%m/%Y",
    "%m-%Y",
)

PeriodSortKey = tuple[int, datetime, str]

# pandas resolves these against the current clock.
_RELATIVE_WORDS = frozenset({"now", "today", "tomorrow", "yesterday"})


def parse_period(label: Any, *, dayfirst: bool = False) -> datetime | None:
    """Parse a period header into a naive datetime, or ``None`` if it is not a date.

    Known month layouts are tried first; anything else goes through
    ``pandas.to_datetime``. *dayfirst* only affects the pandas fallback
    (``01/02/2024``). Relative words such as ``today`` are not dates.
    """
    text = " ".join(str(label).split())
    if not text:
        return None
    for fmt in _PERIOD_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    if text.lower() in _RELATIVE_WORDS:
        return None
    parsed = pd.to_datetime(text, errors="coerce", dayfirst=dayfirst)
    if pd.isna(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert(None)
    return parsed.to_pydatetime()


def period_sort_key(label: Any, *, dayfirst: bool = False) -> PeriodSortKey:
    """Sort key: parsed periods by date, then unparsable labels lexically."""
    parsed = parse_period(label, dayfirst=dayfirst)
    if parsed is None:
        return (1, datetime.min, str(label))
    return (0, parsed, "")


def sort_periods(labels: Iterable[Any], *, dayfirst: bool = False) -> list[str]:
    """Return *labels* as strings in chronological order (stable on ties)."""
    return sorted(
        (str(label) for label in labels),
        key=lambda label: period_sort_key(label, dayfirst=dayfirst),
    )
