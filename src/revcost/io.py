"""I/O helpers — load revenue/cost sheets, write JSON artifacts."""

from __future__ import annotations

import csv
import hashlib
import json
from collections.abc import Iterable
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Callable, cast

import pandas as pd

from revcost.models import DatasetKind

SUPPORTED_SUFFIXES: tuple[str, ...] = (".csv", ".xlsx", ".xlsm", ".xls")

# ── Loading ──────────────────────────────────────────────────────


def load_table(path: Path) -> pd.DataFrame:
    """Read the first sheet of a CSV or Excel file with every cell as a string.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If the extension is not supported, or CSV decoding/parsing fails.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        if path.stat().st_size == 0:
            raise ValueError(f"CSV file is empty: {path}")
        last_exc: Exception | None = None
        for encoding in ("utf-8-sig", "latin-1"):
            try:
                return pd.read_csv(
                    path,
                    dtype="string",
                    sep=None,
                    engine="python",
                    encoding=encoding,
                    encoding_errors="strict",
                    skip_blank_lines=True,
                )
            except (UnicodeDecodeError, pd.errors.ParserError, csv.Error) as exc:
                last_exc = exc
            except pd.errors.EmptyDataError as exc:
                raise ValueError(f"CSV file has no columns: {path}") from exc
        raise ValueError(f"Could not read CSV {path} (decode or parse failed)") from last_exc

    read_excel = cast(Callable[..., pd.DataFrame], getattr(pd, "read_excel"))
    if suffix in (".xlsx", ".xlsm"):
        return read_excel(path, sheet_name=0, engine="openpyxl", dtype="string")

    if suffix == ".xls":
        try:
            return read_excel(path, sheet_name=0, engine="xlrd", dtype="string")
        except ImportError as exc:
            raise ValueError(
                "Reading .xls needs the optional 'xlrd' package. "
                "Convert the file to .xlsx or run: pip install xlrd"
            ) from exc

    raise ValueError(
        f"Unsupported file type: {suffix!r}. Use {', '.join(SUPPORTED_SUFFIXES)}"
    )


def find_dataset_files(paths: Iterable[Path]) -> dict[DatasetKind, Path]:
    """Pick the revenue and the cost file out of *paths* by file name.

    The first name containing ``revenue`` is the revenue file and the first
    containing ``cost`` is the cost file (case-insensitive).

    Raises
    ------
    ValueError
        If either file is missing.
    """
    found: dict[DatasetKind, Path] = {}
    for path in paths:
        name = Path(path).name.lower()
        for kind in DatasetKind:
            if kind.value in name and kind not in found:
                found[kind] = Path(path)
    missing = [kind.value for kind in DatasetKind if kind not in found]
    if missing:
        raise ValueError(
            "Please provide both a revenue and a cost file "
            f"(no file name contains: {', '.join(missing)})"
        )
    return {kind: found[kind] for kind in DatasetKind}


# ── Writing ──────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    item = getattr(obj, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)) or converted is None:
            return converted
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_json(path: Path, data: Any, *, sort_keys: bool = True) -> Path:
    """Write *data* as indented JSON to *path* through a temp file.

    Pass ``sort_keys=False`` where key order carries meaning (chart records).
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(
        data,
        indent=2,
        sort_keys=sort_keys,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(payload, encoding="utf-8")
    tmp_path.replace(path)
    return path


# ── Audit helpers ────────────────────────────────────────────────


def sha256_file(path: Path) -> str:
    """Return the hex SHA-256 digest of *path*."""
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(1 << 16), b""):
            digest.update(chunk)
    return digest.hexdigest()


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")
