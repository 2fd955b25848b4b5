"""Numeric coercion for spreadsheet cells."""

from __future__ import annotations

import math
import re
from numbers import Real
from typing import Any, Literal

NumberLocale = Literal["auto", "us", "eu"]
NUMBER_LOCALES: tuple[str, ...] = ("auto", "us", "eu")

_THOUSANDS_COMMA_RE = re.compile(r"^[+-]?\d{1,3}(,\d{3})+$")
_THOUSANDS_DOT_RE = re.compile(r"^[+-]?\d{1,3}(\.\d{3})+$")
_PARENS_NEGATIVE_RE = re.compile(r"^\((.*)\)$")
_CURRENCY_RE = re.compile(r"[\$€£]")
_DIGIT_GAP_RE = re.compile(r"(?<=\d)\s+(?=\d)")


def _check_locale(locale: str) -> None:
    if locale not in NUMBER_LOCALES:
        raise ValueError(f"Invalid number locale: {locale!r}. Use auto/us/eu.")


def normalize_numeric_token(token: str, *, locale: NumberLocale = "auto") -> str:
    """Strip spreadsheet decoration from *token* so ``float()`` can read it.

    Handles currency symbols, percent signs, ``(123)`` negatives, digit
    grouping with spaces/apostrophes, and thousands/decimal separators.
    In ``auto`` mode a lone dot is always a decimal point.
    """
    _check_locale(locale)
    token = token.strip()
    token = _PARENS_NEGATIVE_RE.sub(r"-\1", token)
    token = _CURRENCY_RE.sub("", token)
    token = token.replace("%", "")
    token = _DIGIT_GAP_RE.sub("", token)
    token = token.replace("'", "").replace("_", "").strip()

    has_comma = "," in token
    has_dot = "." in token

    if locale == "eu":
        if has_comma:
            return token.replace(".", "").replace(",", ".")
        if _THOUSANDS_DOT_RE.fullmatch(token):
            return token.replace(".", "")
        return token

    if locale == "us":
        if has_comma and (has_dot or _THOUSANDS_COMMA_RE.fullmatch(token)):
            return token.replace(",", "")
        return token

    if has_comma and has_dot:
        # Whichever separator comes last is the decimal point.
        if token.rfind(",") > token.rfind("."):
            return token.replace(".", "").replace(",", ".")
        return token.replace(",", "")
    if has_comma:
        if _THOUSANDS_COMMA_RE.fullmatch(token):
            return token.replace(",", "")
        if token.count(",") == 1:
            return token.replace(",", ".")
    return token


def parse_number(value: Any, *, locale: NumberLocale = "auto") -> float | None:
    """Parse a cell into a finite float, or return ``None`` if it is not one.

    ``None``, booleans, blank strings, NaN and infinities all fail.
    """
    _check_locale(locale)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Real):
        result = float(value)
    else:
        token = normalize_numeric_token(str(value), locale=locale)
        if not token:
            return None
        try:
            result = float(token)
        except ValueError:
            return None
    return result if math.isfinite(result) else None


def coerce_number(value: Any, *, locale: NumberLocale = "auto") -> tuple[float, bool]:
    """Return ``(number, parsed)``; unparsable cells come back as ``(0.0, False)``."""
    parsed = parse_number(value, locale=locale)
    if parsed is None:
        return 0.0, False
    return parsed, True
