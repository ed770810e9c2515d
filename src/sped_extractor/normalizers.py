"""Locale-aware normalizers for SPED monetary, date and text fields.

SPED exports write amounts with a comma decimal separator ("1234,56") but
files touched by spreadsheets often come back with thousands separators
("1.234,56") or with a dot decimal ("1234.56"). Every parser in the package
funnels field values through these helpers so they never raise.
"""

from __future__ import annotations

import math
import unicodedata
from datetime import date
from typing import Any

EMPTY_MARKERS = frozenset({"", "0", "null"})
MAX_AMOUNT = 1_000_000_000.0


def parse_monetary(value: Any) -> float:
    """Convert a number or a locale-formatted string into a float.

    Args:
        value: Raw field content or an already numeric value.

    Returns:
        The parsed amount, or 0.0 when the value is empty or not numeric.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    if not isinstance(value, str):
        return 0.0

    text = value.strip()
    if text.lower() in EMPTY_MARKERS:
        return 0.0

    if "," in text:
        parts = text.split(",")
        if len(parts) == 2:
            integer_part = parts[0].replace(".", "")
            text = f"{integer_part}.{parts[1]}"
    elif text.count(".") > 1:
        text = text.replace(".", "")

    try:
        number = float(text)
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_sped_date(value: Any) -> date | None:
    """Parse a ``DDMMYYYY`` SPED date.

    Returns None for anything that is not eight digits forming a real
    calendar date. Callers decide how to treat the missing date.
    """
    if not isinstance(value, str):
        return None
    text = value.strip()
    if len(text) != 8 or not text.isdigit():
        return None
    try:
        return date(int(text[4:8]), int(text[2:4]), int(text[0:2]))
    except ValueError:
        return None


def safe_amount(value: Any, ceiling: float = MAX_AMOUNT) -> float:
    """Parse an amount and discard it when outside ``[0, ceiling)``."""
    amount = parse_monetary(value)
    if 0 <= amount < ceiling:
        return amount
    return 0.0


def normalize_text(value: Any) -> str:
    """Upper-case, accent-free and whitespace-collapsed text for matching."""
    if value is None:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(value))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(stripped.upper().split())


def months_between(start: date, end: date) -> int:
    """Number of calendar months touched by the inclusive range."""
    if end < start:
        start, end = end, start
    return (end.year - start.year) * 12 + (end.month - start.month) + 1
