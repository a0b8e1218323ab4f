"""
Currency parsing and formatting for CLP amounts.

Amounts are whole pesos. Display uses "." as the thousands separator and
"," as the decimal separator. Parsing is total: anything unparseable
becomes 0 instead of raising, so a half-typed cell never fails.
"""

import math
import re
from collections.abc import Iterable

_STRIP_CHARS = re.compile(r"[$€£¥\s]")
_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_PLAIN_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_MONEY_INPUT_DISALLOWED = re.compile(r"[^0-9.,\s$]")


def normalize_amount(value: float) -> int:
    """
    Round half up to an integer and clamp at 0.

    Non-finite values (NaN, infinities) normalise to 0.
    """
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, int):
        return max(0, value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(0, math.floor(number + 0.5))


def _group_thousands(amount: int) -> str:
    return f"{amount:,}".replace(",", ".")


def format_amount(amount: float, show_symbol: bool = True) -> str:
    """
    Render an amount for display, e.g. 1234567 -> "$1.234.567".

    Zero renders as an empty string (a blank cell).
    """
    if isinstance(amount, float) and math.isnan(amount):
        return ""
    rounded = math.floor(amount + 0.5) if isinstance(amount, float) else int(amount)
    if rounded == 0:
        return ""
    formatted = _group_thousands(rounded)
    return f"${formatted}" if show_symbol else formatted


def parse_amount(text: object) -> int:
    """
    Parse a locale-formatted amount: "$1.234.567,50" -> 1234568.

    Currency symbols and whitespace are stripped, "." is read as a
    thousands separator and "," as the decimal separator. Returns 0 for
    anything that does not start with a number.
    """
    if not isinstance(text, str) or not text:
        return 0
    cleaned = _STRIP_CHARS.sub("", text).replace(".", "").replace(",", ".")
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return 0
    return normalize_amount(float(match.group(0)))


def parse_bulk(values: Iterable[object]) -> list[int]:
    """
    Parse pasted spreadsheet values element-wise.

    A value that is a plain number ("500000", "1234.5") is read directly;
    anything else goes through parse_amount. Order and length are kept.
    """
    parsed = []
    for value in values:
        if not isinstance(value, str) or not value.strip():
            parsed.append(0)
            continue
        candidate = value.strip()
        if _PLAIN_NUMBER.match(candidate):
            parsed.append(normalize_amount(float(candidate)))
        else:
            parsed.append(parse_amount(candidate))
    return parsed


def format_for_input(amount: int) -> str:
    """Plain digits for an edit box; blank for 0."""
    if not amount:
        return ""
    return str(amount)


def format_large_number(amount: float) -> str:
    """Compact display for totals: $1.5M, $250K, falling back to format_amount."""
    if amount == 0:
        return "$0"
    magnitude = abs(amount)
    if magnitude >= 1_000_000:
        return f"${amount / 1_000_000:.1f}M"
    if magnitude >= 1_000:
        return f"${amount / 1_000:.0f}K"
    return format_amount(amount)


def sanitize_money_input(text: str) -> str:
    """Drop every character that cannot appear in a money value."""
    if not text:
        return ""
    return _MONEY_INPUT_DISALLOWED.sub("", text)


def is_valid_money_string(text: str) -> bool:
    """Empty strings are valid (they mean 0); otherwise only money characters may appear."""
    if not text:
        return True
    return sanitize_money_input(text) == text
