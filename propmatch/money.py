"""Money normalization for free-form limit / mortgage strings.

Accepts values like ``"$1.2M"``, ``"1200K"``, ``"1200000"``. Anything that
leaves no parseable number (``"Two million Dollars"``) becomes NaN, which
never compares equal to another amount.
"""

import math
import re

_NON_MONEY_RE = re.compile(r"[^0-9.km]")
_LEADING_NUMBER_RE = re.compile(r"^\d*\.?\d+|^\d+\.")


def _leading_number(text: str) -> float:
    m = _LEADING_NUMBER_RE.match(text)
    if not m:
        return math.nan
    return float(m.group(0))


def normalize_money(value: str | float | int | None) -> float:
    """Normalize a currency string to a float.

    Empty input is 0. Already-numeric input is returned unchanged.
    """
    if not value:
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)

    cleaned = _NON_MONEY_RE.sub("", str(value).lower())
    if "m" in cleaned:
        return _leading_number(cleaned) * 1_000_000
    if "k" in cleaned:
        return _leading_number(cleaned) * 1_000
    try:
        return float(cleaned)
    except ValueError:
        return math.nan


def money_equal(a: str | float | None, b: str | float | None) -> bool:
    """True when both values normalize to the same number (NaN never equal)."""
    return normalize_money(a) == normalize_money(b)
