"""
Defensive value helpers for data coming back from the vision model.

The model is free to answer "$12.50", "12,500.00", null or nothing at all
for any numeric field. Everything numeric goes through `to_number` before
any arithmetic happens, and every fallback chain goes through
`first_defined` so the priority order lives in one place.
"""

import math
import re
from typing import Any, Optional

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


def to_number(value: Any) -> Optional[float]:
    """
    Coerce an arbitrary value into a finite number, or None.

    Never raises and never returns NaN/inf.

    Examples:
        12          -> 12
        "$12.50"    -> 12.5
        "12,500.00" -> 12500.0
        "VAT 11%"   -> 11.0
        "", "abc"   -> None
    """
    # bool is a subclass of int, reject it before the numeric branch
    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        return value if is_finite_number(value) else None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None

        match = _NUMBER_RE.search(text.replace(",", ""))
        if not match:
            return None

        number = float(match.group(0))
        return number if math.isfinite(number) else None

    return None


def is_finite_number(value: Any) -> bool:
    """True for an int/float that is finite as a float (json can yield ints of any size)."""
    try:
        return math.isfinite(float(value))
    except (OverflowError, TypeError, ValueError):
        return False


def first_defined(*values: Any) -> Any:
    """Return the first value that is not None (or None if all are)."""
    for value in values:
        if value is not None:
            return value
    return None
