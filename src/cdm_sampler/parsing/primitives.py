from __future__ import annotations

import math
import re
from typing import Any

from .types import ColumnKind


# matched against the destination's declared type, case-insensitive.
# order matters: `INT` wins over the real-like patterns (e.g. "interval" is integer-like too).
_INTEGER_TYPE = re.compile(r"INT", re.IGNORECASE)
_REAL_TYPE = re.compile(r"REAL|FLOA|DOUB|NUM", re.IGNORECASE)


def classify_declared_type(declared_type: str) -> ColumnKind:
    """Map a declared column type string to the `ColumnKind` that drives casting."""
    if _INTEGER_TYPE.search(declared_type):
        return ColumnKind.integer
    if _REAL_TYPE.search(declared_type):
        return ColumnKind.real
    return ColumnKind.text


def _parse_finite_float(s: str) -> float | None:
    """Float parse that returns `None` on garbage, `nan` and `inf`."""
    if "_" in s:
        return None
    try:
        f = float(s)
    except ValueError:
        return None
    return f if math.isfinite(f) else None


def parse_int_trunc(s: str) -> int | None:
    """
    Integer cast with truncation toward zero.

    Plain integer strings are parsed exactly (ids can exceed float precision);
    anything else goes through float, so "12.9" -> 12 and "-1e2" -> -100.
    """
    if "_" not in s:
        try:
            return int(s)
        except ValueError:
            pass
    f = _parse_finite_float(s)
    if f is None:
        return None
    return math.trunc(f)


def parse_real(s: str) -> float | None:
    """Finite float, or `None`."""
    return _parse_finite_float(s)


def cast_value(raw: str, kind: ColumnKind) -> Any:
    """
    Cast one raw cell for a destination column.

    The empty string is always `None`. Unparseable numbers become `None` rather than
    raising; text-like columns take the raw string unchanged.
    """
    if raw == "":
        return None
    if kind is ColumnKind.integer:
        return parse_int_trunc(raw)
    if kind is ColumnKind.real:
        return parse_real(raw)
    return raw
