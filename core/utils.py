from __future__ import annotations

import math
from typing import Any, Optional


def to_number(value: Any) -> Optional[float]:
    """Finite float for value, or None when it is missing or malformed."""
    if value is None or isinstance(value, bool):
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    return n if math.isfinite(n) else None


def num_or_zero(value: Any) -> float:
    n = to_number(value)
    return 0.0 if n is None else n


def canonical_id(value: Any) -> str:
    # 8, "8" and 8.0 must all key the same row.
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    s = str(value).strip()
    if s.endswith(".0") and s[:-2].lstrip("-").isdigit():
        return s[:-2]
    return s
