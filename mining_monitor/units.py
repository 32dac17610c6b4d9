"""
Hashrate unit normalization. Every record carries network hashrate in EH/s.
"""
from __future__ import annotations

import math
from typing import Any, Optional

_HASH_UNIT_EXPONENT = {
    "H/S": 0,
    "KH/S": 3,
    "MH/S": 6,
    "GH/S": 9,
    "TH/S": 12,
    "PH/S": 15,
    "EH/S": 18,
    "ZH/S": 21,
}


def to_float(x: Any) -> Optional[float]:
    """Parse an upstream number; None when absent, unparseable or not finite."""
    if x is None:
        return None
    try:
        value = float(x)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def to_ehs(value: float, unit: str) -> float:
    """Convert a hashrate expressed in `unit` (e.g. 'GH/s', 'th/s') to EH/s."""
    key = unit.strip().upper().replace(" ", "")
    if not key.endswith("/S"):
        key += "/S"
    exponent = _HASH_UNIT_EXPONENT.get(key)
    if exponent is None:
        raise ValueError(f"Unknown hashrate unit: {unit!r}")
    return float(value) * 10.0 ** (exponent - 18)


def non_negative(x: Optional[float]) -> float:
    """Missing or negative values collapse to 0.0 so consumers never branch on absence."""
    if x is None or x != x or x < 0:
        return 0.0
    return float(x)
