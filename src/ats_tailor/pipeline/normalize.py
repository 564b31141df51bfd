"""Coercions applied to raw provider JSON before schema validation."""

from __future__ import annotations

import math
from typing import Any


def string_list(value: Any) -> list[str]:
    """Coerce to a list of non-empty strings. Non-lists become ``[]``."""
    if not isinstance(value, list):
        return []
    out = []
    for item in value:
        if isinstance(item, str):
            item = item.strip()
        elif isinstance(item, (int, float)) and not isinstance(item, bool):
            item = str(item)
        else:
            continue
        if item:
            out.append(item)
    return out


def as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0"):
            return False
    return default


def as_int(value: Any, default: int | None, low: int = 0, high: int = 100) -> int | None:
    """Coerce a number (or numeric string) to an int clamped into ``[low, high]``."""
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%"))
        except ValueError:
            return default
    if not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value):
        return default
    return max(low, min(high, int(round(value))))


def as_str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""
