from __future__ import annotations

import math
from typing import Any

import pandas as pd


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and value == "":
        return True
    return value is pd.NaT


def to_number(value: Any) -> float | None:
    """
    Narrow numeric coercion used at the boundary of every statistic.
    Returns None when the cell has no usable numeric reading.
    """
    if is_missing(value):
        return None
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        f = float(value)
        return f if math.isfinite(f) else None
    if isinstance(value, str):
        s = value.strip()
        if not s or "_" in s:
            return None
        try:
            f = float(s)
        except ValueError:
            return None
        return f if math.isfinite(f) else None
    if hasattr(value, "item"):
        return to_number(value.item())
    return None


def is_numeric_like(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        return to_number(value) is not None
    return False


def to_text(value: Any) -> str | None:
    if is_missing(value):
        return None
    if isinstance(value, bool):
        # match the lowercase spelling used by the CSV/JSON producers
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_date(value: Any) -> pd.Timestamp | None:
    if is_missing(value):
        return None
    if isinstance(value, pd.Timestamp):
        ts = value
    else:
        try:
            ts = pd.to_datetime(str(value).strip(), errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert(None)
    return ts


def numbers(values: list[Any]) -> list[float]:
    out = []
    for v in values:
        f = to_number(v)
        if f is not None:
            out.append(f)
    return out
