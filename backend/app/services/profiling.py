from __future__ import annotations

import math
import re
from typing import Any

import numpy as np
import pandas as pd

from app.models import Cell, DatasetSummary, VariableSummary, VariableType
from app.services.values import is_missing, is_numeric_like, numbers, parse_date, to_text


SAMPLE_SIZE = 100
TOP_CATEGORIES = 10

DATE_PATTERNS = [
    re.compile(r"^\d{4}[-/]\d{1,2}[-/]\d{1,2}", re.ASCII),  # 2024-01-31, 2024/1/31
    re.compile(r"\d{1,2}[-/]\d{1,2}[-/]\d{2,4}", re.ASCII),  # 01-31-2024, 1/31/24
    re.compile(r"\w{3}\s\d{1,2},?\s\d{4}", re.ASCII),  # Jan 31, 2024
]


def _sample(rows: list[dict[str, Cell]], col: str, size: int = SAMPLE_SIZE) -> list[Cell]:
    out: list[Cell] = []
    for row in rows:
        v = row.get(col)
        if is_missing(v):
            continue
        out.append(v)
        if len(out) >= size:
            break
    return out


def _looks_like_date(value: Any) -> bool:
    return isinstance(value, str) and any(p.search(value) for p in DATE_PATTERNS)


def infer_column_type(rows: list[dict[str, Cell]], col: str) -> VariableType:
    sample = _sample(rows, col)
    if not sample:
        return "categorical"
    if all(is_numeric_like(v) for v in sample):
        return "numeric"
    if all(_looks_like_date(v) for v in sample):
        return "date"
    return "categorical"


def infer_column_types(headers: list[str], rows: list[dict[str, Cell]]) -> dict[str, VariableType]:
    # Sample-based: a column that turns non-numeric after its first 100 usable
    # values keeps the type its sample implies.
    return {h: infer_column_type(rows, h) for h in headers}


def build_dataset_summary(headers: list[str], rows: list[dict[str, Cell]]) -> DatasetSummary:
    types = infer_column_types(headers, rows)
    return DatasetSummary(
        row_count=len(rows),
        numeric_columns=[h for h in headers if types[h] == "numeric"],
        categorical_columns=[h for h in headers if types[h] == "categorical"],
        date_columns=[h for h in headers if types[h] == "date"],
    )


def nearest_rank(sorted_values: Any, p: float) -> float:
    """Quartile by indexing the sorted values at floor(n * p), no interpolation."""
    n = len(sorted_values)
    if n == 0:
        return math.nan
    return float(sorted_values[min(int(math.floor(n * p)), n - 1)])


def summarize_column(rows: list[dict[str, Cell]], col: str, col_type: VariableType) -> VariableSummary:
    if col_type == "numeric":
        return _numeric_summary(rows, col)
    if col_type == "date":
        return _date_summary(rows, col)
    return _categorical_summary(rows, col)


def _numeric_summary(rows: list[dict[str, Cell]], col: str) -> VariableSummary:
    values = np.sort(np.asarray(numbers([row.get(col) for row in rows]), dtype=float))
    count = int(values.size)
    if count == 0:
        nan = math.nan
        stats = {"count": 0, "sum": 0.0, "mean": nan, "median": nan, "min": nan, "max": nan, "q1": nan, "q3": nan, "std_dev": nan, "range": nan, "iqr": nan}
        return VariableSummary(variable=col, type="numeric", stats=stats)

    total = float(values.sum())
    mean = total / count
    q1 = nearest_rank(values, 0.25)
    median = nearest_rank(values, 0.5)
    q3 = nearest_rank(values, 0.75)
    vmin, vmax = float(values[0]), float(values[-1])
    # population std-dev (divide by n)
    std = float(np.sqrt(np.mean((values - mean) ** 2)))
    return VariableSummary(
        variable=col,
        type="numeric",
        stats={
            "count": count,
            "sum": total,
            "mean": mean,
            "median": median,
            "min": vmin,
            "max": vmax,
            "q1": q1,
            "q3": q3,
            "std_dev": std,
            "range": vmax - vmin,
            "iqr": q3 - q1,
        },
    )


def category_counts(values: list[Cell]) -> pd.Series:
    """Frequency of each string-coerced value, most frequent first (ties keep first appearance)."""
    texts = [t for t in (to_text(v) for v in values) if t is not None]
    if not texts:
        return pd.Series(dtype="int64")
    s = pd.Series(texts, dtype=object)
    return s.value_counts(sort=False).sort_values(ascending=False, kind="stable")


def _categorical_summary(rows: list[dict[str, Cell]], col: str) -> VariableSummary:
    vc = category_counts([row.get(col) for row in rows])
    count = int(vc.sum()) if not vc.empty else 0
    top = [
        {"category": str(k), "count": int(v), "percentage": (int(v) / count) * 100.0}
        for k, v in vc.head(TOP_CATEGORIES).items()
    ]
    mode = str(vc.index[0]) if count else None
    mode_freq = int(vc.iloc[0]) if count else 0
    return VariableSummary(
        variable=col,
        type="categorical",
        stats={
            "count": count,
            "unique_count": int(vc.size),
            "top_categories": top,
            "mode": mode,
            "mode_frequency": mode_freq,
            "mode_percentage": (mode_freq / count) * 100.0 if count else math.nan,
        },
    )


def _date_summary(rows: list[dict[str, Cell]], col: str) -> VariableSummary:
    parsed = [ts for ts in (parse_date(row.get(col)) for row in rows) if ts is not None]
    parsed.sort()
    count = len(parsed)
    if count == 0:
        stats = {"count": 0, "min": None, "max": None, "range_days": None, "year_distribution": {}, "month_distribution": {}}
        return VariableSummary(variable=col, type="date", stats=stats)

    ds = pd.Series(parsed)
    vmin, vmax = parsed[0], parsed[-1]
    years = ds.dt.year.value_counts().sort_index()
    months = ds.groupby(ds.dt.month).size().sort_index()
    month_names = {int(m): pd.Timestamp(2000, int(m), 1).month_name() for m in months.index}
    return VariableSummary(
        variable=col,
        type="date",
        stats={
            "count": count,
            "min": vmin,
            "max": vmax,
            "range_days": int((vmax - vmin) // pd.Timedelta(days=1)),
            "year_distribution": {str(int(y)): int(n) for y, n in years.items()},
            "month_distribution": {month_names[int(m)]: int(n) for m, n in months.items()},
        },
    )
