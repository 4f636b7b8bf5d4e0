from __future__ import annotations

import math
from collections.abc import Callable
from typing import Literal

import numpy as np
import pandas as pd

from app.models import Cell, Insight, RelationshipResult, VariableType, VisualizationData
from app.services.insights import clamp_importance, round_half_up
from app.services.profiling import nearest_rank
from app.services.values import parse_date, to_number, to_text


Rows = list[dict[str, Cell]]
Strategy = Callable[[Rows, str, str], RelationshipResult]
Grouping = Literal["day", "week", "month", "quarter", "year"]
Trend = Literal["increasing", "decreasing", "no trend"]


def analyze_relationship(
    rows: Rows,
    variable: str,
    var_type: VariableType,
    target: str,
    target_type: VariableType,
) -> RelationshipResult:
    """
    Bivariate analysis of `variable` against `target`.
    Only five (var_type, target_type) pairs have a strategy; every other pair
    yields an empty result.
    """
    strategy = STRATEGIES.get((var_type, target_type))
    if strategy is None:
        return RelationshipResult()
    return strategy(rows, variable, target)


# numeric -> numeric


def pearson(xs: list[float], ys: list[float]) -> float | None:
    n = len(xs)
    if n < 2:
        return None
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    sx, sy = x.sum(), y.sum()
    num = n * (x * y).sum() - sx * sy
    den = math.sqrt(max((n * (x * x).sum() - sx * sx) * (n * (y * y).sum() - sy * sy), 0.0))
    if den == 0:
        return None
    return float(min(max(num / den, -1.0), 1.0))


def correlation_strength(r: float) -> str:
    if abs(r) > 0.7:
        return "strong"
    if abs(r) > 0.3:
        return "moderate"
    return "weak"


def binned_means(xs: list[float], ys: list[float], bins: int = 20) -> list[dict[str, float]]:
    """Average y per equal-width x bin; empty bins are dropped."""
    if not xs:
        return []
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    x_min, x_max = float(x.min()), float(x.max())
    width = (x_max - x_min) / bins
    if width == 0:
        return [{"x": x_min, "y": float(y.mean()), "count": int(y.size)}]
    idx = np.minimum(np.floor((x - x_min) / width).astype(int), bins - 1)
    out = []
    for i in range(bins):
        mask = idx == i
        cnt = int(mask.sum())
        if cnt == 0:
            continue
        out.append({"x": x_min + i * width + width / 2, "y": float(y[mask].mean()), "count": cnt})
    return out


def paired_numbers(rows: Rows, a: str, b: str) -> tuple[list[float], list[float]]:
    xs: list[float] = []
    ys: list[float] = []
    for row in rows:
        x, y = to_number(row.get(a)), to_number(row.get(b))
        if x is None or y is None:
            continue
        xs.append(x)
        ys.append(y)
    return xs, ys


def analyze_numeric_numeric(rows: Rows, variable: str, target: str) -> RelationshipResult:
    xs, ys = paired_numbers(rows, variable, target)
    if not xs:
        return RelationshipResult()

    viz = VisualizationData(
        type="scatter",
        title=f"{variable} vs {target}",
        description=f"Scatter plot showing the relationship between {variable} and {target}",
        x_axis=variable,
        y_axis=target,
        data=[{"x": x, "y": y, "id": i} for i, (x, y) in enumerate(zip(xs, ys, strict=True))],
    )

    r = pearson(xs, ys)
    if r is None:
        # constant column or a single point: no defined correlation
        return RelationshipResult(visualization=viz)

    strength = correlation_strength(r)
    direction = "positive" if r > 0 else "negative"
    insight = Insight(
        id=f"correlation-{variable}-{target}",
        title=f"Relationship between {variable} and {target}",
        description=f"There is a {strength} {direction} correlation ({r:.2f}) between {variable} and {target}.",
        importance=clamp_importance(abs(r) * 10),
    )
    return RelationshipResult(insight=insight, visualization=viz)


# categorical -> numeric


def group_means(rows: Rows, categorical: str, numeric: str) -> pd.DataFrame:
    """Per-category mean and count of `numeric`, categories in first-appearance order."""
    pairs = []
    for row in rows:
        c, v = to_text(row.get(categorical)), to_number(row.get(numeric))
        if c is None or v is None:
            continue
        pairs.append((c, v))
    if not pairs:
        return pd.DataFrame(columns=["category", "average", "n"])
    d = pd.DataFrame(pairs, columns=["category", "value"])
    return d.groupby("category", sort=False)["value"].agg(average="mean", n="count").reset_index()


def _relative_diff(value: float, base: float) -> float:
    return abs(value - base) / abs(base)


def analyze_categorical_numeric(rows: Rows, categorical: str, numeric: str) -> RelationshipResult:
    g = group_means(rows, categorical, numeric)
    if g.empty:
        return RelationshipResult()

    stats = [{"category": str(r.category), "count": int(r.n), "average": float(r.average)} for r in g.itertuples(index=False)]
    stats.sort(key=lambda s: s["average"], reverse=True)
    top = sorted(stats, key=lambda s: s["count"], reverse=True)[:10]
    top.sort(key=lambda s: s["average"], reverse=True)

    values = [v for v in (to_number(row.get(numeric)) for row in rows) if v is not None]
    overall = sum(values) / len(values)

    significant = []
    if overall != 0:
        significant = [s for s in top if _relative_diff(s["average"], overall) > 0.2 and s["count"] > 5]

    insight = None
    if significant:
        top_cat = significant[0]
        # sign from the gap, size against |overall|
        higher = top_cat["average"] > overall
        pct = _relative_diff(top_cat["average"], overall) * 100.0
        insight = Insight(
            id=f"cat-num-{categorical}-{numeric}",
            title=f"Impact of {categorical} on {numeric}",
            description=f"{top_cat['category']} has a {'higher' if higher else 'lower'} {numeric} by {pct:.1f}% compared to average.",
            importance=clamp_importance(7 + min(3, len(significant))),
        )

    viz = VisualizationData(
        type="bar",
        title=f"Average {numeric} by {categorical}",
        description=f"Bar chart showing how {numeric} varies across different categories of {categorical}",
        x_axis=categorical,
        y_axis=numeric,
        data=[{"category": s["category"], "value": s["average"]} for s in top],
    )
    return RelationshipResult(insight=insight, visualization=viz)


# numeric -> categorical


def five_number_summaries(rows: Rows, numeric: str, categorical: str) -> list[dict[str, float | int | str]]:
    groups: dict[str, list[float]] = {}
    for row in rows:
        c, v = to_text(row.get(categorical)), to_number(row.get(numeric))
        if c is None or v is None:
            continue
        groups.setdefault(c, []).append(v)

    out = []
    for cat, vals in groups.items():
        arr = np.sort(np.asarray(vals, dtype=float))
        out.append(
            {
                "category": cat,
                "min": float(arr[0]),
                "q1": nearest_rank(arr, 0.25),
                "median": nearest_rank(arr, 0.5),
                "q3": nearest_rank(arr, 0.75),
                "max": float(arr[-1]),
                "count": int(arr.size),
                "average": float(arr.mean()),
            }
        )
    return out


def analyze_numeric_categorical(rows: Rows, numeric: str, categorical: str) -> RelationshipResult:
    stats = five_number_summaries(rows, numeric, categorical)
    if not stats:
        return RelationshipResult()

    # at most 6 boxes for readability
    top = sorted(stats, key=lambda s: s["count"], reverse=True)[:6]
    highest = max(top, key=lambda s: s["average"])
    lowest = min(top, key=lambda s: s["average"])
    max_avg, min_avg = float(highest["average"]), float(lowest["average"])

    insight = None
    if max_avg != 0 and (max_avg - min_avg) / max_avg > 0.2:
        insight = Insight(
            id=f"num-cat-{numeric}-{categorical}",
            title=f"{numeric} varies significantly across {categorical} categories",
            description=f"{highest['category']} has an average {numeric} of {max_avg:.2f}, while {lowest['category']} has {min_avg:.2f}.",
            importance=clamp_importance(8),
        )

    box = [{k: s[k] for k in ("category", "min", "q1", "median", "q3", "max", "count")} for s in top]
    viz = VisualizationData(
        type="box",
        title=f"Distribution of {numeric} by {categorical}",
        description=f"Box plot showing how {numeric} is distributed across different categories of {categorical}",
        x_axis=categorical,
        y_axis=numeric,
        data=box,
    )
    return RelationshipResult(insight=insight, visualization=viz)


# categorical -> categorical


def contingency_table(rows: Rows, cat1: str, cat2: str, limit: int = 10) -> pd.DataFrame:
    """
    Co-occurrence counts, categories in first-appearance order.
    Axes with more than `limit` values keep their `limit` largest totals; the
    second axis is ranked on the rows that survived the first cut.
    """
    pairs = []
    for row in rows:
        a, b = to_text(row.get(cat1)), to_text(row.get(cat2))
        if a is None or b is None:
            continue
        pairs.append((a, b))
    if not pairs:
        return pd.DataFrame()

    d = pd.DataFrame(pairs, columns=["a", "b"])
    ct = pd.crosstab(d["a"], d["b"]).reindex(index=pd.unique(d["a"]), columns=pd.unique(d["b"]))

    if ct.shape[0] > limit:
        keep = ct.sum(axis=1).sort_values(ascending=False, kind="stable").head(limit).index
        ct = ct.loc[keep]
    if ct.shape[1] > limit:
        keep = ct.sum(axis=0).sort_values(ascending=False, kind="stable").head(limit).index
        ct = ct[keep]
    return ct


def analyze_categorical_categorical(rows: Rows, cat1: str, cat2: str) -> RelationshipResult:
    ct = contingency_table(rows, cat1, cat2)
    if ct.empty:
        return RelationshipResult()

    heatmap = []
    best = {"cat1": "", "cat2": "", "count": 0, "percentage": 0.0}
    for a in ct.index:
        row = ct.loc[a]
        row_total = int(row.sum())
        for b in ct.columns:
            count = int(row[b])
            heatmap.append({"category1": str(a), "category2": str(b), "count": count})
            if count > 0:
                pct = (count / row_total) * 100.0
                if pct > best["percentage"]:
                    best = {"cat1": str(a), "cat2": str(b), "count": count, "percentage": pct}

    insight = None
    if best["percentage"] > 70:
        insight = Insight(
            id=f"cat-cat-{cat1}-{cat2}",
            title=f"Strong association between {cat1} and {cat2}",
            description=f"{best['percentage']:.1f}% of {best['cat1']} are associated with {best['cat2']}.",
            importance=clamp_importance(min(round_half_up(best["percentage"] / 10), 10)),
        )

    viz = VisualizationData(
        type="heatmap",
        title=f"Relationship between {cat1} and {cat2}",
        description=f"Heatmap showing the frequency of combinations between {cat1} and {cat2}",
        x_axis=cat1,
        y_axis=cat2,
        data=heatmap,
    )
    return RelationshipResult(insight=insight, visualization=viz)


# date -> numeric


def pick_grouping(span_days: float) -> Grouping:
    if span_days <= 31:
        return "day"
    if span_days <= 120:
        return "week"
    if span_days <= 365:
        return "month"
    if span_days <= 365 * 2:
        return "quarter"
    return "year"


def period_key(ts: pd.Timestamp, grouping: Grouping) -> str:
    if grouping == "day":
        return ts.strftime("%Y-%m-%d")
    if grouping == "week":
        monday = ts.normalize() - pd.Timedelta(days=ts.weekday())
        return monday.strftime("%Y-%m-%d")
    if grouping == "month":
        return ts.strftime("%Y-%m")
    if grouping == "quarter":
        return f"{ts.year}-Q{(ts.month - 1) // 3 + 1}"
    return str(ts.year)


def analyze_trend(values: list[float]) -> Trend:
    """Linear-regression slope over the series index, judged relative to its mean."""
    n = len(values)
    if n < 3:
        return "no trend"
    x = np.arange(n, dtype=float)
    y = np.asarray(values, dtype=float)
    sx, sy = x.sum(), y.sum()
    slope = (n * (x * y).sum() - sx * sy) / (n * (x * x).sum() - sx * sx)
    avg = sy / n
    if slope == 0:
        return "no trend"
    relative = math.inf if avg == 0 else (slope * n) / avg
    if abs(relative) < 0.1:
        return "no trend"
    return "increasing" if slope > 0 else "decreasing"


def time_series(rows: Rows, date_col: str, numeric: str) -> tuple[Grouping | None, list[dict[str, float | str]]]:
    points = []
    for row in rows:
        ts, v = parse_date(row.get(date_col)), to_number(row.get(numeric))
        if ts is None or v is None:
            continue
        points.append((ts, v))
    if not points:
        return None, []

    points.sort(key=lambda p: p[0])
    span_days = (points[-1][0] - points[0][0]) / pd.Timedelta(days=1)
    grouping = pick_grouping(span_days)

    d = pd.DataFrame({"period": [period_key(ts, grouping) for ts, _ in points], "value": [v for _, v in points]})
    # ISO-like keys sort chronologically as strings
    g = d.groupby("period", sort=True)["value"].mean()
    return grouping, [{"timePeriod": str(k), "average": float(v)} for k, v in g.items()]


def analyze_date_numeric(rows: Rows, date_col: str, numeric: str) -> RelationshipResult:
    grouping, series = time_series(rows, date_col, numeric)
    if not series:
        return RelationshipResult()

    trend = analyze_trend([float(p["average"]) for p in series])
    insight = None
    first, last = series[0], series[-1]
    if trend != "no trend" and first["average"] != 0:
        pct = ((last["average"] - first["average"]) / first["average"]) * 100.0
        insight = Insight(
            id=f"time-trend-{date_col}-{numeric}",
            title=f"{'Upward' if trend == 'increasing' else 'Downward'} trend in {numeric} over time",
            description=(
                f"{numeric} has {'increased' if trend == 'increasing' else 'decreased'} by {abs(pct):.1f}% "
                f"from {first['timePeriod']} to {last['timePeriod']}."
            ),
            importance=clamp_importance(min(abs(round_half_up(pct / 10)), 10)),
        )

    viz = VisualizationData(
        type="line",
        title=f"{numeric} over Time",
        description=f"Line chart showing how {numeric} changes over time (by {grouping})",
        x_axis=date_col,
        y_axis=numeric,
        data=series,
    )
    return RelationshipResult(insight=insight, visualization=viz)


STRATEGIES: dict[tuple[VariableType, VariableType], Strategy] = {
    ("numeric", "numeric"): analyze_numeric_numeric,
    ("categorical", "numeric"): analyze_categorical_numeric,
    ("numeric", "categorical"): analyze_numeric_categorical,
    ("categorical", "categorical"): analyze_categorical_categorical,
    ("date", "numeric"): analyze_date_numeric,
}
