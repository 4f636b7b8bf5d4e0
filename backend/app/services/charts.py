from __future__ import annotations

import math
from typing import Any

import numpy as np

from app.models import Cell, ChartType, ProcessedData, VariableType, VisualizationData
from app.services.profiling import category_counts
from app.services.values import numbers, to_number, to_text


BUILDER_CHART_TYPES: tuple[ChartType, ...] = ("bar", "line", "pie", "scatter", "histogram")


class VisualizationRequestError(ValueError):
    """A chart request that cannot be satisfied; the message is safe to show to the user."""


def histogram_bins(values: list[float], bin_count: int) -> list[dict[str, float | int]]:
    """
    Equal-width bins over [min, max]. The maximum lands in the last bin, so the
    counts always add up to len(values).
    """
    if not values or bin_count < 1:
        return []
    arr = np.asarray(values, dtype=float)
    vmin, vmax = float(arr.min()), float(arr.max())
    width = (vmax - vmin) / bin_count
    if width == 0:
        return [{"binStart": vmin, "binCenter": vmin, "binEnd": vmax, "count": int(arr.size)}]

    idx = np.minimum(np.floor((arr - vmin) / width).astype(int), bin_count - 1)
    counts = np.bincount(idx, minlength=bin_count)
    bins = []
    for i in range(bin_count):
        start = vmin + i * width
        bins.append({"binStart": start, "binCenter": start + width / 2, "binEnd": start + width, "count": int(counts[i])})
    return bins


def default_bin_count(n: int) -> int:
    return min(int(math.ceil(math.sqrt(n))), 20)


def range_buckets(values: list[float], bucket_count: int, count_key: str = "value") -> list[dict[str, Any]]:
    return [
        {"category": f"{b['binStart']:.1f}-{b['binEnd']:.1f}", count_key: b["count"]}
        for b in histogram_bins(values, bucket_count)
    ]


def category_frequencies(values: list[Cell], limit: int | None = None, count_key: str = "count") -> list[dict[str, Any]]:
    vc = category_counts(values)
    if limit is not None:
        vc = vc.head(limit)
    return [{"category": str(k), count_key: int(v)} for k, v in vc.items()]


def chunk_averages(values: list[float], max_points: int, label: str = "Point") -> list[dict[str, Any]]:
    """Collapse an ordered series to at most `max_points` averaged points."""
    if len(values) <= max_points:
        return [{"timePeriod": f"{label} {i + 1}", "average": v} for i, v in enumerate(values)]
    per = int(math.ceil(len(values) / max_points))
    out = []
    for i in range(0, len(values), per):
        chunk = values[i : i + per]
        out.append({"timePeriod": f"{label} {len(out) + 1}", "average": float(np.mean(chunk))})
    return out


def target_visualizations(rows: list[dict[str, Cell]], target: str, target_type: VariableType) -> list[VisualizationData]:
    """Single-variable chart for the target: histogram when numeric, pie when categorical."""
    out: list[VisualizationData] = []
    if target_type == "numeric":
        values = numbers([row.get(target) for row in rows])
        if values:
            out.append(
                VisualizationData(
                    type="histogram",
                    title=f"Distribution of {target}",
                    description=f"Histogram showing the distribution of {target} values",
                    x_axis=target,
                    y_axis="Frequency",
                    data=histogram_bins(values, default_bin_count(len(values))),
                )
            )
    elif target_type == "categorical":
        cats = category_frequencies([row.get(target) for row in rows])
        if cats:
            if len(cats) > 8:
                cats = [*cats[:7], {"category": "Other", "count": sum(c["count"] for c in cats[7:])}]
            out.append(
                VisualizationData(
                    type="pie",
                    title=f"Distribution of {target}",
                    description=f"Pie chart showing the distribution of {target} categories",
                    data=cats,
                )
            )
    return out


def build_visualization(
    dataset: ProcessedData,
    chart_type: str,
    variable: str | None,
    secondary: str | None = None,
    title: str | None = None,
) -> VisualizationData:
    """
    User-driven chart data for the visualization builder.
    Raises VisualizationRequestError with a user-facing message for invalid picks.
    """
    if not chart_type or not variable:
        raise VisualizationRequestError("Please select a chart type and at least one variable to create a visualization.")
    if chart_type not in BUILDER_CHART_TYPES:
        raise VisualizationRequestError(f"Unsupported chart type: {chart_type}")
    for col in [variable, secondary]:
        if col and col not in dataset.headers:
            raise VisualizationRequestError(f"Unknown column: {col}")

    rows = dataset.rows
    vtype = dataset.column_type(variable)
    title = title or f"{variable} Visualization"
    raw = [row.get(variable) for row in rows]

    if chart_type == "bar":
        if vtype == "numeric":
            return VisualizationData(
                type="bar",
                title=title,
                description=f"Distribution of {variable} by Range",
                x_axis="Range",
                y_axis="Count",
                data=range_buckets(numbers(raw), 8),
            )
        return VisualizationData(
            type="bar",
            title=title,
            description=f"Distribution of {variable}",
            x_axis=variable,
            y_axis="Count",
            data=category_frequencies(raw, limit=10, count_key="value"),
        )

    if chart_type == "line":
        sort_var = secondary or variable
        items = []
        for row in rows:
            v = to_number(row.get(variable))
            if v is None:
                continue
            items.append((_sort_key(row.get(sort_var)), v))
        items.sort(key=lambda it: it[0])
        return VisualizationData(
            type="line",
            title=title,
            description=f"Trend of {variable}",
            x_axis="Point",
            y_axis=variable,
            data=chunk_averages([v for _, v in items], max_points=20),
        )

    if chart_type == "pie":
        if vtype == "numeric":
            return VisualizationData(
                type="pie",
                title=title,
                description=f"Distribution of {variable} by Range",
                data=range_buckets(numbers(raw), 5, count_key="count"),
            )
        return VisualizationData(
            type="pie",
            title=title,
            description=f"Distribution of {variable}",
            data=category_frequencies(raw, limit=8),
        )

    if chart_type == "scatter":
        if not secondary:
            raise VisualizationRequestError("For scatter plots, please select a secondary variable.")
        if vtype != "numeric" or dataset.column_type(secondary) != "numeric":
            raise VisualizationRequestError("Scatter plots require numeric variables. Please select numeric columns for both variables.")
        points = []
        for row in rows:
            x, y = to_number(row.get(variable)), to_number(row.get(secondary))
            if x is None or y is None:
                continue
            points.append({"x": x, "y": y, "id": len(points)})
            if len(points) >= 100:
                break
        return VisualizationData(
            type="scatter",
            title=title,
            description=f"Relationship between {variable} and {secondary}",
            x_axis=variable,
            y_axis=secondary,
            data=points,
        )

    # histogram
    if vtype != "numeric":
        raise VisualizationRequestError("Histograms require numeric variables. Please select a numeric column.")
    return VisualizationData(
        type="histogram",
        title=title,
        description=f"Distribution of {variable}",
        x_axis=variable,
        y_axis="Frequency",
        data=histogram_bins(numbers(raw), 10),
    )


def _sort_key(value: Cell) -> tuple[int, float | str]:
    # numbers first in numeric order, then everything else as text
    n = to_number(value) if not isinstance(value, bool) else None
    if n is not None:
        return (0, n)
    return (1, to_text(value) or "")
