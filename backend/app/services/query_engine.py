from __future__ import annotations

import itertools
import re

from app.models import AnalysisResult, ChatReply, ProcessedData, VisualizationData
from app.services.charts import category_frequencies, chunk_averages, histogram_bins, range_buckets
from app.services.profiling import category_counts, summarize_column
from app.services.relationships import correlation_strength, paired_numbers, pearson
from app.services.values import numbers, to_number, to_text


CHART_VERBS = ("show", "create", "visualize", "plot")
INSIGHT_WORDS = ("insight", "tell me about", "summar")


def try_compute_answer(dataset: ProcessedData, question: str, analysis: AnalysisResult | None = None) -> ChatReply | None:
    """
    Deterministic answers for common questions about an uploaded dataset.
    Returns None when no rule matches so the caller can try the model.
    """
    ql = question.strip().lower()
    if not ql:
        return None
    mentioned = mentioned_columns(dataset.headers, ql)

    # 1) Row count
    if "how many" in ql and "row" in ql:
        return ChatReply(message=f"Your dataset has {dataset.summary.row_count} rows of data.")

    # 2) Strongest correlation between numeric columns
    if "correlat" in ql:
        return _strongest_correlation(dataset, mentioned)

    # 3) Schema
    if "columns" in ql or "variables" in ql:
        return ChatReply(message=f"Your dataset has {len(dataset.headers)} columns: {', '.join(dataset.headers)}.")

    # 4) "show/plot <column>" charts
    if any(w in ql for w in CHART_VERBS) and mentioned:
        variable = mentioned[0]
        viz = _chart_for(dataset, variable, ql)
        if viz is None:
            return ChatReply(message=_no_chart_message(dataset, variable))
        return ChatReply(message=f"Here's a visualization for the {variable} variable:", visualization=viz)

    # 5) Average of a numeric column
    if "average" in ql or "mean" in ql:
        num_var = next((c for c in mentioned if dataset.column_type(c) == "numeric"), None)
        if num_var:
            values = numbers([row.get(num_var) for row in dataset.rows])
            if values:
                return ChatReply(message=f"The average {num_var} is {sum(values) / len(values):.2f}.")

    # 6) Category counts
    if "count" in ql or "how many" in ql:
        cat_var = next((c for c in mentioned if dataset.column_type(c) == "categorical"), None)
        if cat_var:
            return _category_count(dataset, cat_var, ql)

    # 7) Summaries
    if any(w in ql for w in INSIGHT_WORDS):
        return ChatReply(message=_insight_text(dataset, mentioned, analysis))

    return None


def mentioned_columns(headers: list[str], ql: str) -> list[str]:
    return [h for h in headers if h and h.lower() in ql]


def _strongest_correlation(dataset: ProcessedData, mentioned: list[str]) -> ChatReply:
    nums = dataset.summary.numeric_columns
    if len(nums) < 2:
        return ChatReply(message="I need at least two numeric columns to measure a correlation.")

    focus = [c for c in mentioned if c in nums]
    if len(focus) >= 2:
        pairs = [(focus[0], focus[1])]
    elif len(focus) == 1:
        pairs = [(focus[0], c) for c in nums if c != focus[0]]
    else:
        pairs = list(itertools.combinations(nums, 2))

    best: tuple[str, str, float] | None = None
    for a, b in pairs:
        r = pearson(*paired_numbers(dataset.rows, a, b))
        if r is None:
            continue
        if best is None or abs(r) > abs(best[2]):
            best = (a, b, r)

    if best is None:
        return ChatReply(message="I couldn't measure a correlation: the numeric columns don't vary together over enough rows.")

    a, b, r = best
    xs, ys = paired_numbers(dataset.rows, a, b)
    direction = "positive" if r > 0 else "negative"
    viz = VisualizationData(
        type="scatter",
        title=f"{a} vs {b}",
        description=f"Scatter plot showing relationship between {a} and {b}",
        x_axis=a,
        y_axis=b,
        data=[{"x": x, "y": y, "id": i} for i, (x, y) in enumerate(zip(xs[:100], ys[:100], strict=True))],
    )
    return ChatReply(
        message=f"The strongest correlation is between {a} and {b}: a {correlation_strength(r)} {direction} relationship (r = {r:.2f}).",
        visualization=viz,
    )


def _chart_for(dataset: ProcessedData, variable: str, ql: str) -> VisualizationData | None:
    vtype = dataset.column_type(variable)
    raw = [row.get(variable) for row in dataset.rows]

    if vtype == "numeric":
        values = numbers(raw)
        if "histogram" in ql or "distribution" in ql:
            return VisualizationData(
                type="histogram",
                title=f"Distribution of {variable}",
                description=f"Histogram showing the distribution of values for {variable}",
                x_axis=variable,
                y_axis="Frequency",
                data=histogram_bins(values, 10),
            )
        if "line" in ql or "trend" in ql:
            return VisualizationData(
                type="line",
                title=f"Trend of {variable}",
                description=f"Line chart showing the trend of {variable}",
                x_axis="Time Period",
                y_axis=variable,
                data=chunk_averages(values, 12, label="Period"),
            )
        if "bar" in ql:
            return VisualizationData(
                type="bar",
                title=f"{variable} by Range",
                description=f"Bar chart showing distribution of {variable} by range",
                x_axis="Range",
                y_axis="Count",
                data=range_buckets(values, 5),
            )
        second = next((c for c in dataset.summary.numeric_columns if c != variable), None)
        if second is None:
            return None
        return VisualizationData(
            type="scatter",
            title=f"{variable} vs {second}",
            description=f"Scatter plot showing relationship between {variable} and {second}",
            x_axis=variable,
            y_axis=second,
            data=[
                {"id": i, "x": to_number(row.get(variable)) or 0.0, "y": to_number(row.get(second)) or 0.0}
                for i, row in enumerate(dataset.rows[:30])
            ],
        )

    if vtype == "categorical":
        if "pie" in ql or "proportion" in ql:
            return VisualizationData(
                type="pie",
                title=f"Distribution of {variable}",
                description=f"Pie chart showing the distribution of categories for {variable}",
                data=category_frequencies(raw, limit=8),
            )
        return VisualizationData(
            type="bar",
            title=f"Distribution of {variable}",
            description=f"Bar chart showing the distribution of categories for {variable}",
            x_axis=variable,
            y_axis="Count",
            data=category_frequencies(raw, limit=8, count_key="value"),
        )

    years = summarize_column(dataset.rows, variable, "date").stats["year_distribution"]
    if not years:
        return None
    return VisualizationData(
        type="bar",
        title=f"{variable} by Year",
        description=f"Bar chart showing how many records fall in each year of {variable}",
        x_axis="Year",
        y_axis="Count",
        data=[{"category": y, "value": n} for y, n in years.items()],
    )


def _category_count(dataset: ProcessedData, cat_var: str, ql: str) -> ChatReply:
    vc = category_counts([row.get(cat_var) for row in dataset.rows])

    # longest category label spelled out in the question wins
    named = None
    for cat in sorted(vc.index, key=len, reverse=True):
        if re.search(rf"(?<!\w){re.escape(str(cat).lower())}(?!\w)", ql):
            named = str(cat)
            break

    if named is not None:
        n = sum(1 for row in dataset.rows if (to_text(row.get(cat_var)) or "").lower() == named.lower())
        return ChatReply(message=f'There are {n} records where {cat_var} is "{named}".')

    lines = "\n".join(f"- {k}: {int(v)}" for k, v in vc.items())
    return ChatReply(message=f"Here's the count for each {cat_var} category:\n\n{lines}")


def _insight_text(dataset: ProcessedData, mentioned: list[str], analysis: AnalysisResult | None) -> str:
    rows = dataset.rows
    total = len(rows)

    if mentioned:
        variable = mentioned[0]
        vtype = dataset.column_type(variable)
        content = f"Based on my analysis of {variable}:"
        stats = summarize_column(rows, variable, vtype).stats
        if vtype == "numeric" and stats["count"]:
            content += f"\n\n1. The average value is {stats['mean']:.2f}."
            content += f"\n\n2. The highest value is {stats['max']:.2f}."
            content += f"\n\n3. The lowest value is {stats['min']:.2f}."
        elif vtype == "categorical" and stats["count"]:
            top = stats["top_categories"]
            content += f"\n\n1. The most common category is '{top[0]['category']}', representing {top[0]['count'] / total * 100:.1f}% of the data."
            if len(top) > 1:
                content += f"\n\n2. The second most common is '{top[1]['category']}', with {top[1]['count'] / total * 100:.1f}% of records."
            content += f"\n\n3. There are {stats['unique_count']} unique categories in total."
        elif vtype == "date" and stats["count"]:
            content += f"\n\n1. Dates run from {stats['min'].date()} to {stats['max'].date()} ({stats['range_days']} days)."
            busiest = max(stats["year_distribution"].items(), key=lambda kv: kv[1])
            content += f"\n\n2. The busiest year is {busiest[0]} with {busiest[1]} records."
    else:
        summary = dataset.summary
        content = "Based on my analysis of your data:"
        content += f"\n\n1. Your dataset contains {total} records and {len(dataset.headers)} variables."
        content += (
            f"\n\n2. There are {len(summary.numeric_columns)} numerical and "
            f"{len(summary.categorical_columns)} categorical variables."
        )
        if summary.categorical_columns:
            diversity = [(c, int(category_counts([row.get(c) for row in rows]).size)) for c in summary.categorical_columns]
            col, n = max(diversity, key=lambda cn: cn[1])
            content += f"\n\n3. The variable with the most diversity is '{col}' with {n} unique values."

    if analysis is not None and analysis.insights:
        findings = "\n".join(f"- {i.title}: {i.description}" for i in analysis.insights[:3])
        content += f"\n\nKey findings for {analysis.target}:\n{findings}"
    return content


def _no_chart_message(dataset: ProcessedData, variable: str) -> str:
    if dataset.column_type(variable) == "numeric":
        return (
            f"{variable} is the only numeric column, so there is nothing to plot it against. "
            f"Try asking for a histogram, trend line or bar chart of {variable}."
        )
    return f"I couldn't find any valid dates in {variable} to plot."
