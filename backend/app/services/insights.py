from __future__ import annotations

import math

from app.models import Insight, VariableSummary


MAX_IMPORTANCE = 10.0


def clamp_importance(x: float) -> float:
    if x is None or math.isnan(x):
        return 0.0
    return float(min(max(x, 0.0), MAX_IMPORTANCE))


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def shape_insights(target_summary: VariableSummary) -> list[Insight]:
    """
    Distribution-shape findings computed from the target's own summary:
    - numeric: skewness estimate (mean - median) / std
    - categorical: class imbalance of the most frequent category
    """
    variable = target_summary.variable
    stats = target_summary.stats
    insights: list[Insight] = []

    if target_summary.type == "numeric":
        mean, median, std = stats.get("mean"), stats.get("median"), stats.get("std_dev")
        if not stats.get("count") or not std or math.isnan(std):
            return insights
        skewness = (mean - median) / std
        if abs(skewness) > 0.5:
            side = "right" if skewness > 0 else "left"
            insights.append(
                Insight(
                    id="skewed-distribution",
                    title=f"{variable} has a {side}-skewed distribution",
                    description=f"The distribution of {variable} is {side}-skewed, with mean={mean:.2f} and median={median:.2f}.",
                    importance=clamp_importance(min(abs(skewness) * 10, 8)),
                )
            )

    elif target_summary.type == "categorical":
        top = stats.get("top_categories") or []
        total = int(stats.get("count") or 0)
        if len(top) > 1 and total > 0:
            top_cat = top[0]
            top_pct = (top_cat["count"] / total) * 100.0
            if top_pct > 75:
                insights.append(
                    Insight(
                        id="class-imbalance",
                        title=f"Significant class imbalance in {variable}",
                        description=f"{top_cat['category']} represents {top_pct:.1f}% of all {variable} values.",
                        importance=clamp_importance(min(top_pct / 10, 9)),
                    )
                )

    return insights


def rank_insights(insights: list[Insight], limit: int = 5) -> list[Insight]:
    return sorted(insights, key=lambda i: i.importance, reverse=True)[:limit]
