from __future__ import annotations

from app.models import AnalysisResult, Insight, ProcessedData, VariableSummary, VisualizationData
from app.services.charts import target_visualizations
from app.services.insights import rank_insights, shape_insights
from app.services.profiling import summarize_column
from app.services.relationships import analyze_relationship


MAX_INSIGHTS = 5
MAX_VISUALIZATIONS = 5


class UnknownColumnError(ValueError):
    def __init__(self, column: str):
        super().__init__(f"Unknown column: {column}")
        self.column = column


def analyze_dataset(dataset: ProcessedData, target: str) -> AnalysisResult:
    """
    Summarize every column, relate each one to `target`, and keep the most
    important findings:
    - insights ranked by importance (top 5)
    - relationship charts first, then the target's own distribution (first 5)
    """
    if target not in dataset.headers:
        raise UnknownColumnError(target)

    rows = dataset.rows
    target_type = dataset.column_type(target)
    target_summary = summarize_column(rows, target, target_type)

    summaries: list[VariableSummary] = [target_summary]
    insights: list[Insight] = []
    visualizations: list[VisualizationData] = []

    for col in dataset.headers:
        if col == target:
            continue
        col_type = dataset.column_type(col)
        summaries.append(summarize_column(rows, col, col_type))

        rel = analyze_relationship(rows, col, col_type, target, target_type)
        if rel.insight is not None:
            insights.append(rel.insight)
        if rel.visualization is not None:
            visualizations.append(rel.visualization)

    insights.extend(shape_insights(target_summary))
    visualizations.extend(target_visualizations(rows, target, target_type))

    return AnalysisResult(
        target=target,
        target_type=target_type,
        summaries=summaries,
        insights=rank_insights(insights, limit=MAX_INSIGHTS),
        visualizations=visualizations[:MAX_VISUALIZATIONS],
    )


def summarize_dataset_column(dataset: ProcessedData, column: str) -> VariableSummary:
    if column not in dataset.headers:
        raise UnknownColumnError(column)
    return summarize_column(dataset.rows, column, dataset.column_type(column))
