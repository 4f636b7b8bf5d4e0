from __future__ import annotations

import logging
from typing import Any

import httpx

from app.config import Settings, get_settings
from app.models import AnalysisResult, ChatReply, ProcessedData
from app.services.openai_chat import openai_answer
from app.services.profiling import summarize_column
from app.services.query_engine import try_compute_answer


log = logging.getLogger("datainsights")

LLM_ERROR_MESSAGE = "Sorry, I had trouble processing your request. Please try again."


def answer_question(
    dataset: ProcessedData,
    question: str,
    history: list[dict[str, str]] | None = None,
    settings: Settings | None = None,
    analysis: AnalysisResult | None = None,
) -> ChatReply:
    settings = settings or get_settings()
    q = question.strip()

    # Prefer deterministic computed answers
    computed = try_compute_answer(dataset, q, analysis)
    if computed is not None:
        return computed

    if settings.llm_enabled:
        ctx = build_dataset_context(dataset, analysis, settings)
        try:
            return openai_answer(q, ctx, history, settings)
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            log.warning("llm_failed model=%s error=%s", settings.openai_model, type(e).__name__, exc_info=True)
            return ChatReply(message=LLM_ERROR_MESSAGE, source="error")

    return ChatReply(message=help_text(dataset), source="fallback")


def help_text(dataset: ProcessedData) -> str:
    cols = ", ".join(dataset.headers[:25])
    return (
        "I'm here to help you analyze your data. You can ask me to show visualizations, "
        "calculate statistics, or provide insights about specific variables, for example:\n"
        "- 'how many rows are there?'\n"
        "- 'show a histogram of <column>'\n"
        "- 'what is the average <column>?'\n"
        "- 'tell me about <column>'\n\n"
        f"Try referencing column names. I see: {cols}"
    )


def build_dataset_context(dataset: ProcessedData, analysis: AnalysisResult | None, settings: Settings) -> dict[str, Any]:
    """
    Keep context compact and safe to send:
    - schema + inferred types
    - per-column summaries (from the analysis when present)
    - ranked insights for the analysed target
    - a few sample rows
    """
    cols = dataset.headers[: settings.llm_max_columns]
    summary = dataset.summary

    by_name = {s.variable: s for s in analysis.summaries} if analysis is not None else {}
    col_summary: dict[str, Any] = {}
    for c in cols:
        s = by_name.get(c) or summarize_column(dataset.rows, c, dataset.column_type(c))
        stats = s.to_dict()["stats"]
        if "top_categories" in stats:
            stats["top_categories"] = stats["top_categories"][:6]
        col_summary[c] = {"type": s.type, **stats}

    ctx: dict[str, Any] = {
        "shape": {"rows": summary.row_count, "cols": len(dataset.headers)},
        "columns": cols,
        "numeric_columns": summary.numeric_columns,
        "categorical_columns": summary.categorical_columns,
        "date_columns": summary.date_columns,
        "column_summary": col_summary,
        "sample_rows": [{c: row.get(c) for c in cols} for row in dataset.rows[: settings.llm_max_sample_rows]],
    }
    if analysis is not None:
        ctx["target"] = analysis.target
        ctx["insights"] = [i.to_dict() for i in analysis.insights]
    return ctx
