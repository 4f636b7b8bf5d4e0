from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass, field
from typing import Any, Literal

import pandas as pd


VariableType = Literal["numeric", "categorical", "date"]
ChartType = Literal["bar", "line", "pie", "scatter", "heatmap", "box", "histogram", "area"]
Cell = str | int | float | bool | None


@dataclass(frozen=True)
class DatasetSummary:
    row_count: int
    numeric_columns: list[str] = field(default_factory=list)
    categorical_columns: list[str] = field(default_factory=list)
    date_columns: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_count": self.row_count,
            "numeric_columns": list(self.numeric_columns),
            "categorical_columns": list(self.categorical_columns),
            "date_columns": list(self.date_columns),
        }


@dataclass(frozen=True)
class ProcessedData:
    headers: list[str]
    rows: list[dict[str, Cell]]
    summary: DatasetSummary

    def column_type(self, name: str) -> VariableType:
        if name in self.summary.numeric_columns:
            return "numeric"
        if name in self.summary.date_columns:
            return "date"
        return "categorical"


@dataclass(frozen=True)
class VariableSummary:
    variable: str
    type: VariableType
    stats: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"variable": self.variable, "type": self.type, "stats": _jsonable(self.stats)}


@dataclass(frozen=True)
class Insight:
    id: str
    title: str
    description: str
    importance: float

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "description": self.description, "importance": float(self.importance)}


@dataclass(frozen=True)
class VisualizationData:
    type: ChartType
    title: str
    description: str
    data: list[dict[str, Any]]
    x_axis: str | None = None
    y_axis: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type, "title": self.title, "description": self.description}
        if self.x_axis is not None:
            out["xAxis"] = self.x_axis
        if self.y_axis is not None:
            out["yAxis"] = self.y_axis
        out["data"] = _jsonable(self.data)
        return out


@dataclass(frozen=True)
class RelationshipResult:
    insight: Insight | None = None
    visualization: VisualizationData | None = None

    @property
    def is_empty(self) -> bool:
        return self.insight is None and self.visualization is None


@dataclass(frozen=True)
class AnalysisResult:
    target: str
    target_type: VariableType
    summaries: list[VariableSummary]
    insights: list[Insight]
    visualizations: list[VisualizationData]

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target,
            "target_type": self.target_type,
            "summaries": [s.to_dict() for s in self.summaries],
            "insights": [i.to_dict() for i in self.insights],
            "visualizations": [v.to_dict() for v in self.visualizations],
        }


ChatSource = Literal["computed", "llm", "fallback", "error"]


@dataclass(frozen=True)
class ChatReply:
    message: str
    visualization: VisualizationData | None = None
    source: ChatSource = "computed"

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"message": self.message, "source": self.source}
        if self.visualization is not None:
            out["visualization"] = self.visualization.to_dict()
        return out


def _jsonable(x: Any) -> Any:
    # NaN/inf from degenerate columns must not reach the JSON encoder
    if isinstance(x, dict):
        return {str(k): _jsonable(v) for k, v in x.items()}
    if isinstance(x, (list, tuple)):
        return [_jsonable(v) for v in x]
    if isinstance(x, bool) or x is None or isinstance(x, str):
        return x
    if isinstance(x, (pd.Timestamp, dt.datetime, dt.date)):
        return x.isoformat()
    if isinstance(x, (int, float)):
        return x if math.isfinite(x) else None
    if hasattr(x, "item"):
        return _jsonable(x.item())
    return x
