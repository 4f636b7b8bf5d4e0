from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class DatasetSummaryOut(BaseModel):
    row_count: int
    numeric_columns: list[str]
    categorical_columns: list[str]
    date_columns: list[str]


class DatasetCreateResponse(BaseModel):
    dataset_id: str
    filename: str
    headers: list[str]
    summary: DatasetSummaryOut
    preview: list[dict[str, Any]]


class DatasetGetResponse(DatasetCreateResponse):
    size_bytes: int
    created_at: str


class DatasetListItem(BaseModel):
    dataset_id: str
    filename: str
    created_at: str
    rows: int
    cols: int


class DatasetListResponse(BaseModel):
    items: list[DatasetListItem]


class AnalyzeRequest(BaseModel):
    target: str = Field(min_length=1)


class AnalyzeResponse(BaseModel):
    dataset_id: str
    target: str
    target_type: Literal["numeric", "categorical", "date"]
    summaries: list[dict[str, Any]]
    insights: list[dict[str, Any]]
    visualizations: list[dict[str, Any]]
    meta: dict[str, Any]


class VisualizationRequest(BaseModel):
    chart_type: Literal["bar", "line", "pie", "scatter", "histogram"]
    variable: str = Field(min_length=1)
    secondary_variable: str | None = None
    title: str | None = None


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    question: str = Field(min_length=1, max_length=2000)
    history: list[ChatTurn] = Field(default_factory=list)
    target: str | None = None


class ChatResponse(BaseModel):
    dataset_id: str
    message: str
    visualization: dict[str, Any] | None = None
    source: Literal["computed", "llm", "fallback", "error"]
