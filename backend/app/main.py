from __future__ import annotations

import time
import uuid

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.middleware.logging_filter import configure_logging
from app.middleware.request_id import RequestIdMiddleware
from app.schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    ChatRequest,
    ChatResponse,
    DatasetCreateResponse,
    DatasetGetResponse,
    DatasetListItem,
    DatasetListResponse,
    VisualizationRequest,
)
from app.services.analysis import analyze_dataset, summarize_dataset_column
from app.services.charts import build_visualization
from app.services.chat import answer_question
from app.services.data_loader import load_processed_data
from app.storage import get_storage
from app.storage.base import StoredDataset


settings = get_settings()
log = configure_logging(settings.log_level)

app = FastAPI(title="Dataset Insights API", version="0.1.0")

app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.allowed_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _get_dataset(dataset_id: str) -> StoredDataset:
    ds = get_storage().get(dataset_id)
    if ds is None:
        raise HTTPException(status_code=404, detail="Dataset not found")
    return ds


def _dataset_payload(ds: StoredDataset) -> dict:
    return {
        "dataset_id": ds.id,
        "filename": ds.filename,
        "headers": ds.data.headers,
        "summary": ds.data.summary.to_dict(),
        "preview": ds.data.rows[: settings.preview_rows],
    }


@app.get("/health")
def health():
    return {"ok": True}


@app.post("/api/datasets/upload", response_model=DatasetCreateResponse)
async def upload_dataset(file: UploadFile = File(...)):
    if not file.filename:
        raise HTTPException(status_code=400, detail="Missing filename")

    content = await file.read()
    if len(content) > int(settings.max_upload_bytes):
        raise HTTPException(status_code=413, detail="File too large")

    t0 = time.perf_counter()
    try:
        data = load_processed_data(file.filename, content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if not data.headers:
        raise HTTPException(status_code=400, detail="The uploaded file has no columns")

    ds = StoredDataset(id=str(uuid.uuid4()), filename=file.filename, data=data, size_bytes=len(content))
    get_storage().put(ds)

    log.info(
        "upload_parsed dataset_id=%s filename=%s rows=%s cols=%s numeric=%s categorical=%s date=%s ms=%s",
        ds.id,
        file.filename,
        data.summary.row_count,
        len(data.headers),
        len(data.summary.numeric_columns),
        len(data.summary.categorical_columns),
        len(data.summary.date_columns),
        int((time.perf_counter() - t0) * 1000),
    )
    return _dataset_payload(ds)


@app.get("/api/datasets", response_model=DatasetListResponse)
def list_datasets():
    items = [
        DatasetListItem(
            dataset_id=ds.id,
            filename=ds.filename,
            created_at=ds.created_at.isoformat(),
            rows=ds.data.summary.row_count,
            cols=len(ds.data.headers),
        )
        for ds in get_storage().list_datasets()
    ]
    return DatasetListResponse(items=items)


@app.get("/api/datasets/{dataset_id}", response_model=DatasetGetResponse)
def get_dataset(dataset_id: str):
    ds = _get_dataset(dataset_id)
    return {**_dataset_payload(ds), "size_bytes": ds.size_bytes, "created_at": ds.created_at.isoformat()}


@app.delete("/api/datasets/{dataset_id}")
def delete_dataset(dataset_id: str):
    if not get_storage().delete(dataset_id):
        raise HTTPException(status_code=404, detail="Dataset not found")
    return {"ok": True}


@app.post("/api/datasets/{dataset_id}/analyze", response_model=AnalyzeResponse)
def analyze(dataset_id: str, req: AnalyzeRequest):
    ds = _get_dataset(dataset_id)
    t0 = time.perf_counter()
    try:
        result = analyze_dataset(ds.data, req.target)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    ms = int((time.perf_counter() - t0) * 1000)

    log.info(
        "analysis_done dataset_id=%s target=%s target_type=%s insights=%s charts=%s ms=%s",
        dataset_id,
        result.target,
        result.target_type,
        len(result.insights),
        len(result.visualizations),
        ms,
    )
    meta = {"analysis_time_ms": ms, "row_count": ds.data.summary.row_count, "col_count": len(ds.data.headers)}
    return {"dataset_id": dataset_id, **result.to_dict(), "meta": meta}


@app.post("/api/datasets/{dataset_id}/summaries/{column}")
def summarize(dataset_id: str, column: str):
    ds = _get_dataset(dataset_id)
    try:
        return summarize_dataset_column(ds.data, column).to_dict()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@app.post("/api/datasets/{dataset_id}/visualizations")
def create_visualization(dataset_id: str, req: VisualizationRequest):
    ds = _get_dataset(dataset_id)
    try:
        viz = build_visualization(ds.data, req.chart_type, req.variable, req.secondary_variable, req.title)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return viz.to_dict()


@app.post("/api/datasets/{dataset_id}/chat", response_model=ChatResponse)
def chat(dataset_id: str, req: ChatRequest):
    ds = _get_dataset(dataset_id)

    analysis = None
    if req.target:
        try:
            analysis = analyze_dataset(ds.data, req.target)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

    t0 = time.perf_counter()
    reply = answer_question(
        ds.data,
        req.question,
        history=[t.model_dump() for t in req.history],
        settings=settings,
        analysis=analysis,
    )
    log.info(
        "chat dataset_id=%s source=%s has_chart=%s ms=%s",
        dataset_id,
        reply.source,
        reply.visualization is not None,
        int((time.perf_counter() - t0) * 1000),
    )
    return {"dataset_id": dataset_id, **reply.to_dict()}
