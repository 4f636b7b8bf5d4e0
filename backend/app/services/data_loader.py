from __future__ import annotations

import datetime as dt
import io
import math
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from app.models import Cell, ProcessedData
from app.services.profiling import build_dataset_summary
from app.services.values import is_missing


SUPPORTED_EXTS = {".csv", ".tsv", ".xlsx", ".xls", ".xlsm"}


class UnsupportedFileError(ValueError):
    pass


def safe_ext(filename: str) -> str:
    ext = Path(filename).suffix.lower()
    return ext if ext in SUPPORTED_EXTS else ""


def read_dataframe(filename: str, content: bytes) -> pd.DataFrame:
    ext = safe_ext(filename)
    if not ext:
        raise UnsupportedFileError("Unsupported file format. Please upload a CSV or Excel file.")
    buf = io.BytesIO(content)
    if ext == ".csv":
        return pd.read_csv(buf)
    if ext == ".tsv":
        return pd.read_csv(buf, sep="\t")
    # first sheet only
    return pd.read_excel(buf, sheet_name=0)


def load_processed_data(filename: str, content: bytes) -> ProcessedData:
    """
    Parse an uploaded CSV/TSV/Excel file into headers + rows of plain Python
    scalars, drop rows with no values at all, and infer the column types.
    """
    try:
        df = read_dataframe(filename, content)
    except UnsupportedFileError:
        raise
    except Exception as e:
        # corrupt workbooks surface as zipfile/openpyxl errors, not ValueError
        raise ValueError(f"Failed to parse file: {e}") from e
    return processed_from_dataframe(df)


def processed_from_dataframe(df: pd.DataFrame) -> ProcessedData:
    headers = [str(c) for c in df.columns]
    rows: list[dict[str, Cell]] = []
    for record in df.itertuples(index=False, name=None):
        row = {h: _cell(v) for h, v in zip(headers, record, strict=True)}
        if all(is_missing(v) for v in row.values()):
            continue
        rows.append(row)
    return ProcessedData(headers=headers, rows=rows, summary=build_dataset_summary(headers, rows))


def _cell(v: Any) -> Cell:
    if v is None or v is pd.NaT:
        return None
    if isinstance(v, (pd.Timestamp, dt.datetime)):
        ts = pd.Timestamp(v)
        if ts.tzinfo is None and ts == ts.normalize():
            return ts.strftime("%Y-%m-%d")
        return ts.isoformat()
    if isinstance(v, dt.date):
        return v.isoformat()
    if isinstance(v, np.generic):
        v = v.item()
    if isinstance(v, float) and math.isnan(v):
        return None
    if isinstance(v, (str, bool, int, float)):
        return v
    return str(v)
