from __future__ import annotations

import io

import pandas as pd
import pytest

from app.services.data_loader import UnsupportedFileError, load_processed_data, safe_ext


def test_csv_rows_are_plain_python_values():
    data = load_processed_data("sales.csv", b"region,revenue,when\nEast,100,2024-01-01\nWest,50.5,2024-02-01\n")
    assert data.headers == ["region", "revenue", "when"]
    assert data.rows[0] == {"region": "East", "revenue": 100.0, "when": "2024-01-01"}
    assert type(data.rows[1]["revenue"]) is float
    assert data.summary.numeric_columns == ["revenue"]
    assert data.summary.categorical_columns == ["region"]
    assert data.summary.date_columns == ["when"]


def test_blank_rows_dropped_and_nan_becomes_none():
    data = load_processed_data("x.csv", b"a,b\n1,x\n,\n2,\n")
    assert data.summary.row_count == 2
    assert data.rows[1] == {"a": 2.0, "b": None}


def test_tsv():
    data = load_processed_data("x.tsv", b"a\tb\n1\tfoo\n")
    assert data.headers == ["a", "b"]
    assert data.rows == [{"a": 1, "b": "foo"}]


def test_excel_first_sheet_and_dates():
    buf = io.BytesIO()
    df = pd.DataFrame({"day": pd.to_datetime(["2024-01-01", "2024-01-02"]), "units": [3, 4]})
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="first")
        pd.DataFrame({"other": [1]}).to_excel(writer, index=False, sheet_name="second")

    data = load_processed_data("book.xlsx", buf.getvalue())
    assert data.headers == ["day", "units"]
    assert data.rows[0] == {"day": "2024-01-01", "units": 3}
    assert data.summary.date_columns == ["day"]
    assert data.summary.numeric_columns == ["units"]


def test_unsupported_extension():
    assert safe_ext("notes.TXT") == ""
    assert safe_ext("data.XLSX") == ".xlsx"
    with pytest.raises(UnsupportedFileError, match="Unsupported file format"):
        load_processed_data("notes.txt", b"hello")


def test_corrupt_excel_is_a_parse_error():
    with pytest.raises(ValueError, match="Failed to parse file"):
        load_processed_data("broken.xlsx", b"this is not a workbook")
