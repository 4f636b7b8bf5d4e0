from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app import main


CSV = b"Region,Revenue\nEast,100\nEast,120\nWest,50\n"


@pytest.fixture()
def client():
    return TestClient(main.app)


@pytest.fixture()
def dataset_id(client):
    resp = client.post("/api/datasets/upload", files={"file": ("sales.csv", CSV, "text/csv")})
    assert resp.status_code == 200, resp.text
    return resp.json()["dataset_id"]


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert resp.headers.get("x-request-id")


def test_upload_returns_summary_and_preview(client):
    resp = client.post("/api/datasets/upload", files={"file": ("sales.csv", CSV, "text/csv")})
    body = resp.json()
    assert body["headers"] == ["Region", "Revenue"]
    assert body["summary"]["numeric_columns"] == ["Revenue"]
    assert body["summary"]["row_count"] == 3
    assert body["preview"][0] == {"Region": "East", "Revenue": 100}


def test_upload_rejects_unknown_format(client):
    resp = client.post("/api/datasets/upload", files={"file": ("notes.txt", b"hi", "text/plain")})
    assert resp.status_code == 400
    assert "Unsupported file format" in resp.json()["detail"]


def test_upload_too_large(client, monkeypatch):
    monkeypatch.setattr(main.settings, "max_upload_bytes", 10)
    resp = client.post("/api/datasets/upload", files={"file": ("sales.csv", CSV, "text/csv")})
    assert resp.status_code == 413


def test_get_list_delete(client, dataset_id):
    assert client.get(f"/api/datasets/{dataset_id}").json()["filename"] == "sales.csv"
    ids = [i["dataset_id"] for i in client.get("/api/datasets").json()["items"]]
    assert dataset_id in ids

    assert client.delete(f"/api/datasets/{dataset_id}").json() == {"ok": True}
    assert client.get(f"/api/datasets/{dataset_id}").status_code == 404
    assert client.delete(f"/api/datasets/{dataset_id}").status_code == 404


def test_analyze(client, dataset_id):
    resp = client.post(f"/api/datasets/{dataset_id}/analyze", json={"target": "Revenue"})
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["target_type"] == "numeric"
    assert body["insights"] == []
    assert [v["type"] for v in body["visualizations"]] == ["bar", "histogram"]
    assert body["meta"]["row_count"] == 3


def test_analyze_unknown_target(client, dataset_id):
    resp = client.post(f"/api/datasets/{dataset_id}/analyze", json={"target": "Profit"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Unknown column: Profit"


def test_column_summary(client, dataset_id):
    resp = client.post(f"/api/datasets/{dataset_id}/summaries/Revenue")
    assert resp.json()["stats"]["mean"] == 90


def test_visualization_builder(client, dataset_id):
    resp = client.post(f"/api/datasets/{dataset_id}/visualizations", json={"chart_type": "pie", "variable": "Region"})
    assert resp.status_code == 200
    assert resp.json()["data"][0] == {"category": "East", "count": 2}

    resp = client.post(f"/api/datasets/{dataset_id}/visualizations", json={"chart_type": "scatter", "variable": "Revenue"})
    assert resp.status_code == 400
    assert "secondary variable" in resp.json()["detail"]


def test_chat_computed(client, dataset_id):
    resp = client.post(f"/api/datasets/{dataset_id}/chat", json={"question": "how many rows?"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["source"] == "computed"
    assert body["message"] == "Your dataset has 3 rows of data."


def test_chat_missing_dataset(client):
    resp = client.post("/api/datasets/nope/chat", json={"question": "hi"})
    assert resp.status_code == 404


def test_request_id_is_echoed(client):
    resp = client.get("/health", headers={"x-request-id": "abc123"})
    assert resp.headers["x-request-id"] == "abc123"
    assert int(resp.headers["x-elapsed-ms"]) >= 0
