from __future__ import annotations

import os

import pytest

from app.config import get_settings
from app.services.openai_chat import openai_answer


@pytest.mark.skipif(os.getenv("RUN_OPENAI_EVALS") != "1", reason="Set RUN_OPENAI_EVALS=1 to run OpenAI evals")
def test_openai_returns_json_message():
    if not os.getenv("OPENAI_API_KEY"):
        pytest.skip("OPENAI_API_KEY not set")
    ctx = {
        "shape": {"rows": 2, "cols": 3},
        "columns": ["date", "customer", "revenue"],
        "numeric_columns": ["revenue"],
        "categorical_columns": ["customer"],
        "date_columns": ["date"],
        "column_summary": {},
        "sample_rows": [
            {"date": "2024-01-01", "customer": "A", "revenue": 10},
            {"date": "2024-01-02", "customer": "B", "revenue": 5},
        ],
    }
    ans = openai_answer("What is the total revenue?", ctx, [], get_settings())
    assert ans.source == "llm"
    assert ans.message
    if ans.visualization is not None:
        assert isinstance(ans.visualization.data, list)
