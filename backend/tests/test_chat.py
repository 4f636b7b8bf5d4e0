from __future__ import annotations

import json

import httpx

from app.config import Settings
from app.models import ChatReply, ProcessedData
from app.services import chat as chat_service
from app.services.chat import LLM_ERROR_MESSAGE, answer_question, build_dataset_context
from app.services.openai_chat import parse_model_reply
from app.services.profiling import build_dataset_summary


def _ds() -> ProcessedData:
    headers = ["city", "temp"]
    rows = [{"city": c, "temp": t} for c, t in [("Oslo", 3), ("Rome", 18), ("Oslo", 5), ("Lima", 20), ("Rome", 16), ("Oslo", 1)]]
    return ProcessedData(headers=headers, rows=rows, summary=build_dataset_summary(headers, rows))


def test_computed_answer_skips_model(monkeypatch):
    def boom(*args, **kwargs):
        raise AssertionError("model should not be called")

    monkeypatch.setattr(chat_service, "openai_answer", boom)
    reply = answer_question(_ds(), "how many rows?", settings=Settings(openai_api_key="sk-test"))
    assert reply.source == "computed"


def test_fallback_help_without_api_key():
    reply = answer_question(_ds(), "what's the weather like", settings=Settings(openai_api_key=None))
    assert reply.source == "fallback"
    assert "city, temp" in reply.message


def test_model_reply_is_returned(monkeypatch):
    seen = {}

    def fake(question, context, history, settings):
        seen.update(question=question, context=context, history=history)
        return ChatReply(message="Rome is warmest.", source="llm")

    monkeypatch.setattr(chat_service, "openai_answer", fake)
    history = [{"role": "user", "content": "hi"}]
    reply = answer_question(_ds(), "which city is warmest?", history=history, settings=Settings(openai_api_key="sk-test"))
    assert reply.message == "Rome is warmest."
    assert seen["history"] == history
    assert seen["context"]["columns"] == ["city", "temp"]


def test_model_failure_returns_apology(monkeypatch):
    def fail(*args, **kwargs):
        raise httpx.ConnectError("down")

    monkeypatch.setattr(chat_service, "openai_answer", fail)
    reply = answer_question(_ds(), "which city is warmest?", settings=Settings(openai_api_key="sk-test"))
    assert reply.source == "error"
    assert reply.message == LLM_ERROR_MESSAGE


def test_context_is_compact():
    settings = Settings(llm_max_sample_rows=2, llm_max_columns=1)
    ctx = build_dataset_context(_ds(), None, settings)
    assert ctx["columns"] == ["city"]
    assert ctx["sample_rows"] == [{"city": "Oslo"}, {"city": "Rome"}]
    assert ctx["column_summary"]["city"]["type"] == "categorical"
    assert "insights" not in ctx
    json.dumps(ctx)


def test_parse_model_reply_with_chart():
    content = json.dumps(
        {
            "message": "Here you go",
            "visualization": {"type": "bar", "title": "Temp", "description": "", "xAxis": "city", "data": [{"category": "Oslo", "value": 3}]},
        }
    )
    reply = parse_model_reply(content)
    assert reply.source == "llm"
    assert reply.visualization.type == "bar"
    assert reply.to_dict()["visualization"]["xAxis"] == "city"


def test_parse_model_reply_drops_bad_chart_and_keeps_prose():
    reply = parse_model_reply(json.dumps({"message": "ok", "visualization": {"type": "radar", "data": []}}))
    assert reply.visualization is None
    assert parse_model_reply("plain words").message == "plain words"
    assert parse_model_reply("").message == "No answer."
