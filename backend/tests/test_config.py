from __future__ import annotations

import logging

from app.config import Settings
from app.middleware.logging_filter import RequestIdFilter, configure_logging


def test_unknown_env_keys_are_ignored():
    s = Settings(app_env="prod", openai_api_key=None)
    assert "app_env" not in Settings.model_fields
    assert s.llm_enabled is False
    assert Settings(openai_api_key="sk-test").llm_enabled is True


def test_configure_logging_is_idempotent():
    log = configure_logging("INFO")
    configure_logging("DEBUG")
    stamped = [h for h in log.handlers if any(isinstance(f, RequestIdFilter) for f in h.filters)]
    assert len(stamped) == 1
    assert log.level == logging.DEBUG
