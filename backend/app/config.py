from __future__ import annotations

from functools import lru_cache

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # .env is loaded in get_settings(); a missing file is fine for tests and containers.
    model_config = SettingsConfigDict(extra="ignore")

    allowed_origins: str = "http://localhost:3000"
    log_level: str = "INFO"

    max_upload_bytes: int = 50_000_000
    max_datasets: int = 20
    preview_rows: int = 50

    openai_api_key: str | None = None
    openai_model: str = "gpt-4.1"
    openai_base_url: str = "https://api.openai.com/v1"
    openai_prompt_version: str = "v1"
    openai_timeout_s: float = 25.0
    openai_max_tokens: int = 700

    llm_max_sample_rows: int = 5
    llm_max_columns: int = 45

    @property
    def llm_enabled(self) -> bool:
        return bool(self.openai_api_key)


@lru_cache
def get_settings() -> Settings:
    load_dotenv(".env", override=False)
    return Settings()
