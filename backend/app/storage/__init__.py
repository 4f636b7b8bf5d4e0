from __future__ import annotations

from functools import lru_cache

from app.config import get_settings
from app.storage.base import DatasetStore
from app.storage.memory import InMemoryDatasetStore


@lru_cache
def get_storage() -> DatasetStore:
    # Uploads live for the lifetime of the process only.
    return InMemoryDatasetStore(max_items=get_settings().max_datasets)
