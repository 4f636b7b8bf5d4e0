from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Protocol

from app.models import ProcessedData


@dataclass(frozen=True)
class StoredDataset:
    id: str
    filename: str
    data: ProcessedData
    size_bytes: int = 0
    created_at: dt.datetime = field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))


class DatasetStore(Protocol):
    def put(self, dataset: StoredDataset) -> None: ...
    def get(self, dataset_id: str) -> StoredDataset | None: ...
    def delete(self, dataset_id: str) -> bool: ...
    def list_datasets(self) -> list[StoredDataset]: ...
