from __future__ import annotations

import threading
from collections import OrderedDict

from app.storage.base import StoredDataset


class InMemoryDatasetStore:
    """
    Process-lifetime dataset registry. Nothing is written to disk; the oldest
    upload is evicted once `max_items` is exceeded.
    """

    def __init__(self, max_items: int = 20):
        self.max_items = max(1, int(max_items))
        self._items: OrderedDict[str, StoredDataset] = OrderedDict()
        self._lock = threading.Lock()

    def put(self, dataset: StoredDataset) -> None:
        with self._lock:
            self._items[dataset.id] = dataset
            self._items.move_to_end(dataset.id)
            while len(self._items) > self.max_items:
                self._items.popitem(last=False)

    def get(self, dataset_id: str) -> StoredDataset | None:
        with self._lock:
            return self._items.get(dataset_id)

    def delete(self, dataset_id: str) -> bool:
        with self._lock:
            return self._items.pop(dataset_id, None) is not None

    def list_datasets(self) -> list[StoredDataset]:
        with self._lock:
            return list(reversed(self._items.values()))
