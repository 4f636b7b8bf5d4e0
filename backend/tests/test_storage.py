from __future__ import annotations

from app.models import DatasetSummary, ProcessedData
from app.storage.base import StoredDataset
from app.storage.memory import InMemoryDatasetStore


def _stored(i: int) -> StoredDataset:
    data = ProcessedData(headers=[], rows=[], summary=DatasetSummary(row_count=0))
    return StoredDataset(id=f"ds{i}", filename=f"f{i}.csv", data=data)


def test_oldest_dataset_is_evicted():
    store = InMemoryDatasetStore(max_items=2)
    for i in range(3):
        store.put(_stored(i))
    assert store.get("ds0") is None
    assert [d.id for d in store.list_datasets()] == ["ds2", "ds1"]


def test_delete():
    store = InMemoryDatasetStore()
    store.put(_stored(1))
    assert store.delete("ds1") is True
    assert store.delete("ds1") is False
    assert store.get("ds1") is None
