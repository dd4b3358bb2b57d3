import os

import pytest

from storage.pending_properties import (
    InMemoryPendingPropertyStore,
    SqlitePendingPropertyStore,
    build_property,
    create_store,
    new_property_id,
)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryPendingPropertyStore()
    return SqlitePendingPropertyStore(str(tmp_path / "data" / "pending.db"))


def test_build_property_defaults():
    prop = build_property({"url": "https://example.com/1"})
    assert prop["title"] == "Property"
    assert prop["address"] == ""
    assert prop["coordinates"] is None
    assert prop["isBTR"] is False
    assert prop["tags"] == []
    assert prop["processed"] is False
    assert prop["addedAt"]


def test_property_ids_are_unique():
    ids = {new_property_id() for _ in range(50)}
    assert len(ids) == 50


def test_insert_and_list(store):
    first = store.insert({"url": "https://example.com/1", "title": "Flat 1", "tags": ["btr"]})
    store.insert({
        "url": "https://example.com/2",
        "address": "London E16 1BQ",
        "price": "2100",
        "coordinates": {"lat": 51.5, "lng": 0.02},
        "isBTR": True,
    })

    pending = store.list_pending()
    assert [p["url"] for p in pending] == ["https://example.com/1", "https://example.com/2"]
    assert pending[0]["id"] == first["id"]
    assert pending[0]["tags"] == ["btr"]
    assert pending[1]["coordinates"] == {"lat": 51.5, "lng": 0.02}
    assert pending[1]["isBTR"] is True
    assert pending[1]["price"] == "2100"


def test_mark_processed_hides_property(store):
    first = store.insert({"url": "https://example.com/1"})
    store.insert({"url": "https://example.com/2"})

    assert store.mark_processed(first["id"]) is True
    assert [p["url"] for p in store.list_pending()] == ["https://example.com/2"]
    assert store.mark_processed("unknown") is False


def test_clear(store):
    store.insert({"url": "https://example.com/1"})
    store.clear()
    assert store.list_pending() == []


def test_sqlite_store_survives_reopen(tmp_path):
    path = str(tmp_path / "pending.db")
    SqlitePendingPropertyStore(path).insert({"url": "https://example.com/1"})
    assert [p["url"] for p in SqlitePendingPropertyStore(path).list_pending()] == ["https://example.com/1"]


def test_memory_store_returns_copies():
    store = InMemoryPendingPropertyStore()
    store.insert({"url": "https://example.com/1"})
    store.list_pending()[0]["processed"] = True
    assert len(store.list_pending()) == 1


def test_create_store(tmp_path):
    assert isinstance(create_store(), InMemoryPendingPropertyStore)
    sqlite_store = create_store(str(tmp_path / "pending.db"))
    assert isinstance(sqlite_store, SqlitePendingPropertyStore)
    assert os.path.exists(sqlite_store.db_path)
