import sqlite3

import pytest

from shiftclock.store import MemoryStore, SQLiteStore


@pytest.fixture(params=["sqlite", "memory"])
def kv(request):
    if request.param == "memory":
        yield MemoryStore()
        return
    store = SQLiteStore(":memory:")
    store.initialize()
    yield store
    store.close()


def test_get_set_remove(kv) -> None:
    assert kv.get("a") is None

    kv.set("a", "1")
    kv.set("a", "2")
    assert kv.get("a") == "2"

    kv.remove("a")
    assert kv.get("a") is None

    # Removing a missing key is a no-op.
    kv.remove("a")


def test_set_many_writes_and_removes(kv) -> None:
    kv.set("stale", "x")

    kv.set_many({"a": "1", "b": "2", "stale": None})

    assert kv.get("a") == "1"
    assert kv.get("b") == "2"
    assert kv.get("stale") is None


def test_sqlite_batch_rolls_back_on_error() -> None:
    store = SQLiteStore(":memory:")
    store.initialize()
    store.set("a", "1")

    with pytest.raises(sqlite3.Error):
        store.set_many({"a": "2", "b": object()})

    assert store.get("a") == "1"
    assert store.get("b") is None
    store.close()


def test_close_is_idempotent() -> None:
    store = SQLiteStore(":memory:")
    store.close()
    store.close()
