"""Contract tests shared by both backing stores."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from itemsync.exceptions import StoreError
from itemsync.models.item import Item
from itemsync.stores import InMemoryItemStore, ItemStore, SqliteItemStore


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> ItemStore:
    if request.param == "memory":
        return InMemoryItemStore()
    return SqliteItemStore(tmp_path / "items.db")


def test_both_stores_satisfy_protocol(tmp_path: Path) -> None:
    assert isinstance(InMemoryItemStore(), ItemStore)
    assert isinstance(SqliteItemStore(tmp_path / "items.db"), ItemStore)


@pytest.mark.asyncio
async def test_create_read_index(store: ItemStore) -> None:
    assert await store.create(Item(id="1", name="B", description="x", value=2))
    assert await store.create(Item(id="2", name="A"))

    item = await store.read("1")
    assert item is not None
    assert (item.name, item.description, item.value) == ("B", "x", 2)
    assert sorted(i.id for i in await store.index(force_reload=True)) == ["1", "2"]


@pytest.mark.asyncio
async def test_duplicate_create_rejected(store: ItemStore) -> None:
    assert await store.create(Item(id="1", name="B"))
    assert not await store.create(Item(id="1", name="other"))
    item = await store.read("1")
    assert item is not None
    assert item.name == "B"


@pytest.mark.asyncio
async def test_read_missing_returns_none(store: ItemStore) -> None:
    assert await store.read("nope") is None


@pytest.mark.asyncio
async def test_update_and_delete(store: ItemStore) -> None:
    await store.create(Item(id="1", name="B"))

    assert await store.update(Item(id="1", name="Z", value=5))
    assert not await store.update(Item(id="9", name="ghost"))
    item = await store.read("1")
    assert item is not None
    assert (item.name, item.value) == ("Z", 5)

    assert await store.delete("1")
    assert not await store.delete("1")
    assert await store.read("1") is None


@pytest.mark.asyncio
async def test_wipe(store: ItemStore) -> None:
    await store.create(Item(id="1"))
    await store.create(Item(id="2"))
    await store.wipe()
    assert await store.index() == []


@pytest.mark.asyncio
async def test_returned_items_are_copies(store: ItemStore) -> None:
    original = Item(id="1", name="B")
    await store.create(original)
    original.name = "mutated"

    fetched = await store.read("1")
    assert fetched is not None
    assert fetched.name == "B"
    fetched.name = "also mutated"
    again = await store.read("1")
    assert again is not None
    assert again.name == "B"


@pytest.mark.asyncio
async def test_sqlite_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "items.db"
    await SqliteItemStore(path).create(Item(id="1", name="Kept"))

    reopened = SqliteItemStore(path)
    item = await reopened.read("1")
    assert item is not None
    assert item.name == "Kept"


@pytest.mark.asyncio
async def test_sqlite_failure_wrapped_in_store_error(tmp_path: Path) -> None:
    path = tmp_path / "items.db"
    with sqlite3.connect(path) as conn:
        conn.execute("CREATE TABLE items (unrelated TEXT)")

    store = SqliteItemStore(path)
    with pytest.raises(StoreError) as excinfo:
        await store.read("1")
    assert excinfo.value.operation == "read"
    assert excinfo.value.item_id == "1"
