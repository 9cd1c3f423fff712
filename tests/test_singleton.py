from __future__ import annotations

import asyncio
import threading
from collections.abc import Iterator

import pytest

from itemsync import controller as controller_module
from itemsync.config import ItemSyncConfig
from itemsync.controller import ItemIndexController, get_controller, get_initialized_controller
from itemsync.models import DataSource, Item, LoadResult, LoadStatus


@pytest.fixture(autouse=True)
def _fresh_singleton(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setattr(controller_module, "_instance", None)
    yield


def test_same_instance_on_every_access() -> None:
    first = get_controller()
    assert isinstance(first, ItemIndexController)
    assert get_controller() is first


def test_config_only_used_on_first_access() -> None:
    first = get_controller(ItemSyncConfig(default_data_source=1))
    second = get_controller(ItemSyncConfig(default_data_source=0))
    assert second is first
    assert first.current_data_source == DataSource.SQLITE


def test_concurrent_first_access_builds_one_instance(monkeypatch: pytest.MonkeyPatch) -> None:
    built: list[ItemIndexController] = []
    original_init = ItemIndexController.__init__

    def _counting_init(self: ItemIndexController, *args: object, **kwargs: object) -> None:
        original_init(self, *args, **kwargs)  # type: ignore[arg-type]
        built.append(self)

    monkeypatch.setattr(ItemIndexController, "__init__", _counting_init)

    barrier = threading.Barrier(8)
    results: list[ItemIndexController] = []
    results_lock = threading.Lock()

    def _access() -> None:
        barrier.wait()
        instance = get_controller()
        with results_lock:
            results.append(instance)

    threads = [threading.Thread(target=_access) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(built) == 1
    assert len(results) == 8
    assert all(instance is built[0] for instance in results)


def test_plain_access_builds_without_loading() -> None:
    instance = get_controller()
    assert len(instance.dataset) == 0
    assert instance.last_load_result is None


@pytest.mark.asyncio
async def test_initialized_access_returns_loaded_cache() -> None:
    await get_controller().store.create(Item(id="1", name="A"))

    instance = await get_initialized_controller()

    assert instance is get_controller()
    assert instance.dataset.ids() == ["1"]
    assert instance.last_load_result is not None
    assert instance.last_load_result.status == LoadStatus.LOADED


@pytest.mark.asyncio
async def test_concurrent_initialized_access_loads_once(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[ItemIndexController] = []
    original_initialize = ItemIndexController.initialize

    async def _counting_initialize(self: ItemIndexController) -> LoadResult:
        calls.append(self)
        await asyncio.sleep(0)
        return await original_initialize(self)

    monkeypatch.setattr(ItemIndexController, "initialize", _counting_initialize)

    instances = await asyncio.gather(*(get_initialized_controller() for _ in range(6)))
    await get_initialized_controller()

    assert len(calls) == 1
    assert all(instance is instances[0] for instance in instances)
