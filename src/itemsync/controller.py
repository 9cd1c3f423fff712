"""Item index controller.

Owns the item cache and keeps it in step with whichever backing store is
selected. Requests arrive either as direct calls or as events on an
:class:`~itemsync.channel.EventChannel`.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable
from typing import Any

from itemsync.channel import EventChannel
from itemsync.config import ItemSyncConfig
from itemsync.exceptions import StoreError
from itemsync.models.item import Item, sort_items
from itemsync.models.results import LoadResult, LoadStatus
from itemsync.models.source import DataSource
from itemsync.state.cache import ItemCache
from itemsync.state.events import ChannelEvent, Topic
from itemsync.stores.base import ItemStore
from itemsync.stores.memory import InMemoryItemStore
from itemsync.stores.sqlite import SqliteItemStore

_logger = logging.getLogger(__name__)


class LoadCommand:
    """Consumer-facing trigger for a full reload.

    ``can_execute()`` turns ``False`` while a load is in flight; listeners
    registered with :meth:`on_can_execute_changed` are told when it flips.
    """

    def __init__(
        self,
        execute: Callable[[], Awaitable[LoadResult]],
        can_execute: Callable[[], bool],
    ) -> None:
        self._execute = execute
        self._can_execute = can_execute
        self._listeners: list[Callable[[bool], None]] = []

    def can_execute(self) -> bool:
        return self._can_execute()

    async def execute(self) -> LoadResult:
        return await self._execute()

    def on_can_execute_changed(self, listener: Callable[[bool], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def raise_can_execute_changed(self) -> None:
        enabled = self.can_execute()
        for listener in list(self._listeners):
            try:
                listener(enabled)
            except Exception:
                _logger.debug("can_execute listener failed", exc_info=True)


class ItemIndexController:
    """Keeps an observable, sorted item list synchronized with a backing store.

    Usage::

        controller = ItemIndexController(config, channel=channel)
        async with controller:
            await controller.add(Item(name="Sword"))
            if controller.needs_refresh():
                render(controller.dataset)

    Every operation that mutates the cache runs under one lock, so adds,
    deletes, updates, loads and source switches never interleave. A load
    requested while another is pending or running is skipped.
    """

    def __init__(
        self,
        config: ItemSyncConfig | None = None,
        *,
        memory_store: ItemStore | None = None,
        persistent_store: ItemStore | None = None,
        channel: EventChannel | None = None,
    ) -> None:
        self._config = config or ItemSyncConfig()
        self._stores: dict[DataSource, ItemStore] = {
            DataSource.MEMORY: memory_store if memory_store is not None else InMemoryItemStore(),
            DataSource.SQLITE: (
                persistent_store if persistent_store is not None else SqliteItemStore(self._config.database_path)
            ),
        }
        self._lock = asyncio.Lock()
        self._busy = False
        self._needs_refresh = False
        self._flag_lock = threading.Lock()
        self._last_load_result: LoadResult | None = None
        self._initial_load: asyncio.Future[LoadResult] | None = None
        self._unsubscribers: list[Callable[[], None]] = []

        self.dataset = ItemCache()
        self.load_command = LoadCommand(self.execute_load_data_command, lambda: not self._busy)
        self._current_source = DataSource(self._config.default_data_source)
        self._store: ItemStore = self._stores[self._current_source]

        if channel is not None:
            self.attach(channel)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ItemIndexController:
        await self.initialize()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.detach()

    async def initialize(self) -> LoadResult:
        """Reset the cache and load the default data source.

        Load failures are swallowed and leave the cache empty; inspect the
        returned result (or :attr:`last_load_result`) to tell them apart.
        """
        async with self._lock:
            self._select_source_locked(DataSource(self._config.default_data_source))
            result = await self._reload_locked()

        self.set_needs_refresh(True)
        return result

    async def ensure_initialized(self) -> LoadResult:
        """Run :meth:`initialize` once; later and concurrent callers share its result."""
        if self._initial_load is None:
            self._initial_load = asyncio.ensure_future(self.initialize())
        return await asyncio.shield(self._initial_load)

    def attach(self, channel: EventChannel) -> None:
        """Subscribe the controller's handlers to *channel*."""
        handlers: dict[Topic, Callable[[ChannelEvent], Awaitable[None]]] = {
            Topic.SET_DATA_SOURCE: self._on_set_data_source,
            Topic.CREATE: self._on_create,
            Topic.DELETE: self._on_delete,
            Topic.UPDATE: self._on_update,
            Topic.WIPE_DATA_LIST: self._on_wipe_data_list,
        }
        for topic, handler in handlers.items():
            self._unsubscribers.append(channel.subscribe(topic, handler))

    def detach(self) -> None:
        unsubscribers = self._unsubscribers
        self._unsubscribers = []
        for unsubscribe in unsubscribers:
            unsubscribe()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def config(self) -> ItemSyncConfig:
        return self._config

    @property
    def current_data_source(self) -> DataSource:
        return self._current_source

    @property
    def store(self) -> ItemStore:
        return self._store

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def last_load_result(self) -> LoadResult | None:
        return self._last_load_result

    def _set_busy(self, value: bool) -> None:
        if self._busy == value:
            return
        self._busy = value
        self.load_command.raise_can_execute_changed()

    # ------------------------------------------------------------------
    # Data source
    # ------------------------------------------------------------------

    async def set_data_source(self, source_id: int) -> bool:
        """Switch the backing store and reload the cache from it.

        ``1`` selects the persistent store; anything else the transient
        one. Returns ``True`` once the load attempt completes, whether or
        not the load itself succeeded.
        """
        async with self._lock:
            self._select_source_locked(DataSource(source_id))
            await self._reload_locked()

        self.set_needs_refresh(True)
        return True

    def _select_source_locked(self, source: DataSource) -> None:
        self._current_source = source
        self._store = self._stores[source]
        _logger.debug("Data source set to %s", source.name)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def add(self, item: Item) -> bool:
        """Append *item* to the cache and persist it.

        Always returns ``True``: the store's outcome is logged, not
        reported. The cache is not re-sorted until the next full load.
        """
        async with self._lock:
            self.dataset.append(item)
            try:
                created = await self._store.create(item)
            except StoreError:
                _logger.debug("Persisting id=%s failed", item.id, exc_info=True)
                created = False

        if created:
            self.set_needs_refresh(True)
        else:
            _logger.debug("Store did not persist id=%s", item.id)
        return True

    async def delete(self, item: Item) -> bool:
        """Delete *item* if the store still has it.

        Returns ``False`` without touching the cache when the id is absent
        from the store, otherwise the store's delete outcome.
        """
        async with self._lock:
            existing = await self._store.read(item.id)
            if existing is None:
                _logger.debug("Delete skipped, id=%s not in store", item.id)
                return False

            self.dataset.remove_id(item.id)
            deleted = await self._store.delete(item.id)

        if deleted:
            self.set_needs_refresh(True)
        return deleted

    async def update(self, item: Item) -> bool:
        """Merge *item* into the stored item with the same id.

        Only fields explicitly set on *item* are copied; the stored id is
        kept. A full reload follows every update that reaches the store,
        even a failed one, so the cache is re-sorted from the store's view.
        That reload is O(store size) per update.
        """
        async with self._lock:
            existing = await self._store.read(item.id)
            if existing is None:
                _logger.debug("Update skipped, id=%s not in store", item.id)
                return False

            existing.update(item)
            try:
                updated = await self._store.update(existing)
            finally:
                await self._reload_locked()

        if updated:
            self.set_needs_refresh(True)
        return updated

    async def read(self, item_id: str) -> Item | None:
        """Read straight from the store; the cache is not consulted."""
        return await self._store.read(item_id)

    async def wipe_data_list(self) -> None:
        """Remove every item from the store.

        The cache keeps its contents until the next full load.
        """
        async with self._lock:
            await self._store.wipe()
        self.set_needs_refresh(True)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def needs_refresh(self) -> bool:
        """Return ``True`` once per raised flag, clearing it."""
        with self._flag_lock:
            value = self._needs_refresh
            self._needs_refresh = False
        return value

    def set_needs_refresh(self, value: bool) -> None:
        with self._flag_lock:
            self._needs_refresh = value

    async def force_data_refresh(self) -> LoadResult:
        return await self.load_command.execute()

    async def load(self) -> LoadResult:
        return await self.execute_load_data_command()

    async def execute_load_data_command(self) -> LoadResult:
        """Clear the cache and reload it, sorted, from the current store.

        Skipped when a load is already pending or running. The busy flag
        is claimed before waiting on the lock so overlapping requests fold
        into the first one.
        """
        if self._busy:
            return self._skipped()

        self._set_busy(True)
        try:
            async with self._lock:
                return await self._fetch_into_cache()
        finally:
            self._set_busy(False)

    async def _reload_locked(self) -> LoadResult:
        if self._busy:
            return self._skipped()

        self._set_busy(True)
        try:
            return await self._fetch_into_cache()
        finally:
            self._set_busy(False)

    def _skipped(self) -> LoadResult:
        _logger.debug("Load skipped, another load is in flight")
        return LoadResult(status=LoadStatus.SKIPPED, source=self._current_source)

    async def _fetch_into_cache(self) -> LoadResult:
        source = self._current_source
        try:
            self.dataset.clear()
            items = await self._store.index(force_reload=True)
            self.dataset.reset(sort_items(items))
        except Exception as exc:
            _logger.warning("Load from source=%s failed", source.name, exc_info=True)
            result = LoadResult(status=LoadStatus.FAILED, source=source, error=str(exc) or type(exc).__name__)
        else:
            _logger.debug("Loaded %d items from source=%s", len(self.dataset), source.name)
            result = LoadResult(status=LoadStatus.LOADED, source=source, count=len(self.dataset))
        self._last_load_result = result
        return result

    # ------------------------------------------------------------------
    # Channel handlers
    # ------------------------------------------------------------------

    async def _on_set_data_source(self, event: ChannelEvent) -> None:
        assert isinstance(event.payload, int)  # noqa: S101
        await self.set_data_source(event.payload)

    async def _on_create(self, event: ChannelEvent) -> None:
        assert isinstance(event.payload, Item)  # noqa: S101
        await self.add(event.payload)

    async def _on_delete(self, event: ChannelEvent) -> None:
        assert isinstance(event.payload, Item)  # noqa: S101
        await self.delete(event.payload)

    async def _on_update(self, event: ChannelEvent) -> None:
        assert isinstance(event.payload, Item)  # noqa: S101
        await self.update(event.payload)

    async def _on_wipe_data_list(self, event: ChannelEvent) -> None:
        await self.wipe_data_list()


_instance: ItemIndexController | None = None
_instance_lock = threading.Lock()


def get_controller(config: ItemSyncConfig | None = None) -> ItemIndexController:
    """Return the process-wide controller, building it on first access.

    *config* is only used by the call that builds the instance. Building
    is synchronous and does not load anything; async callers should use
    :func:`get_initialized_controller`, which also runs the initial load.
    """
    global _instance
    instance = _instance
    if instance is None:
        with _instance_lock:
            if _instance is None:
                _instance = ItemIndexController(config)
            instance = _instance
    return instance


async def get_initialized_controller(config: ItemSyncConfig | None = None) -> ItemIndexController:
    """Return the process-wide controller with its initial load done.

    The first caller triggers :meth:`ItemIndexController.initialize`;
    concurrent and later callers wait for that same load instead of
    starting another.
    """
    instance = get_controller(config)
    await instance.ensure_initialized()
    return instance
