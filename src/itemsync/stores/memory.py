"""Transient in-memory item store."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from itemsync.models.item import Item

_logger = logging.getLogger(__name__)


class InMemoryItemStore:
    """Dict-backed store whose contents live as long as the instance."""

    def __init__(self, items: Iterable[Item] | None = None) -> None:
        self._items: dict[str, Item] = {}
        for item in items or ():
            self._items[item.id] = item.clone()

    def __len__(self) -> int:
        return len(self._items)

    async def index(self, force_reload: bool = False) -> list[Item]:
        return [item.clone() for item in self._items.values()]

    async def read(self, item_id: str) -> Item | None:
        item = self._items.get(item_id)
        return item.clone() if item is not None else None

    async def create(self, item: Item) -> bool:
        if item.id in self._items:
            _logger.debug("Create rejected, id=%s already stored", item.id)
            return False
        self._items[item.id] = item.clone()
        return True

    async def update(self, item: Item) -> bool:
        if item.id not in self._items:
            return False
        self._items[item.id] = item.clone()
        return True

    async def delete(self, item_id: str) -> bool:
        return self._items.pop(item_id, None) is not None

    async def wipe(self) -> None:
        self._items.clear()
