"""Ordered, observable item cache.

The controller is the only writer. Consumers read it as a sequence and
subscribe to be told when it changes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import overload

from itemsync.models.item import Item

_logger = logging.getLogger(__name__)


class CacheAction(StrEnum):
    ADD = "add"
    REMOVE = "remove"
    RESET = "reset"


@dataclass(frozen=True, slots=True)
class CacheChange:
    """A single mutation of the cache.

    ``items`` holds the appended or removed items; for ``RESET`` it holds
    the full new contents (empty after a clear).
    """

    action: CacheAction
    items: tuple[Item, ...] = field(default_factory=tuple)


CacheListener = Callable[[CacheChange], None]


class ItemCache(Sequence[Item]):
    """In-memory mirror of the selected store."""

    def __init__(self) -> None:
        self._items: list[Item] = []
        self._listeners: list[CacheListener] = []

    @overload
    def __getitem__(self, index: int) -> Item: ...

    @overload
    def __getitem__(self, index: slice) -> list[Item]: ...

    def __getitem__(self, index: int | slice) -> Item | list[Item]:
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Item]:
        return iter(list(self._items))

    def __repr__(self) -> str:
        return f"ItemCache({[item.name for item in self._items]!r})"

    def snapshot(self) -> tuple[Item, ...]:
        return tuple(self._items)

    def ids(self) -> list[str]:
        return [item.id for item in self._items]

    def subscribe(self, listener: CacheListener) -> Callable[[], None]:
        """Register *listener*; the returned callable unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, change: CacheChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                _logger.debug("Cache listener failed action=%s", change.action, exc_info=True)

    # ------------------------------------------------------------------
    # Mutators (controller only)
    # ------------------------------------------------------------------

    def append(self, item: Item) -> None:
        self._items.append(item)
        self._notify(CacheChange(CacheAction.ADD, (item,)))

    def remove_id(self, item_id: str) -> int:
        """Remove every entry with *item_id*; returns how many were removed."""
        removed = tuple(item for item in self._items if item.id == item_id)
        if not removed:
            return 0
        self._items = [item for item in self._items if item.id != item_id]
        self._notify(CacheChange(CacheAction.REMOVE, removed))
        return len(removed)

    def clear(self) -> None:
        self._items = []
        self._notify(CacheChange(CacheAction.RESET))

    def reset(self, items: Iterable[Item]) -> None:
        self._items = list(items)
        self._notify(CacheChange(CacheAction.RESET, tuple(self._items)))
