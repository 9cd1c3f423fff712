"""
Item store protocol.

This module defines the ItemStore protocol that both backing stores
implement, so the controller can switch between them at runtime.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from itemsync.models.item import Item


@runtime_checkable
class ItemStore(Protocol):
    """
    Protocol for backing store implementations.

    Stores own their items: every item returned is a copy, and every item
    passed in is copied before being kept, so callers may mutate what
    they hold without affecting the store.
    """

    async def index(self, force_reload: bool = False) -> list[Item]:
        """
        Return every stored item, in no particular order.

        Args:
            force_reload: Bypass any store-side caching and read from the
                underlying storage.
        """
        ...

    async def read(self, item_id: str) -> Item | None:
        """
        Get a specific item by ID.

        Returns:
            The item if found, None otherwise. Only I/O failures raise.
        """
        ...

    async def create(self, item: Item) -> bool:
        """Persist a new item. Returns False if the id already exists."""
        ...

    async def update(self, item: Item) -> bool:
        """Overwrite the stored item with the same id. Returns False if absent."""
        ...

    async def delete(self, item_id: str) -> bool:
        """Remove an item. Returns False if absent."""
        ...

    async def wipe(self) -> None:
        """Remove every stored item."""
        ...
