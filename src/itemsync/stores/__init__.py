"""Backing stores the controller can switch between."""

from itemsync.stores.base import ItemStore
from itemsync.stores.memory import InMemoryItemStore
from itemsync.stores.sqlite import SqliteItemStore

__all__ = ["InMemoryItemStore", "ItemStore", "SqliteItemStore"]
