"""Data models for itemsync."""

from itemsync.models._base import ItemSyncBaseModel
from itemsync.models.item import Item, sort_items
from itemsync.models.results import LoadResult, LoadStatus
from itemsync.models.source import DataSource

__all__ = [
    "DataSource",
    "Item",
    "ItemSyncBaseModel",
    "LoadResult",
    "LoadStatus",
    "sort_items",
]
