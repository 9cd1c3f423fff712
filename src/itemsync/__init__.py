"""itemsync - Async controller keeping an observable item list in sync with pluggable stores."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("itemsync")
except PackageNotFoundError:
    __version__ = "0+local"
from itemsync.bridge import MessageBridge, parse_bridge_message
from itemsync.channel import EventChannel
from itemsync.config import ItemSyncConfig
from itemsync.controller import ItemIndexController, LoadCommand, get_controller, get_initialized_controller
from itemsync.exceptions import ChannelError, ItemSyncConfigError, ItemSyncError, StoreError
from itemsync.models import DataSource, Item, LoadResult, LoadStatus
from itemsync.state.cache import CacheAction, CacheChange, ItemCache
from itemsync.state.events import ChannelEvent, Topic
from itemsync.stores import InMemoryItemStore, ItemStore, SqliteItemStore

__all__ = [
    "__version__",
    "CacheAction",
    "CacheChange",
    "ChannelError",
    "ChannelEvent",
    "DataSource",
    "EventChannel",
    "InMemoryItemStore",
    "Item",
    "ItemCache",
    "ItemIndexController",
    "ItemStore",
    "ItemSyncConfig",
    "ItemSyncConfigError",
    "ItemSyncError",
    "LoadCommand",
    "LoadResult",
    "LoadStatus",
    "MessageBridge",
    "SqliteItemStore",
    "StoreError",
    "Topic",
    "get_controller",
    "get_initialized_controller",
    "parse_bridge_message",
]
