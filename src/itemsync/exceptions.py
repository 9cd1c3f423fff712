"""Custom exception hierarchy for itemsync."""

from __future__ import annotations


class ItemSyncError(Exception):
    """Base exception for all itemsync errors."""


class ItemSyncConfigError(ItemSyncError):
    """Invalid or missing configuration."""


class StoreError(ItemSyncError):
    """Backing store I/O failure (database unavailable, corrupt row, ...)."""

    def __init__(
        self,
        message: str,
        *,
        operation: str = "",
        item_id: str | None = None,
    ) -> None:
        self.operation = operation
        self.item_id = item_id
        super().__init__(message)


class ChannelError(ItemSyncError):
    """Event channel misuse.

    Raised when publishing from another thread before the channel is bound
    to an event loop, or when a payload cannot be coerced for its topic.
    """
