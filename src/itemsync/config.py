"""Controller configuration for itemsync."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from itemsync.exceptions import ItemSyncConfigError


@dataclasses.dataclass(frozen=True)
class ItemSyncConfig:
    """Controller configuration.

    Parameters
    ----------
    default_data_source : int
        Data source selected on initialization. ``0`` is the transient
        in-memory store, ``1`` the persistent SQLite store. Any other
        value falls back to ``0``.
    database_path : str
        Path of the SQLite database backing the persistent store.
        ``":memory:"`` is not supported because every store call opens
        its own connection.
    bridge_topic_prefix : str
        Prefix of the message topics accepted by the bridge; a message on
        ``<prefix>/Create`` is published on the ``Create`` topic.
    """

    default_data_source: int = 0
    database_path: str = "itemsync.db"
    bridge_topic_prefix: str = "itemsync"

    def validate(self) -> ItemSyncConfig:
        """Check value ranges, returning ``self`` so calls can be chained."""
        if not self.bridge_topic_prefix.strip("/ "):
            raise ItemSyncConfigError("bridge_topic_prefix must be non-empty")
        if not self.database_path.strip():
            raise ItemSyncConfigError("database_path must be non-empty")
        return self

    @classmethod
    def from_env(cls, **overrides: Any) -> ItemSyncConfig:
        """Create configuration from environment variables.

        Reads optional ``ITEMSYNC_*`` variables. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        ItemSyncConfig
            Populated and validated configuration.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "ITEMSYNC_DATABASE_PATH": "database_path",
            "ITEMSYNC_BRIDGE_TOPIC_PREFIX": "bridge_topic_prefix",
        }
        _ENV_INT_MAP = {
            "ITEMSYNC_DEFAULT_DATA_SOURCE": "default_data_source",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = int(val)
            except ValueError as exc:
                raise ItemSyncConfigError(f"{env_key} must be an integer, got {val!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs).validate()
