"""Typed channel events.

Producers publish one of these per request. The payload is coerced at
construction so handlers receive the type their topic promises.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from itemsync.models.item import Item


class Topic(StrEnum):
    SET_DATA_SOURCE = "SetDataSource"
    CREATE = "Create"
    DELETE = "Delete"
    UPDATE = "Update"
    WIPE_DATA_LIST = "WipeDataList"


ITEM_TOPICS: frozenset[Topic] = frozenset({Topic.CREATE, Topic.DELETE, Topic.UPDATE})


class ChannelEvent(BaseModel):
    """A request delivered to the controller."""

    model_config = ConfigDict(frozen=True)

    topic: Topic
    payload: Item | int | bool
    source: str | None = Field(default=None, description="Free-form producer name")
    published_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="before")
    @classmethod
    def _coerce_payload(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        working = dict(values)
        topic = Topic(working.get("topic"))
        payload = working.get("payload")
        if topic in ITEM_TOPICS:
            if not isinstance(payload, Item):
                payload = Item.model_validate(payload)
        elif topic == Topic.SET_DATA_SOURCE:
            if isinstance(payload, bool) or not isinstance(payload, (int, str)):
                raise ValueError(f"{topic} payload must be an integer, got {payload!r}")
            payload = int(payload)
        else:
            payload = bool(payload)
        working["topic"] = topic
        working["payload"] = payload
        return working
