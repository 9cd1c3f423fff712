"""Item record model."""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from typing import Any

from pydantic import Field, field_validator

from itemsync.models._base import ItemSyncBaseModel


def _new_id() -> str:
    return uuid.uuid4().hex


class Item(ItemSyncBaseModel):
    """A single record mirrored by the controller.

    Parameters
    ----------
    id : str
        Unique identifier. Generated when omitted.
    name : str
        Primary sort key of the item list.
    description : str
        Secondary sort key.
    value : int
        Free-form numeric attribute.
    """

    id: str = Field(default_factory=_new_id)
    name: str = ""
    description: str = ""
    value: int = 0

    @field_validator("id")
    @classmethod
    def _non_empty_id(cls, value: str) -> str:
        if not value:
            raise ValueError("id must be non-empty")
        return value

    @property
    def sort_key(self) -> tuple[str, str, str, str]:
        # Case-insensitive first; the raw strings keep the order total.
        return (self.name.casefold(), self.name, self.description.casefold(), self.description)

    def update(self, other: Item) -> Item:
        """Merge the fields explicitly set on *other* into this item.

        ``id`` is never overwritten. Returns ``self``.
        """
        for field_name in other.model_fields_set:
            if field_name == "id":
                continue
            setattr(self, field_name, getattr(other, field_name))
        return self

    def clone(self) -> Item:
        """Return an independent copy that keeps the set-fields bookkeeping."""
        return self.model_copy(deep=True)

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def sort_items(items: Iterable[Item]) -> list[Item]:
    """Sort by name then description, ascending and case-insensitive."""
    return sorted(items, key=lambda item: item.sort_key)
