"""Base model for itemsync payloads.

Every model exchanged with producers inherits from
:class:`ItemSyncBaseModel` which provides:

* case-insensitive field keys, so ``{"Id": ..., "Name": ...}`` produced
  by other clients maps onto ``id``/``name``.
* a ``model_validator(mode="before")`` that drops ``None`` values so the
  field keeps its default and does not count as explicitly set. Partial
  updates rely on this: a ``null`` in a producer payload means "leave
  unchanged", not "clear".
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class ItemSyncBaseModel(BaseModel):
    """Base for itemsync payload models."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    @staticmethod
    def _clean_dict(values: dict[str, Any], field_names: frozenset[str]) -> dict[str, Any]:
        """Drop ``None`` values and fold key case onto declared field names."""
        by_lower = {name.lower(): name for name in field_names}
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            target = by_lower.get(str(key).lower(), key)
            # An exact-case key wins over a folded one.
            if target in cleaned and key != target:
                continue
            cleaned[target] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        return ItemSyncBaseModel._clean_dict(values, frozenset(cls.model_fields))
