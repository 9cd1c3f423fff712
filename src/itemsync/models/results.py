"""Outcome of a full reload."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from itemsync.models.source import DataSource


class LoadStatus(StrEnum):
    LOADED = "loaded"
    SKIPPED = "skipped"
    FAILED = "failed"


class LoadResult(BaseModel):
    """Inspectable outcome of a full reload.

    Load failures never propagate to callers; this value is how they are
    observed instead.
    """

    model_config = ConfigDict(frozen=True)

    status: LoadStatus
    source: DataSource
    count: int = 0
    error: str | None = None
    finished_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def ok(self) -> bool:
        return self.status == LoadStatus.LOADED
