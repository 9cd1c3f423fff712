"""Data source selector."""

from __future__ import annotations

import enum


class DataSource(enum.IntEnum):
    """Backing store selected by the controller.

    Values without a mapped member resolve to :attr:`MEMORY` instead of
    raising ``ValueError``, so producers sending an unexpected selector
    always land on the transient store.
    """

    MEMORY = 0
    SQLITE = 1

    @classmethod
    def _missing_(cls, value: object) -> DataSource:
        return cls.MEMORY
