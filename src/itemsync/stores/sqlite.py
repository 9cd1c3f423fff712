"""Persistent SQLite item store.

Each call opens a short-lived connection inside the event loop's default
executor so blocking database work never runs on the loop thread.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar

from pydantic import ValidationError

from itemsync.exceptions import StoreError
from itemsync.models.item import Item

_logger = logging.getLogger(__name__)

T = TypeVar("T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS items (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT '',
    value INTEGER NOT NULL DEFAULT 0
)
"""

_COLUMNS = ("id", "name", "description", "value")


def _row_to_item(row: sqlite3.Row) -> Item:
    return Item.model_validate({key: row[key] for key in _COLUMNS})


class SqliteItemStore:
    """Item store persisted to a SQLite database file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._schema_ready = False
        self._schema_lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        if not self._schema_ready:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        if not self._schema_ready:
            with self._schema_lock:
                if not self._schema_ready:
                    try:
                        conn.execute(_SCHEMA)
                        conn.commit()
                    except sqlite3.Error:
                        conn.close()
                        raise
                    self._schema_ready = True
        return conn

    async def _run(self, operation: str, fn: Callable[[sqlite3.Connection], T], item_id: str | None = None) -> T:
        def _work() -> T:
            with contextlib.closing(self._connect()) as conn, conn:
                return fn(conn)

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, _work)
        except (sqlite3.Error, OSError, ValidationError) as exc:
            raise StoreError(
                f"SQLite {operation} failed: {exc}",
                operation=operation,
                item_id=item_id,
            ) from exc

    async def index(self, force_reload: bool = False) -> list[Item]:
        def _select(conn: sqlite3.Connection) -> list[Item]:
            rows = conn.execute("SELECT id, name, description, value FROM items").fetchall()
            return [_row_to_item(row) for row in rows]

        return await self._run("index", _select)

    async def read(self, item_id: str) -> Item | None:
        def _select(conn: sqlite3.Connection) -> Item | None:
            row = conn.execute(
                "SELECT id, name, description, value FROM items WHERE id = ?",
                (item_id,),
            ).fetchone()
            return _row_to_item(row) if row is not None else None

        return await self._run("read", _select, item_id)

    async def create(self, item: Item) -> bool:
        params = _params(item)

        def _insert(conn: sqlite3.Connection) -> bool:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO items (id, name, description, value) VALUES (?, ?, ?, ?)",
                params,
            )
            return cursor.rowcount == 1

        created = await self._run("create", _insert, item.id)
        if not created:
            _logger.debug("Create rejected, id=%s already stored", item.id)
        return created

    async def update(self, item: Item) -> bool:
        id_, name, description, value = _params(item)

        def _update(conn: sqlite3.Connection) -> bool:
            cursor = conn.execute(
                "UPDATE items SET name = ?, description = ?, value = ? WHERE id = ?",
                (name, description, value, id_),
            )
            return cursor.rowcount == 1

        return await self._run("update", _update, item.id)

    async def delete(self, item_id: str) -> bool:
        def _delete(conn: sqlite3.Connection) -> bool:
            return conn.execute("DELETE FROM items WHERE id = ?", (item_id,)).rowcount == 1

        return await self._run("delete", _delete, item_id)

    async def wipe(self) -> None:
        def _wipe(conn: sqlite3.Connection) -> None:
            conn.execute("DELETE FROM items")

        await self._run("wipe", _wipe)


def _params(item: Item) -> tuple[Any, ...]:
    row = item.to_row()
    return tuple(row[key] for key in _COLUMNS)
