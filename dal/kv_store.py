"""Bounded key-value stores used to persist conversation history.

Both stores enforce a total capacity in bytes across all stored values and
raise `StorageQuotaExceeded` when a write would go over it, mirroring a
browser-style local storage quota.
"""

from __future__ import annotations

import time
from typing import Dict, Optional

import aiosqlite

from utils.database_init import AsyncDatabaseInitializer

DEFAULT_CAPACITY_BYTES = 5 * 1024 * 1024


class StorageError(Exception):
    """The bounded store could not complete an operation."""


class StorageQuotaExceeded(StorageError):
    """A write was rejected because it would exceed the store's capacity."""


def _size(value: str) -> int:
    return len(value.encode("utf-8"))


class MemoryKeyValueStore:
    """Process-local bounded store."""

    def __init__(self, capacity_bytes: int = DEFAULT_CAPACITY_BYTES) -> None:
        self.capacity_bytes = capacity_bytes
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        used = sum(_size(v) for k, v in self._data.items() if k != key)
        if used + _size(value) > self.capacity_bytes:
            raise StorageQuotaExceeded(f"Writing {key!r} exceeds {self.capacity_bytes} bytes")
        self._data[key] = value


class SqliteKeyValueStore:
    """Bounded store kept in the KV_STORE table of the app database.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    def __init__(self, db_initializer: AsyncDatabaseInitializer, capacity_bytes: int = DEFAULT_CAPACITY_BYTES) -> None:
        self._db = db_initializer
        self.capacity_bytes = capacity_bytes

    async def get(self, key: str) -> Optional[str]:
        """Return the stored value for `key`, or None if absent."""
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute("SELECT value FROM KV_STORE WHERE key = ?", (key,))
                row = await cur.fetchone()
        except aiosqlite.Error as exc:
            raise StorageError(f"Failed to read {key!r}") from exc
        return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        """Insert or replace `key`.

        Raises:
            StorageQuotaExceeded: If the total stored size would exceed capacity.
            StorageError: On any database failure.
        """
        try:
            async with self._db.connection() as conn:
                cur = await conn.execute(
                    "SELECT COALESCE(SUM(LENGTH(CAST(value AS BLOB))), 0) FROM KV_STORE WHERE key != ?",
                    (key,),
                )
                row = await cur.fetchone()
                used = int(row[0]) if row and row[0] is not None else 0
                if used + _size(value) > self.capacity_bytes:
                    raise StorageQuotaExceeded(f"Writing {key!r} exceeds {self.capacity_bytes} bytes")
                await conn.execute(
                    "INSERT OR REPLACE INTO KV_STORE (key, value, updated_at) VALUES (?, ?, ?)",
                    (key, value, int(time.time())),
                )
                await conn.commit()
        except aiosqlite.Error as exc:
            raise StorageError(f"Failed to write {key!r}") from exc
