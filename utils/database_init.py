import asyncio
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

DATABASE_FILENAME = "app.db"

KV_STORE_SCHEMA = """
CREATE TABLE IF NOT EXISTS KV_STORE (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at INTEGER
)
"""


def resolve_database_dir(parent_folder: Optional[Path | str] = None) -> Path:
    """
    Return the directory holding the database, creating it when missing.

    `parent_folder` wins over the DATABASE_DIR environment variable.

    Raises:
        RuntimeError: If no folder is configured, the path is a file, or the
            directory cannot be created.
    """
    configured = str(parent_folder) if parent_folder is not None else os.getenv("DATABASE_DIR", "")
    if not configured.strip():
        raise RuntimeError(
            "DATABASE_DIR environment variable must be set to a writable "
            "directory where the chat history database will be stored."
        )

    folder = Path(configured).expanduser()
    if folder.exists() and not folder.is_dir():
        raise RuntimeError(f"DATABASE_DIR={configured!r} points to a file, not a directory.")
    try:
        folder.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RuntimeError(f"Cannot create database directory {folder}") from exc
    return folder


class AsyncDatabaseInitializer:
    """
    Own the SQLite file (<folder>/app.db) that stores chat history.

    Tables are created on first use and existing rows are left untouched, so
    history survives restarts. `ensure_database()` is idempotent per instance.
    """

    def __init__(self, parent_folder: Optional[Path | str] = None) -> None:
        self.db_dir = resolve_database_dir(parent_folder)
        self.db_path = self.db_dir / DATABASE_FILENAME
        self._initialized = False

    async def ensure_database(self, max_attempts: int = 3) -> None:
        if self._initialized:
            return
        for attempt in range(1, max_attempts + 1):
            try:
                async with aiosqlite.connect(self.db_path) as db:
                    await db.execute(KV_STORE_SCHEMA)
                    await db.commit()
                break
            except FileNotFoundError:
                # Transient on some filesystems right after mkdir.
                if attempt >= max_attempts:
                    raise
                await asyncio.sleep(0.1 * attempt)
        self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield an open `aiosqlite.Connection`, creating the schema first if needed."""
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            yield conn
        finally:
            await conn.close()
