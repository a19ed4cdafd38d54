import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

logger = logging.getLogger(__name__)

DB_FILENAME = "chat.db"

# Seconds a connection waits on a locked database before failing.
BUSY_TIMEOUT = 5.0

_SCHEMA = """
CREATE TABLE IF NOT EXISTS CHAT_MESSAGE (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL,
    role TEXT NOT NULL CHECK (role IN ('user', 'assistant')),
    text TEXT NOT NULL,
    created_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_chat_message_session ON CHAT_MESSAGE(session_id, id);
"""


def _resolve_db_dir(db_dir: Optional[Path | str]) -> Path:
    """Return a usable directory for the database file, creating it if needed."""
    raw_dir = str(db_dir) if db_dir is not None else os.getenv("DATABASE_DIR")
    if raw_dir is None or not raw_dir.strip():
        raise RuntimeError(
            "DATABASE_DIR must name a writable directory for the chat database."
        )

    path = Path(raw_dir).expanduser()
    if path.exists() and not path.is_dir():
        raise RuntimeError(f"DATABASE_DIR={raw_dir!r} is a file, expected a directory ({path}).")

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RuntimeError(f"Cannot create database directory {path}") from exc
    return path


class AsyncDatabaseInitializer:
    """
    Own the location and schema of the SQLite chat log.

    - The file lives at <db_dir>/chat.db; `db_dir` falls back to DATABASE_DIR.
    - `ensure_database()` creates the CHAT_MESSAGE table once per instance,
      deleting an existing file first when `reset` is True.
    - `connection()` hands out a fresh connection per operation, so concurrent
      exchanges never share a cursor.
    """

    def __init__(self, db_dir: Optional[Path | str] = None, *, reset: bool = False) -> None:
        self.db_dir = _resolve_db_dir(db_dir)
        self.db_path = self.db_dir / DB_FILENAME
        self.reset = reset
        self._schema_ready = False

    async def ensure_database(self) -> None:
        """Create the schema (after an optional reset); later calls do nothing."""
        if self._schema_ready:
            return

        if self.reset and self.db_path.exists():
            try:
                self.db_path.unlink()
            except OSError as exc:
                raise RuntimeError(f"Cannot reset chat database at {self.db_path}") from exc
            logger.info("Reset chat database at %s", self.db_path)

        async with aiosqlite.connect(self.db_path, timeout=BUSY_TIMEOUT) as db:
            await db.executescript(_SCHEMA)
            await db.commit()

        self._schema_ready = True
        logger.info("Chat database ready at %s", self.db_path)

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path, timeout=BUSY_TIMEOUT)
        try:
            yield conn
        finally:
            await conn.close()
