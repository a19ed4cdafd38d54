"""Async Data Access Layer for the CHAT_MESSAGE table.

Provides ChatMessageDAL, the durable message store. Every append is
committed before the call returns. Database failures surface as
`StoreUnavailable` so callers never see driver-specific exceptions.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Sequence

import aiosqlite

from models.chat_message import ChatMessage, validate_role
from models.errors import StoreUnavailable
from utils.database_init import AsyncDatabaseInitializer

logger = logging.getLogger(__name__)

_DB_ERRORS = (aiosqlite.Error, sqlite3.Error, OSError, RuntimeError)


class ChatMessageDAL:
    """Data access layer for chat messages.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _COLUMNS = ("id", "session_id", "role", "text", "created_at")
    _COLUMN_LIST, _INSERT_COLUMNS = ", ".join(_COLUMNS), ", ".join(_COLUMNS[1:])

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with self._db.connection() as conn:
                yield conn
        except _DB_ERRORS as exc:
            logger.error("Message store operation failed: %s", exc)
            raise StoreUnavailable(f"Message store unavailable: {exc}") from exc

    async def append(self, session_id: str, role: str, text: str) -> ChatMessage:
        """Insert a message and return it with its assigned id.

        Args:
            session_id: Conversation key.
            role: "user" or "assistant".
            text: Message body, stored verbatim.

        Raises:
            StoreUnavailable: If the database cannot be reached or the write fails.
        """
        validate_role(role)
        created_at = time.time()

        async with self._connection() as conn:
            cur = await conn.execute(
                f"INSERT INTO CHAT_MESSAGE ({self._INSERT_COLUMNS}) VALUES (?, ?, ?, ?)",
                (session_id, role, text, created_at),
            )
            await conn.commit()
            message_id = cur.lastrowid

        logger.debug("Appended %s message %s to session %s", role, message_id, session_id)
        return ChatMessage(
            id=message_id,
            session_id=session_id,
            role=role,
            text=text,
            created_at=created_at,
        )

    async def read_recent(
        self,
        session_id: str,
        limit: int,
        *,
        before_id: Optional[int] = None,
    ) -> List[ChatMessage]:
        """Return up to `limit` most recent messages for a session, oldest first.

        Unknown sessions yield an empty list.

        Args:
            session_id: Conversation key.
            limit: Maximum number of messages to return.
            before_id: Only consider messages inserted before this id.
        """
        if limit <= 0:
            return []

        sql = f"SELECT {self._COLUMN_LIST} FROM CHAT_MESSAGE WHERE session_id = ?"
        params: list = [session_id]
        if before_id is not None:
            sql += " AND id < ?"
            params.append(before_id)
        sql += " ORDER BY created_at DESC, id DESC LIMIT ?"
        params.append(limit)

        async with self._connection() as conn:
            cur = await conn.execute(sql, tuple(params))
            rows = await cur.fetchall()

        return [self._row_to_message(r) for r in reversed(rows)]

    async def read_session(self, session_id: str) -> List[ChatMessage]:
        """Return the whole log of a session, oldest first."""
        async with self._connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._COLUMN_LIST} FROM CHAT_MESSAGE WHERE session_id = ? "
                "ORDER BY created_at, id",
                (session_id,),
            )
            rows = await cur.fetchall()
        return [self._row_to_message(r) for r in rows]

    async def list_session_ids(self) -> List[str]:
        """Return every session id, most recently active first."""
        async with self._connection() as conn:
            cur = await conn.execute(
                "SELECT session_id FROM CHAT_MESSAGE GROUP BY session_id ORDER BY MAX(id) DESC"
            )
            rows = await cur.fetchall()
        return [r[0] for r in rows]

    @staticmethod
    def _row_to_message(row: Sequence[object]) -> ChatMessage:
        """Convert a DB row tuple into a ChatMessage."""
        return ChatMessage(
            id=row[0],
            session_id=row[1],
            role=row[2],
            text=row[3],
            created_at=row[4],
        )
