"""Simple in-memory message store for local runs and tests."""

from __future__ import annotations

import asyncio
import itertools
import time
from typing import Dict, List, Optional

from models.chat_message import ChatMessage, validate_role
from models.errors import StoreUnavailable


class SessionStore:
	"""Keep per-session message logs in process memory.

	Mirrors the contract of `dal.chat_message_dal.ChatMessageDAL`. Contents
	are lost when the process exits.
	"""

	def __init__(self) -> None:
		self._sessions: Dict[str, List[ChatMessage]] = {}
		self._ids = itertools.count(1)
		self._lock = asyncio.Lock()
		self.available = True

	def _check_available(self) -> None:
		if not self.available:
			raise StoreUnavailable("In-memory message store is marked unavailable")

	async def append(self, session_id: str, role: str, text: str) -> ChatMessage:
		"""Append a message to the session log and return it."""
		validate_role(role)
		async with self._lock:
			self._check_available()
			message = ChatMessage(
				id=next(self._ids),
				session_id=session_id,
				role=role,
				text=text,
				created_at=time.time(),
			)
			self._sessions.setdefault(session_id, []).append(message)
			return message

	async def read_recent(
		self,
		session_id: str,
		limit: int,
		*,
		before_id: Optional[int] = None,
	) -> List[ChatMessage]:
		"""Return up to `limit` most recent messages, oldest first."""
		self._check_available()
		if limit <= 0:
			return []
		messages = self._sessions.get(session_id, [])
		if before_id is not None:
			messages = [msg for msg in messages if msg.id is not None and msg.id < before_id]
		return list(messages[-limit:])

	async def list_session_ids(self) -> List[str]:
		"""Return session ids, most recently active first."""
		self._check_available()
		ordered = sorted(
			self._sessions.items(),
			key=lambda item: item[1][-1].id or 0,
			reverse=True,
		)
		return [session_id for session_id, _ in ordered]
