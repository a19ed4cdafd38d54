"""Assemble the bounded context window sent to the completion service."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol

from models.chat_message import ROLE_USER, ChatMessage

logger = logging.getLogger(__name__)

ROLE_SYSTEM = "system"


class MessageReader(Protocol):
    async def read_recent(
        self, session_id: str, limit: int, *, before_id: Optional[int] = None
    ) -> List[ChatMessage]: ...


class ContextWindowBuilder:
    """Build `[persona, *recent history, new user text]` for one exchange.

    The window carries at most `window_size` conversation turns: up to
    `window_size - 1` prior messages plus the new user text. The persona
    entry is always first and is the same for every session.
    """

    def __init__(self, store: MessageReader, persona_prompt: str, window_size: int = 10) -> None:
        if window_size < 1:
            raise ValueError("window_size must be at least 1.")
        if not persona_prompt or not persona_prompt.strip():
            raise ValueError("persona_prompt must not be empty.")
        self.store = store
        self.persona_prompt = persona_prompt
        self.window_size = window_size

    async def build(
        self,
        session_id: str,
        new_user_text: str,
        *,
        before_id: Optional[int] = None,
    ) -> List[Dict[str, str]]:
        """Return the ordered turns for a completion request.

        Args:
            session_id: Conversation whose history is included.
            new_user_text: The just-submitted user text; always the final turn.
            before_id: When set, only history stored before this message id is
                used. Pass the id of the freshly appended user message so the
                new text is not included twice.
        """
        history = await self.store.read_recent(
            session_id, self.window_size - 1, before_id=before_id
        )

        turns: List[Dict[str, str]] = [{"role": ROLE_SYSTEM, "content": self.persona_prompt}]
        turns.extend(msg.as_turn() for msg in history)
        turns.append({"role": ROLE_USER, "content": new_user_text})

        logger.debug(
            "Built context window for session %s: %d prior turns", session_id, len(history)
        )
        return turns
