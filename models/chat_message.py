from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
MESSAGE_ROLES = (ROLE_USER, ROLE_ASSISTANT)


@dataclass(frozen=True)
class ChatMessage:
    """In-memory representation of a row in the CHAT_MESSAGE table.

    Attributes:
        id: Store-assigned insertion sequence; breaks `created_at` ties.
        session_id: Conversation the message belongs to.
        role: Either "user" or "assistant".
        text: Message body exactly as submitted or generated.
        created_at: Unix timestamp (seconds) when the message was appended.
    """

    id: Optional[int]
    session_id: str
    role: str
    text: str
    created_at: float

    def as_turn(self) -> dict:
        """Return the message as a completion-service turn."""
        return {"role": self.role, "content": self.text}


@dataclass(frozen=True)
class ExchangeResult:
    """Outcome of one successful exchange."""

    session_id: str
    reply_text: str


def validate_role(role: str) -> str:
    """Return `role` unchanged or raise ValueError if it is not a stored role."""
    if role not in MESSAGE_ROLES:
        raise ValueError(f"Unsupported message role '{role}'. Supported: {', '.join(MESSAGE_ROLES)}")
    return role
