"""Client-side request and transcript models for the chat widget controller."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from typing import Optional

SENDER_USER = "user"
SENDER_BOT = "bot"
SENDER_SYSTEM = "system"


class ClientRequestStatus(str, enum.Enum):
    """Lifecycle of one send.

    PENDING only exists between creating a record and dispatching it;
    `ChatRequestController.send` moves it to THINKING synchronously.
    """

    PENDING = "pending"
    THINKING = "thinking"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset(
    {ClientRequestStatus.SUCCESS, ClientRequestStatus.FAILED, ClientRequestStatus.CANCELLED}
)


@dataclass
class ClientRequest:
    """Transient record of one send, never persisted.

    Attributes:
        text: Trimmed text the user submitted.
        status: Current lifecycle status.
        started_at: Monotonic clock reading when the send began.
        finished_at: Monotonic clock reading of the terminal transition.
        reply: Assistant reply on success.
        error: Failure cause when status is FAILED.
    """

    text: str
    status: ClientRequestStatus = ClientRequestStatus.PENDING
    started_at: float = field(default_factory=time.monotonic)
    finished_at: Optional[float] = None
    reply: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class RenderedMessage:
    """One entry in the client transcript.

    `system` entries are produced locally (failure notices) and are never
    sent to or stored by the server.
    """

    text: str
    sender: str
