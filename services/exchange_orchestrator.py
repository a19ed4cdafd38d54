"""Run one chat exchange: persist the user turn, ask the model, persist the reply.

Each call runs exactly once and in order:

    Received -> UserPersisted -> WindowBuilt -> UpstreamCalled
             -> AssistantPersisted | Failed

The user turn is written before the upstream call and is never rolled back;
a failed exchange leaves the question in the log without an answer. Nothing
is retried.
"""

from __future__ import annotations

import enum
import logging
from typing import List, Optional, Protocol
from uuid import uuid4

from models.chat_message import ROLE_ASSISTANT, ROLE_USER, ChatMessage, ExchangeResult
from models.errors import InvalidInput
from services.context_window import ContextWindowBuilder
from services.openai.completion_client import CompletionParams

logger = logging.getLogger(__name__)


class ExchangeState(str, enum.Enum):
    RECEIVED = "received"
    USER_PERSISTED = "user_persisted"
    WINDOW_BUILT = "window_built"
    UPSTREAM_CALLED = "upstream_called"
    ASSISTANT_PERSISTED = "assistant_persisted"
    FAILED = "failed"


class MessageStore(Protocol):
    async def append(self, session_id: str, role: str, text: str) -> ChatMessage: ...

    async def read_recent(
        self, session_id: str, limit: int, *, before_id: Optional[int] = None
    ) -> List[ChatMessage]: ...


class Completer(Protocol):
    async def complete(self, turns: list, params: CompletionParams) -> str: ...


def new_session_id() -> str:
    return uuid4().hex


class ExchangeOrchestrator:
    """Handle chat exchanges against injected store and completion collaborators.

    Session ids supplied by callers are accepted verbatim without any
    ownership check; anyone who knows an id can read into and extend that
    conversation.
    """

    def __init__(
        self,
        store: MessageStore,
        window_builder: ContextWindowBuilder,
        completion_client: Completer,
        params: CompletionParams,
    ) -> None:
        self.store = store
        self.window_builder = window_builder
        self.completion_client = completion_client
        self.params = params

    async def handle_exchange(self, session_id: Optional[str], user_text: Optional[str]) -> ExchangeResult:
        """Persist `user_text`, generate a reply, persist it, and return it.

        Args:
            session_id: Existing conversation key, or None/"" to start a new one.
            user_text: The user's message; stored verbatim.

        Raises:
            InvalidInput: If `user_text` is missing or blank (nothing is written).
            StoreUnavailable: If either append fails.
            UpstreamTimeout, UpstreamError: If the completion call fails.
        """
        if not isinstance(user_text, str) or not user_text.strip():
            raise InvalidInput("Message is required")

        session_id = session_id or new_session_id()
        state = ExchangeState.RECEIVED
        try:
            user_message = await self.store.append(session_id, ROLE_USER, user_text)
            state = self._advance(session_id, ExchangeState.USER_PERSISTED)

            turns = await self.window_builder.build(
                session_id, user_text, before_id=user_message.id
            )
            state = self._advance(session_id, ExchangeState.WINDOW_BUILT)

            reply_text = await self.completion_client.complete(turns, self.params)
            state = self._advance(session_id, ExchangeState.UPSTREAM_CALLED)

            await self.store.append(session_id, ROLE_ASSISTANT, reply_text)
            self._advance(session_id, ExchangeState.ASSISTANT_PERSISTED)
        except Exception as exc:
            self._advance(session_id, ExchangeState.FAILED)
            logger.warning(
                "Exchange for session %s failed after %s: %s: %s",
                session_id,
                state.value,
                type(exc).__name__,
                exc,
            )
            raise

        logger.info("Exchange completed for session %s (%d reply chars)", session_id, len(reply_text))
        return ExchangeResult(session_id=session_id, reply_text=reply_text)

    @staticmethod
    def _advance(session_id: str, state: ExchangeState) -> ExchangeState:
        logger.debug("Session %s exchange -> %s", session_id, state.value)
        return state
