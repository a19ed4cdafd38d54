"""Client-side controller for sending chat messages to the ORVI API.

Tracks each send through pending -> thinking -> success | failed | cancelled,
keeps the rendered transcript, and guarantees forward progress with a hard
timeout that aborts the HTTP request instead of ignoring its result.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from models.client_state import (
    SENDER_BOT,
    SENDER_SYSTEM,
    SENDER_USER,
    ClientRequest,
    ClientRequestStatus,
    RenderedMessage,
)
from models.errors import ClientAborted, UpstreamError
from utils.settings import get_settings

logger = logging.getLogger(__name__)

CHAT_PATH = "/api/chat"

DEFAULT_GREETING = (
    "👋 Hey! I’m ORVI, your smart ORVN AI assistant.",
    "Ask me about ORVN, our mission, services, campuses, or how to join. 💜",
)
UNAVAILABLE_NOTICE = "⚠️ Chatbot is currently unavailable."
ERROR_NOTICE = "⚠️ Something went wrong while sending your message."
FAILURE_MESSAGE = "Hmm… I couldn’t reach my brain right now. Please try again later."

Notifier = Callable[[str, str], None]


def _log_notice(message: str, level: str) -> None:
    logger.warning("[%s] %s", level, message)


def is_unavailable(error: Exception) -> bool:
    """Return True when `error` means the service could not be reached."""
    if isinstance(error, ClientAborted):
        return True
    if isinstance(error, UpstreamError):
        return error.status_code is None or error.status_code >= 500
    return False


class ChatRequestController:
    """Submit messages and surface their outcome to a chat UI.

    Args:
        base_url: API root; defaults to CHAT_API_URL.
        timeout: Hard timeout in seconds per send; defaults to CLIENT_TIMEOUT_SECONDS.
        http_client: Optional preconfigured `httpx.AsyncClient` (not closed by `aclose`).
        transport: Optional httpx transport used when the controller builds its own client.
        notify: Callback receiving `(message, level)` for user-visible notifications.
        greeting: Bot messages shown before the first send.
        session_id: Conversation to continue; learned from the first reply otherwise.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        notify: Optional[Notifier] = None,
        greeting: Sequence[str] = DEFAULT_GREETING,
        session_id: Optional[str] = None,
    ) -> None:
        if base_url is None or timeout is None:
            settings = get_settings()
            base_url = base_url or settings.chat_api_url
            timeout = timeout if timeout is not None else settings.client_timeout_seconds
        if timeout <= 0:
            raise ValueError("timeout must be positive.")

        self.timeout = timeout
        self.session_id = session_id
        self.notify = notify or _log_notice
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(base_url=base_url, transport=transport)
        self.messages: List[RenderedMessage] = [RenderedMessage(text, SENDER_BOT) for text in greeting]
        self.requests: List[ClientRequest] = []
        self._tasks: Dict[int, asyncio.Task] = {}

    @property
    def typing(self) -> bool:
        """True while any send is awaiting its reply."""
        return any(not record.is_terminal for record in self.requests)

    async def send(self, text: Optional[str]) -> Optional[ClientRequest]:
        """Submit `text` and wait until the send reaches a terminal status.

        Blank input is ignored locally and returns None without a network call.
        The record is created PENDING and moves to THINKING before this method
        first yields, so callers never observe PENDING. Every outcome, including
        unexpected errors, ends in a terminal status.
        """
        text = (text or "").strip()
        if not text:
            return None

        record = ClientRequest(text=text)
        self.requests.append(record)
        self.messages.append(RenderedMessage(text, SENDER_USER))
        record.status = ClientRequestStatus.THINKING

        task = asyncio.create_task(self._post(text))
        self._tasks[id(record)] = task
        try:
            data = await asyncio.wait_for(task, timeout=self.timeout)
        except asyncio.TimeoutError:
            self._fail(record, ClientAborted(f"No reply within {self.timeout}s"))
        except asyncio.CancelledError:
            if record.status is not ClientRequestStatus.CANCELLED:
                self._finish(record, ClientRequestStatus.CANCELLED)
                raise
        except (UpstreamError, httpx.HTTPError) as exc:
            error = exc if isinstance(exc, UpstreamError) else UpstreamError(str(exc))
            self._fail(record, error)
        except Exception as exc:
            logger.exception("Unexpected error while sending chat message")
            self._fail(record, UpstreamError(f"Unexpected client error: {exc}"))
        else:
            self._succeed(record, data)
        finally:
            self._tasks.pop(id(record), None)
        return record

    def cancel(self) -> None:
        """Abort every in-flight send; cancelled sends render nothing further."""
        for record in self.requests:
            task = self._tasks.get(id(record))
            if task is None or record.is_terminal:
                continue
            self._finish(record, ClientRequestStatus.CANCELLED)
            task.cancel()

    async def aclose(self) -> None:
        self.cancel()
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ChatRequestController":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def _post(self, text: str) -> Dict[str, Any]:
        """POST one message and return the validated JSON body."""
        body: Dict[str, Any] = {"message": text}
        if self.session_id:
            body["sessionId"] = self.session_id

        response = await self._client.post(CHAT_PATH, json=body)
        if not response.is_success:
            raise UpstreamError(
                f"Chat API returned status {response.status_code}", status_code=response.status_code
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError("Chat API returned invalid JSON", status_code=response.status_code) from exc
        if not isinstance(data, dict) or not isinstance(data.get("reply"), str):
            raise UpstreamError("Chat API response is missing a reply", status_code=response.status_code)
        return data

    def _finish(self, record: ClientRequest, status: ClientRequestStatus, **fields: Any) -> bool:
        """Apply the single terminal transition for `record`; False if already terminal."""
        if record.is_terminal:
            return False
        for name, value in fields.items():
            setattr(record, name, value)
        record.status = status
        record.finished_at = time.monotonic()
        return True

    def _succeed(self, record: ClientRequest, data: Dict[str, Any]) -> None:
        reply = data["reply"]
        if not self._finish(record, ClientRequestStatus.SUCCESS, reply=reply):
            return
        session_id = data.get("sessionId")
        if isinstance(session_id, str) and session_id:
            self.session_id = session_id
        self.messages.append(RenderedMessage(reply, SENDER_BOT))

    def _fail(self, record: ClientRequest, error: Exception) -> None:
        if not self._finish(record, ClientRequestStatus.FAILED, error=error):
            return
        logger.error("Chat send failed: %s", error)
        self.notify(UNAVAILABLE_NOTICE if is_unavailable(error) else ERROR_NOTICE, "error")
        self.messages.append(RenderedMessage(FAILURE_MESSAGE, SENDER_SYSTEM))
