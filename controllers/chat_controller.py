"""Chat exchange helpers for the HTTP layer."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request

from models.errors import StoreUnavailable
from services.exchange_orchestrator import ExchangeOrchestrator


def get_orchestrator(request: Request) -> ExchangeOrchestrator:
	"""Return the shared orchestrator from app state."""
	orchestrator = getattr(request.app.state, "orchestrator", None)
	if orchestrator is None:
		raise StoreUnavailable("Chat orchestrator not initialized.")
	return orchestrator


async def post_chat_message(request: Request, message: Optional[str], session_id: Optional[str]) -> Dict[str, Any]:
	"""Run one exchange and return the wire response body."""
	orchestrator = get_orchestrator(request)
	result = await orchestrator.handle_exchange(session_id, message)
	return {"sessionId": result.session_id, "reply": result.reply_text}
