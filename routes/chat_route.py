"""FastAPI route for chat exchanges."""

import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from controllers.chat_controller import post_chat_message
from models.errors import InvalidInput

logger = logging.getLogger(__name__)

CHAT_PREFIX = "/api/chat"

router = APIRouter(prefix=CHAT_PREFIX, tags=["chat"])


class ChatPayload(BaseModel):
	message: Optional[str] = None
	sessionId: Optional[str] = None


def _message_required() -> JSONResponse:
	return JSONResponse(status_code=400, content={"message": "Message is required"})


async def chat_validation_handler(request: Request, exc: RequestValidationError):
	"""Answer unusable chat bodies (absent, not JSON, wrong types) like a missing message."""
	if request.url.path.rstrip("/") == CHAT_PREFIX:
		logger.info("Rejected chat request body: %s", exc.errors())
		return _message_required()
	return await request_validation_exception_handler(request, exc)


@router.post("")
async def post_chat_route(request: Request, payload: ChatPayload):
	"""Send a user message and return the assistant reply for the session."""
	try:
		return await post_chat_message(request, payload.message, payload.sessionId)
	except InvalidInput:
		return _message_required()
	except Exception as exc:
		logger.error("Chat error: %s", exc, exc_info=True)
		return JSONResponse(status_code=500, content={"message": "Server error"})
