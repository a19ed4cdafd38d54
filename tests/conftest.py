"""Shared fixtures for chat engine tests."""

import asyncio
from typing import List, Optional

import pytest

from dal.chat_message_dal import ChatMessageDAL
from services.session_store import SessionStore
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import Settings

PERSONA = "You are a test persona."


class FakeCompletionClient:
    """Stand-in for CompletionClient that records every call.

    Replies are taken from `replies` in order (the last one repeats); if
    `error` is set it is raised instead. `delay` makes each call sleep first.
    """

    def __init__(self, replies: Optional[List[str]] = None, error: Optional[Exception] = None, delay: float = 0.0):
        self.replies = list(replies or ["Hi from ORVI!"])
        self.error = error
        self.delay = delay
        self.calls = []

    async def complete(self, turns, params):
        self.calls.append((list(turns), params))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]


@pytest.fixture
def settings(tmp_path):
    """Settings with explicit values, independent of the environment."""
    return Settings(
        openai_api_key="test-key",
        openai_model="gpt-4o-mini",
        context_window_size=10,
        persona_prompt=PERSONA,
        temperature=0.8,
        max_output_tokens=500,
        upstream_timeout_seconds=5.0,
        client_timeout_seconds=30.0,
        message_store="memory",
        database_dir=str(tmp_path / "db"),
        database_reset=False,
        cors_origins=["http://localhost:5173"],
        log_level="DEBUG",
        chat_api_url="http://testserver",
    )


@pytest.fixture
def memory_store():
    """Fresh in-memory message store."""
    return SessionStore()


@pytest.fixture
def sqlite_dal(tmp_path):
    """ChatMessageDAL backed by a temporary SQLite file."""
    return ChatMessageDAL(AsyncDatabaseInitializer(tmp_path / "db"))


@pytest.fixture
def fake_completion():
    """Completion client that always answers "Hi from ORVI!"."""
    return FakeCompletionClient()
