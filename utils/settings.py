"""Application settings loaded from environment variables.

Values are read once at process start (see `get_settings`). A `.env` file in
the working directory is honoured.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

from services.prompts import persona_system_prompt

load_dotenv()  # Load environment variables from .env file if present


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    """Centralised configuration for the chat service and its client.

    Attributes:
        openai_api_key: Credential for the completion service.
        openai_model: Model used for replies.
        context_window_size: Maximum number of conversation turns (W) sent upstream,
            including the newest user message.
        persona_prompt: Fixed system instruction prepended to every window.
        temperature: Sampling temperature for replies.
        max_output_tokens: Cap on reply length.
        upstream_timeout_seconds: Budget for one completion round trip.
        client_timeout_seconds: Hard timeout used by the client request controller.
        message_store: "sqlite" (durable) or "memory".
        database_dir: Directory holding the SQLite file.
        database_reset: Wipe the SQLite file on startup when True.
        cors_origins: Browser origins allowed to call the API.
        log_level: Root logging level name.
        chat_api_url: Base URL the client request controller talks to.
    """

    openai_api_key: Optional[str] = field(default_factory=lambda: os.getenv("OPENAI_API_KEY"))
    openai_model: str = field(default_factory=lambda: os.getenv("OPENAI_MODEL", "gpt-4o-mini"))
    context_window_size: int = field(default_factory=lambda: int(os.getenv("CONTEXT_WINDOW_SIZE", "10")))
    persona_prompt: str = field(default_factory=lambda: os.getenv("PERSONA_PROMPT") or persona_system_prompt())
    temperature: float = field(default_factory=lambda: float(os.getenv("MODEL_TEMPERATURE", "0.8")))
    max_output_tokens: int = field(default_factory=lambda: int(os.getenv("MAX_OUTPUT_TOKENS", "500")))
    upstream_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "25"))
    )
    client_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("CLIENT_TIMEOUT_SECONDS", "30"))
    )
    message_store: str = field(default_factory=lambda: os.getenv("MESSAGE_STORE", "sqlite").strip().lower())
    database_dir: str = field(default_factory=lambda: os.getenv("DATABASE_DIR", "database"))
    database_reset: bool = field(default_factory=lambda: _env_bool("DATABASE_RESET"))
    cors_origins: List[str] = field(default_factory=lambda: _env_list("CORS_ORIGINS", "http://localhost:5173"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    chat_api_url: str = field(default_factory=lambda: os.getenv("CHAT_API_URL", "http://localhost:8000"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
