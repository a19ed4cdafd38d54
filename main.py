import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from openai import AsyncOpenAI

from dal.chat_message_dal import ChatMessageDAL
from routes.chat_route import chat_validation_handler, router as chat_router
from services.context_window import ContextWindowBuilder
from services.exchange_orchestrator import ExchangeOrchestrator
from services.openai.completion_client import CompletionClient, CompletionParams
from services.session_store import SessionStore
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
    )


async def build_message_store(settings: Settings) -> Any:
    """Return the message store selected by MESSAGE_STORE, schema ready."""
    if settings.message_store == "memory":
        return SessionStore()
    if settings.message_store != "sqlite":
        raise RuntimeError(
            f"MESSAGE_STORE={settings.message_store!r} is not supported; use 'sqlite' or 'memory'."
        )
    db_initializer = AsyncDatabaseInitializer(settings.database_dir, reset=settings.database_reset)
    await db_initializer.ensure_database()
    return ChatMessageDAL(db_initializer)


def build_openai_client(settings: Settings) -> AsyncOpenAI:
    if not settings.openai_api_key:
        raise RuntimeError("OPENAI_API_KEY environment variable is not set")
    try:
        # Retries are disabled: a failed exchange surfaces immediately.
        return AsyncOpenAI(api_key=settings.openai_api_key, max_retries=0)
    except Exception as exc:
        raise RuntimeError("Failed to initialize OpenAI Async client") from exc


def completion_params(settings: Settings) -> CompletionParams:
    return CompletionParams(
        model=settings.openai_model,
        temperature=settings.temperature,
        max_output_tokens=settings.max_output_tokens,
        timeout=settings.upstream_timeout_seconds,
    )


async def _close_client(client: AsyncOpenAI) -> None:
    try:
        await client.close()
    except Exception as exc:
        logger.warning("Error while closing OpenAI client: %s", exc)


def _wire_orchestrator(app: FastAPI, settings: Settings) -> None:
    state = app.state
    if state.message_store is None or state.completion_client is None:
        return
    window_builder = ContextWindowBuilder(
        state.message_store,
        persona_prompt=settings.persona_prompt,
        window_size=settings.context_window_size,
    )
    state.orchestrator = ExchangeOrchestrator(
        store=state.message_store,
        window_builder=window_builder,
        completion_client=state.completion_client,
        params=completion_params(settings),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize, unless already injected:
      - the message store (SQLite under DATABASE_DIR, or in-memory)
      - the OpenAI async client and the completion client around it
    and attach them, plus the exchange orchestrator, to `app.state`.
    """
    settings: Settings = app.state.settings
    owned_openai_client: Optional[AsyncOpenAI] = None

    if app.state.message_store is None:
        app.state.message_store = await build_message_store(settings)

    if app.state.completion_client is None:
        owned_openai_client = build_openai_client(settings)
        app.state.completion_client = CompletionClient(owned_openai_client)

    _wire_orchestrator(app, settings)
    logger.info(
        "Chat service started (store=%s, model=%s, window=%d)",
        type(app.state.message_store).__name__,
        settings.openai_model,
        settings.context_window_size,
    )

    try:
        yield
    finally:
        if owned_openai_client is not None:
            await _close_client(owned_openai_client)
        logger.info("Chat service shutdown")


def create_app(
    settings: Optional[Settings] = None,
    *,
    message_store: Any = None,
    completion_client: Any = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    Collaborators passed in are used as-is; anything missing is built from
    `settings` when the application starts.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title="ORVI Chat API", lifespan=lifespan)
    app.state.settings = settings
    app.state.message_store = message_store
    app.state.completion_client = completion_client
    app.state.orchestrator = None
    _wire_orchestrator(app, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that reports message store and completion client presence.
        """
        state = request.app.state
        store = getattr(state, "message_store", None)
        store_available = store is not None and getattr(store, "available", True)
        return {
            "ok": bool(store_available and state.orchestrator is not None),
            "store_available": bool(store_available),
            "openai_available": getattr(state, "completion_client", None) is not None,
        }

    app.include_router(chat_router)
    app.add_exception_handler(RequestValidationError, chat_validation_handler)

    return app


app = create_app()
