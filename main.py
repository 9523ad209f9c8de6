import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from openai import AsyncOpenAI

from dal.kv_store import DEFAULT_CAPACITY_BYTES, SqliteKeyValueStore
from routes.chat_route import router as chat_router
from routes.realtime_ws import router as realtime_router
from routes.session_route import router as session_router
from services.chat.orchestrator import ConversationOrchestrator
from services.chat.session_store import SessionStore
from services.openai.provider_client import OpenAIProvider
from utils.database_init import AsyncDatabaseInitializer

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
LOGGER = logging.getLogger(__name__)


def _create_provider():
    """Return the OpenAI-backed provider, or None when the client cannot start."""
    if not os.getenv("OPENAI_API_KEY"):
        LOGGER.error("OPENAI_API_KEY is not set; chat requests will fail until it is configured.")
        return None, None
    try:
        client = AsyncOpenAI()
    except Exception as exc:
        LOGGER.error("Failed to initialize OpenAI Async client: %s", exc)
        return None, None
    return client, OpenAIProvider(client)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the SQLite database backing the bounded history store (DATABASE_DIR/app.db)
      - the session store, loaded with any persisted history
      - the OpenAI async client and provider adapter (optional)
      - the conversation orchestrator
    and attach them to `app.state`.
    """
    db_initializer = AsyncDatabaseInitializer()
    await db_initializer.ensure_database()
    app.state.db_initializer = db_initializer

    capacity = int(os.getenv("CHAT_STORAGE_CAPACITY_BYTES", str(DEFAULT_CAPACITY_BYTES)))
    store = SessionStore(SqliteKeyValueStore(db_initializer, capacity_bytes=capacity))
    await store.load()

    openai_client, provider = _create_provider()
    app.state.openai_client = openai_client
    app.state.orchestrator = ConversationOrchestrator(provider, store)

    try:
        yield
    finally:
        await app.state.orchestrator.wait_for_background()
        await store.flush()
        if openai_client is not None:
            try:
                await openai_client.close()
            except Exception as exc:
                LOGGER.warning("Error while closing the OpenAI client: %s", exc)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check reporting the store and provider client state.
        """
        orchestrator = getattr(request.app.state, "orchestrator", None)
        return {
            "ok": True,
            "db_initialized": hasattr(request.app.state, "db_initializer"),
            "openai_available": getattr(request.app.state, "openai_client", None) is not None,
            "sessions": len(orchestrator.store.sessions) if orchestrator else 0,
        }

    app.include_router(chat_router)
    app.include_router(session_router)
    app.include_router(realtime_router)

    return app


app = create_app()
