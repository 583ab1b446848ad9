"""
FastAPI application for the debate tree backend.

Run with:
    uvicorn debate_backend.backend:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from debate_backend import config
from debate_backend.admin_api import router as admin_router
from debate_backend.ai_check_api import router as ai_check_router
from debate_backend.db_session import build_engine
from debate_backend.debates_api import router as debates_router
from debate_backend.legacy_api import router as legacy_router
from debate_backend.middleware import SecuritySettings, configure_security
from debate_backend.services.ai_client import AnthropicSuggestionClient
from debate_backend.services.debate_service import DebateService
from debate_backend.services.debate_store import DebateStore, InMemoryDebateStore, SqlDebateStore
from debate_backend.services.debug_log import AiDebugLog
from debate_backend.services.prompt_manager import PromptManager
from debate_backend.services.suggestion_review import SuggestionReviewRegistry
from debate_backend.services.suggestion_service import SuggestionService

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def build_store() -> DebateStore:
    if config.DEBATE_STORE == "memory":
        logger.info("[INFO] Using in-memory debate store")
        return InMemoryDebateStore()
    logger.info("[INFO] Using SQL debate store")
    return SqlDebateStore(build_engine())


def create_app(
    store: Optional[DebateStore] = None,
    ai_client=None,
    prompt_manager: Optional[PromptManager] = None,
    security_settings: Optional[SecuritySettings] = None,
) -> FastAPI:
    """
    Build the app with its services on ``app.state``.

    Every collaborator can be injected; anything omitted is built from the
    environment.
    """
    store = store or build_store()
    ai_client = ai_client or AnthropicSuggestionClient()
    prompt_manager = prompt_manager or PromptManager(overrides_file=config.PROMPT_OVERRIDES_FILE)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("[INFO] Preparing debate store...")
        try:
            await store.init_schema()
        except Exception:
            logger.exception("[ERROR] Failed to prepare debate store during startup")
            raise
        yield
        logger.info("[INFO] Shutting down...")
        close = getattr(ai_client, "close", None)
        if close is not None:
            await close()
        await store.close()

    app = FastAPI(title="Debate Tree Backend", lifespan=lifespan)

    debate_service = DebateService(store)
    debug_log = AiDebugLog()
    app.state.debate_service = debate_service
    app.state.prompt_manager = prompt_manager
    app.state.debug_log = debug_log
    app.state.suggestion_service = SuggestionService(debate_service, ai_client, prompt_manager, debug_log)
    app.state.review_registry = SuggestionReviewRegistry(debate_service)

    configure_security(app, security_settings)
    # Configure CORS (outermost)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(debates_router)
    app.include_router(legacy_router)
    app.include_router(ai_check_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
