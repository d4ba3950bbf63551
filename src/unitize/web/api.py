"""FastAPI application factory.

Main entry point for the Unitize Web API.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from unitize.config.app_config import load_app_config
from unitize.db.file_store import get_file_store
from unitize.web.responses import register_exception_handlers
from unitize.web.routes import (
    analytics_router,
    decks_router,
    flashcards_router,
    goals_router,
    health_router,
    practice_router,
    progress_router,
    recommendations_router,
    spaced_repetition_router,
    study_sessions_router,
    units_router,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup/shutdown events."""
    # Startup
    store = get_file_store()
    created = store.ensure_defaults()
    logger.info(
        "api_startup",
        data_dir=str(store.data_dir.absolute()),
        documents_created=[p.name for p in created],
    )
    yield


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    config = load_app_config()

    app = FastAPI(
        title="Unitize API",
        description="Study and practice backend: courses, progress, flashcards and goals",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Deck routes first: /api/flashcards/decks must not match /api/flashcards/{card_id}
    app.include_router(health_router)
    app.include_router(units_router)
    app.include_router(practice_router)
    app.include_router(progress_router)
    app.include_router(recommendations_router)
    app.include_router(decks_router)
    app.include_router(flashcards_router)
    app.include_router(spaced_repetition_router)
    app.include_router(goals_router)
    app.include_router(study_sessions_router)
    app.include_router(analytics_router)

    return app


# Default app instance for uvicorn
app = create_app()
