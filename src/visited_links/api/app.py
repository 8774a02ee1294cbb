from typing import Optional

import aiohttp
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import Settings, load_settings
from ..core.background import BackgroundService
from ..core.config_store import create_config_store
from ..core.history import HistoryStore, InMemoryHistoryStore, SqliteHistoryStore
from ..core.matcher import HistoryMatcher
from ..logging import setup_logger
from .routes import router

logger = setup_logger("visited_links.api")
load_dotenv()


def create_history_store(settings: Settings) -> HistoryStore:
    if settings.HISTORY_DB_PATH:
        logger.info(f"Using history database {settings.HISTORY_DB_PATH}")
        return SqliteHistoryStore(settings.HISTORY_DB_PATH)
    logger.warning("HISTORY_DB_PATH is not set; starting with an empty in-memory history")
    return InMemoryHistoryStore()


async def build_service(settings: Settings) -> BackgroundService:
    config_store = await create_config_store(settings)
    matcher = HistoryMatcher(create_history_store(settings), max_results=settings.HISTORY_MAX_RESULTS)
    return BackgroundService(config_store, matcher)


def create_app(service: Optional[BackgroundService] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the API; a prebuilt ``service`` skips construction from settings."""
    app = FastAPI(
        title="Visited Link Highlighter API",
        description="Background service that matches page links against browsing history.",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    app.state.service = service

    @app.on_event("startup")
    async def startup_event():
        logger.info("Initializing visited-link background service...")
        app.state.http_session = aiohttp.ClientSession()
        if app.state.service is None:
            app.state.service = await build_service(settings or load_settings())
        logger.info("Background service initialization complete")

    @app.on_event("shutdown")
    async def shutdown_event():
        if getattr(app.state, "service", None):
            await app.state.service.close()
            app.state.service = None
        if getattr(app.state, "http_session", None):
            await app.state.http_session.close()
            app.state.http_session = None
        logger.info("Background service stopped")

    return app


app = create_app()
