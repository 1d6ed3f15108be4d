"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, WebSocket
from fastapi.staticfiles import StaticFiles

from grammy.checker.base import Checker, checker_name
from grammy.checker.factory import build_checker
from grammy.drafts import DraftStore
from grammy.settings import SettingsManager
from grammy.web.api.check import create_check_router
from grammy.web.config import Config
from grammy.web.ws.handler import websocket_handler

logger = logging.getLogger(__name__)


def create_app(config: Config | None = None, checker: Checker | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Without an explicit ``checker`` one is built from the stored settings.
    """
    config = config or Config()
    if checker is None:
        checker = build_checker(SettingsManager.create())
    drafts = DraftStore(config.draft_path) if config.draft_path else None

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> Any:
        logger.info("Checker: %s, units: %s, debounce: %d ms", checker_name(checker), config.units, config.debounce_ms)
        yield
        aclose = getattr(checker, "aclose", None)
        if aclose is not None:
            await aclose()
        logger.info("Checker closed")

    app = FastAPI(title="grammy", lifespan=lifespan)

    # --- WebSocket endpoint ---

    @app.websocket("/ws")
    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_handler(websocket, checker, config, drafts)

    # --- REST API endpoints ---

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(create_check_router(checker, config.units))

    # --- Static files (must be last) ---

    static_dir = Path(config.static_dir)
    if static_dir.exists():
        app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")

    return app
