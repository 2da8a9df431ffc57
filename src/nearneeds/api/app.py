# src/nearneeds/api/app.py
"""
FastAPI application wiring.

This file creates the `FastAPI` instance, mounts static assets, and serves the web UI.
The app is a local, single-user companion: one `BoardController` lives for the
whole app lifespan (its feed poller and session subscription start with the app
and are torn down with it). Handlers live in `nearneeds.api.routes`.
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Callable

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.middleware.cors import CORSMiddleware

from nearneeds import __version__
from nearneeds.board.controller import BoardController, build_controller
from nearneeds.board.notices import NoticeQueue, Notifier
from nearneeds.config.settings import Settings, get_settings
from nearneeds.core.logging import configure_logging

from .routes import board_payload, router

BASE_DIR = Path(__file__).resolve().parent.parent
TEMPLATES_DIR = BASE_DIR / "web" / "templates"
STATIC_DIR = BASE_DIR / "web" / "static"

ControllerFactory = Callable[[Settings, Notifier], BoardController]


def create_app(controller_factory: ControllerFactory = build_controller) -> FastAPI:
    """Build the app; tests pass a factory wired to in-memory fakes."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        settings = get_settings()
        notices = NoticeQueue()
        controller = controller_factory(settings, notices)
        await controller.start()
        app.state.settings = settings
        app.state.notices = notices
        app.state.controller = controller
        try:
            yield
        finally:
            await controller.aclose()

    app = FastAPI(title="NearNeeds API", version=__version__, lifespan=lifespan)

    # CORS (dev-friendly): allow local frontends to call this API.
    # Configure via env: NEARNEEDS_CORS_ORIGINS="http://localhost:5173,http://127.0.0.1:5173"
    cors_origins = [s.strip() for s in os.getenv("NEARNEEDS_CORS_ORIGINS", "").split(",") if s.strip()]
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(router)

    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    @app.get("/", response_class=HTMLResponse)
    def index(request: Request) -> HTMLResponse:
        """Serve the board page, pre-rendered with the current feed."""
        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "app_name": request.app.state.settings.app.name,
                "board": board_payload(request, drain_notices=False),
                "refresh_interval_ms": int(request.app.state.settings.feed.refresh_interval_seconds * 1000),
            },
        )

    return app


configure_logging()

app = create_app()
