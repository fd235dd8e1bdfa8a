"""Application factory for the ROM Shelf API."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import config, games, health, jobs, metadata, platforms, scan
from .settings import ShelfSettings
from .state import AppState


def create_app(settings: ShelfSettings | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""

    resolved_settings = settings or ShelfSettings()
    logging.basicConfig(level=resolved_settings.log_level.upper())
    app_state = AppState(settings=resolved_settings)

    app = FastAPI(title="ROM Shelf API", version="0.1.0")
    app.state.app_state = app_state
    app.state.settings = app_state.settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in (
        health.router,
        config.router,
        platforms.router,
        games.router,
        scan.router,
        metadata.router,
        jobs.router,
    ):
        app.include_router(router)

    return app
