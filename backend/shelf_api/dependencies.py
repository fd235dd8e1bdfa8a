"""FastAPI dependencies for the ROM Shelf API."""
from fastapi import Depends, Request

from ..ingest.providers import MetadataProvider
from .services.queue import JobQueueService
from .settings import ShelfSettings
from .state import AppState
from .stores.catalog_store import CatalogStore
from .stores.config_store import ConfigStore
from .stores.job_log_store import JobLogStore
from .stores.job_store import JobStore
from .stores.platform_store import PlatformStore


def get_app_state(request: Request) -> AppState:
    """Resolve the shared application state from the FastAPI request."""
    return request.app.state.app_state


def get_settings(app_state: AppState = Depends(get_app_state)) -> ShelfSettings:
    return app_state.settings


def get_config_store(app_state: AppState = Depends(get_app_state)) -> ConfigStore:
    """Return the configuration store dependency."""
    return app_state.config_store


def get_job_store(app_state: AppState = Depends(get_app_state)) -> JobStore:
    return app_state.job_store


def get_job_log_store(app_state: AppState = Depends(get_app_state)) -> JobLogStore:
    return app_state.job_log_store


def get_job_queue(app_state: AppState = Depends(get_app_state)) -> JobQueueService:
    return app_state.job_queue


def get_catalog_store(app_state: AppState = Depends(get_app_state)) -> CatalogStore:
    return app_state.catalog_store


def get_platform_store(app_state: AppState = Depends(get_app_state)) -> PlatformStore:
    return app_state.platform_store


def get_provider(app_state: AppState = Depends(get_app_state)) -> MetadataProvider:
    """Return the process-wide metadata provider."""
    return app_state.provider
