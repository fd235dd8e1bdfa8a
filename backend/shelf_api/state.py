"""Shared state container for the ROM Shelf API."""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from ..ingest.providers import MetadataProvider
from .db import create_engine_from_settings, init_database
from .services.providers import build_provider
from .services.queue import JobQueueService
from .settings import ShelfSettings
from .stores.catalog_store import CatalogStore
from .stores.config_store import ConfigStore
from .stores.job_log_store import JobLogStore
from .stores.job_store import JobStore
from .stores.platform_store import PlatformStore


@dataclass(slots=True)
class AppState:
    """Encapsulates mutable application state shared across routers."""

    settings: ShelfSettings
    engine: Engine
    config_store: ConfigStore
    job_store: JobStore
    job_log_store: JobLogStore
    catalog_store: CatalogStore
    platform_store: PlatformStore
    job_queue: JobQueueService
    provider: MetadataProvider

    def __init__(self, settings: ShelfSettings) -> None:
        self.settings = settings
        self.engine = create_engine_from_settings(settings)
        init_database(self.engine, settings)
        self.config_store = ConfigStore(self.engine)
        self.job_store = JobStore(self.engine)
        self.job_log_store = JobLogStore(self.engine)
        self.catalog_store = CatalogStore(self.engine)
        self.platform_store = PlatformStore(self.engine)
        self.job_queue = JobQueueService(settings)
        # One provider per process so every request shares the cached token.
        self.provider = build_provider(settings)
