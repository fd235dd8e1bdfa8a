"""Database-backed stores for the ROM Shelf API."""

from .catalog_store import CatalogStore, EnrichmentTarget
from .config_store import ConfigStore
from .job_log_store import JobLogStore
from .job_store import JobStore
from .platform_store import PlatformStore

__all__ = [
    "CatalogStore",
    "ConfigStore",
    "EnrichmentTarget",
    "JobLogStore",
    "JobStore",
    "PlatformStore",
]
