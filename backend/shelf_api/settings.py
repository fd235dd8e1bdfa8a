"""Runtime configuration for the ROM Shelf API."""
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..ingest.walker import DEFAULT_EXTENSIONS
from .utils.paths import default_database_url


class ShelfSettings(BaseSettings):
    """Environment-aware settings for the ROM Shelf service."""

    database_url: str = Field(
        default_factory=default_database_url,
        description="Connection URL for the catalog database.",
    )
    database_echo: bool = Field(
        default=False, description="Enable SQL echo for debugging queries."
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Connection URL for the Redis-backed job queue.",
    )
    redis_queue_name: str = Field(
        default="romshelf",
        description="RQ queue name used for background jobs.",
    )
    queue_worker_name: str = Field(
        default="romshelf-worker",
        description="Identifier used when reporting job worker executions.",
    )
    max_queued_jobs: int = Field(
        default=10,
        ge=1,
        description="Maximum number of jobs allowed to wait in the queue.",
    )
    job_timeout_seconds: int = Field(
        default=6 * 60 * 60,
        ge=60,
        description="Wall-clock limit RQ applies to a single job.",
    )
    log_level: str = Field(default="INFO", description="Root log level for API and worker.")

    metadata_provider: Literal["igdb", "thegamesdb"] = Field(
        default="igdb", description="Metadata provider used for enrichment."
    )
    igdb_client_id: str = Field(default="", description="Twitch client id for IGDB.")
    igdb_client_secret: str = Field(default="", description="Twitch client secret for IGDB.")
    igdb_token_url: str = Field(default="https://id.twitch.tv/oauth2/token")
    igdb_games_url: str = Field(default="https://api.igdb.com/v4/games")
    thegamesdb_api_key: str = Field(default="", description="TheGamesDB API key.")
    thegamesdb_base_url: str = Field(default="https://api.thegamesdb.net/v1")
    provider_timeout_seconds: float = Field(default=30.0, gt=0)

    default_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXTENSIONS),
        description="Extensions seeded into the runtime configuration.",
    )
    default_batch_size: int = Field(default=5, ge=1)
    default_delay_seconds: int = Field(default=2, ge=0)

    model_config = SettingsConfigDict(
        env_prefix="ROMSHELF_",
        env_file=".env",
        env_file_encoding="utf-8",
    )
