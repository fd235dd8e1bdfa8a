"""Pydantic models exposed by the ROM Shelf API."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class QueueHealthStatus(BaseModel):
    """Represents Redis queue connectivity status."""

    status: Literal["ok", "error"] = Field(default="ok")
    detail: str | None = Field(
        default=None, description="Optional diagnostic message when the queue is unavailable."
    )


class HealthStatus(BaseModel):
    """Service health payload."""

    status: Literal["ok"] = Field(default="ok")
    version: str = Field(default="0.1.0", description="Semantic version of the API service.")
    metadata_provider: str = Field(description="Configured metadata provider name.")
    queue: QueueHealthStatus = Field(
        default_factory=QueueHealthStatus,
        description="Health information for the background job queue.",
    )


class ConfigModel(BaseModel):
    """Represents the persisted runtime configuration."""

    supported_extensions: list[str] = Field(
        ..., description="File extensions admitted by directory scans."
    )
    dedupe_rescans: bool = Field(
        default=False,
        description="Skip re-attaching a file already recorded with the same server, path and hash.",
    )
    default_batch_size: int = Field(default=5, ge=1, le=100)
    default_delay_seconds: int = Field(default=2, ge=0, le=3600)


class ConfigUpdate(BaseModel):
    """Subset of configuration fields allowed to be updated at runtime."""

    supported_extensions: list[str] | None = Field(default=None, min_length=1)
    dedupe_rescans: bool | None = Field(default=None)
    default_batch_size: int | None = Field(default=None, ge=1, le=100)
    default_delay_seconds: int | None = Field(default=None, ge=0, le=3600)


class PlatformModel(BaseModel):
    id: int
    name: str
    manufacturer: str | None = None
    release_year: int | None = None


class FileLocationModel(BaseModel):
    """A physical copy of a game on a storage location."""

    id: int
    game_id: int
    server_location: str
    file_path: str
    file_size: int
    file_hash: str
    created_at: datetime


class GameModel(BaseModel):
    """Catalog entry as exposed to API clients."""

    id: int
    title: str
    platform_id: int
    platform_name: str | None = None
    year: int | None = None
    genre: str | None = None
    rating: float | None = None
    description: str | None = None
    cover_art_url: str | None = None
    box_art_url: str | None = None
    external_id: int | None = None
    created_at: datetime
    updated_at: datetime


class GameDetailModel(GameModel):
    file_locations: list[FileLocationModel] = Field(default_factory=list)


class GameListModel(BaseModel):
    """Paginated list container for catalog responses."""

    items: list[GameModel]
    total: int
    page: int
    page_size: int


GameSortOption = Literal[
    "updated_desc",
    "updated_asc",
    "title_asc",
    "title_desc",
    "year_desc",
    "year_asc",
]


class GameMetricsModel(BaseModel):
    """Aggregate statistics for the catalog."""

    total: int = Field(description="Total number of catalog entries.")
    platform_counts: dict[str, int] = Field(
        default_factory=dict, description="Breakdown of entries per platform name."
    )
    enriched: int = Field(description="Entries with both a description and cover art.")
    missing_metadata: int = Field(description="Entries lacking a description or cover art.")
    file_locations: int = Field(description="Total number of recorded file locations.")


class ScanRequest(BaseModel):
    """Payload accepted by the directory scan endpoint."""

    directory_path: str = Field(..., min_length=1, description="Root directory to scan.")
    server_location: str = Field(
        ..., min_length=1, max_length=100, description="Label of the storage location being scanned."
    )
    platform_id: int = Field(..., gt=0, description="Platform assigned to discovered games.")
    recursive: bool = Field(default=False, description="Descend into subdirectories.")


class ScanResponse(BaseModel):
    """Result of a synchronous directory scan."""

    message: str = Field(default="Directory scan completed")
    files_found: list[str] = Field(default_factory=list)
    games_added: list[GameModel] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    locations_added: int = Field(default=0, description="File locations recorded by this scan.")
    locations_skipped: int = Field(
        default=0, description="Files already recorded and skipped by rescan de-duplication."
    )


class DuplicateFileModel(BaseModel):
    id: int
    game_id: int
    game_title: str
    server_location: str
    file_path: str
    file_size: int
    file_hash: str


class DuplicateGroupModel(BaseModel):
    hash: str
    files: list[DuplicateFileModel]


class DuplicateReportModel(BaseModel):
    duplicates: list[DuplicateGroupModel] = Field(default_factory=list)
    count: int = 0


class MetadataBatchRequest(BaseModel):
    """Payload used to start a background metadata backfill."""

    game_ids: list[int] | None = Field(
        default=None, description="Games to enrich; defaults to every game missing metadata."
    )
    batch_size: int | None = Field(default=None, ge=1, le=100)
    delay_seconds: int | None = Field(default=None, ge=0, le=3600)


class MetadataBatchAccepted(BaseModel):
    """Acknowledgement returned when a metadata batch is accepted."""

    message: str
    job_id: str | None = None
    total_games: int
    batch_size: int
    delay: int


class MetadataEnvelopeModel(BaseModel):
    title: str = ""
    description: str = ""
    rating: float = 0.0
    genre: str = ""
    year: int = 0
    cover_art_url: str = ""
    box_art_url: str = ""
    provider_id: int = 0


class MetadataSearchRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    platform: str | None = Field(default=None, max_length=100)


class MetadataSearchResponse(BaseModel):
    results: list[MetadataEnvelopeModel] = Field(default_factory=list)


class JobModel(BaseModel):
    """Represents a background job."""

    id: str
    type: str
    status: Literal["queued", "running", "completed", "failed", "cancelled"]
    progress: float = Field(ge=0, le=1)
    worker_id: str | None = Field(
        default=None, description="Identifier for the worker processing the job."
    )
    payload: dict[str, Any] | None = Field(
        default=None, description="Optional JSON payload forwarded to the runner."
    )
    result: dict[str, Any] | None = Field(
        default=None, description="Summary written by the runner when the job finishes."
    )
    created_at: datetime = Field(
        description="Timestamp when the job record was created."
    )
    updated_at: datetime = Field(
        description="Timestamp when the job record was last updated."
    )
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error_message: str | None = None
    duration_seconds: float | None = Field(
        default=None,
        description="Execution duration calculated from started and finished timestamps.",
    )


class JobMetricsModel(BaseModel):
    """Aggregate statistics for background job processing."""

    total: int = Field(description="Total number of job records persisted in the store.")
    status_counts: dict[str, int] = Field(
        default_factory=dict,
        description="Count of jobs grouped by current status.",
    )
    type_counts: dict[str, int] = Field(
        default_factory=dict,
        description="Count of jobs grouped by job type identifier.",
    )
    average_duration_seconds: float | None = Field(
        default=None,
        description="Average duration in seconds for jobs with both start and finish timestamps.",
    )
    last_finished_at: datetime | None = Field(
        default=None,
        description="Timestamp of the most recently finished job regardless of outcome.",
    )
    queue_depth: int = Field(
        default=0,
        description="Number of jobs currently waiting in the Redis queue.",
    )


class JobLogCreate(BaseModel):
    """Payload used to append a new job log entry."""

    level: Literal["debug", "info", "warning", "error"] = Field(
        default="info", description="Severity level of the log entry."
    )
    message: str = Field(..., description="Human-readable log message.")
    context: dict[str, Any] | None = Field(
        default=None,
        description="Optional structured context payload for the log entry.",
    )


class JobLogModel(JobLogCreate):
    """Represents a persisted job log entry."""

    id: int
    job_id: str
    created_at: datetime
