"""Database models for the ROM Shelf API."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


class ConfigRecord(SQLModel, table=True):
    """Persisted runtime configuration row."""

    __tablename__ = "shelf_config"

    id: int | None = Field(default=None, primary_key=True)
    supported_extensions: list[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    dedupe_rescans: bool = Field(default=False)
    default_batch_size: int = Field(default=5)
    default_delay_seconds: int = Field(default=2)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class PlatformRecord(SQLModel, table=True):
    """Gaming platform a catalog entry belongs to."""

    __tablename__ = "shelf_platforms"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    manufacturer: str | None = Field(default=None)
    release_year: int | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class GameRecord(SQLModel, table=True):
    """Catalog entry identified by its normalized title and platform."""

    __tablename__ = "shelf_games"
    __table_args__ = (UniqueConstraint("title", "platform_id", name="uq_shelf_games_title_platform"),)

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(index=True)
    platform_id: int = Field(foreign_key="shelf_platforms.id", index=True)
    year: int | None = Field(default=None, index=True)
    genre: str | None = Field(default=None)
    rating: float | None = Field(default=None)
    description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    cover_art_url: str | None = Field(default=None)
    box_art_url: str | None = Field(default=None)
    external_id: int | None = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class FileLocationRecord(SQLModel, table=True):
    """One physical copy of a game on a named storage location."""

    __tablename__ = "shelf_file_locations"

    id: int | None = Field(default=None, primary_key=True)
    game_id: int = Field(foreign_key="shelf_games.id", index=True, ondelete="CASCADE")
    server_location: str = Field(index=True)
    file_path: str
    file_size: int = Field(default=0)
    file_hash: str = Field(default="", index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class JobRecord(SQLModel, table=True):
    """Background job metadata persisted for orchestration."""

    __tablename__ = "shelf_jobs"

    id: str = Field(primary_key=True, index=True)
    type: str = Field(index=True)
    status: str = Field(default="queued", index=True)
    progress: float = Field(default=0.0)
    worker_id: str | None = Field(default=None, index=True)
    payload: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    result: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    started_at: datetime | None = Field(default=None, index=True)
    finished_at: datetime | None = Field(default=None, index=True)
    error_message: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class JobLogRecord(SQLModel, table=True):
    """Structured log event associated with a background job."""

    __tablename__ = "shelf_job_logs"

    id: int | None = Field(default=None, primary_key=True)
    job_id: str = Field(index=True)
    level: str = Field(default="info", index=True)
    message: str
    context: dict[str, Any] | None = Field(
        default=None, sa_column=Column(JSON, nullable=True)
    )
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
