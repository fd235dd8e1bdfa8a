"""Filesystem helpers for ROM Shelf data paths."""
from __future__ import annotations

from pathlib import Path

from platformdirs import user_data_dir


APP_NAME = "ROMShelf"
APP_AUTHOR = "ROMShelf"


def default_data_dir() -> Path:
    """Return the platform-appropriate directory for the catalog database."""

    return Path(user_data_dir(APP_NAME, APP_AUTHOR))


def default_database_url() -> str:
    """Return a SQLite URL inside the per-user data directory."""

    return f"sqlite:///{(default_data_dir() / 'romshelf.db').as_posix()}"
