"""Filesystem traversal that admits candidate ROM files."""
from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)

DEFAULT_EXTENSIONS: tuple[str, ...] = (
    ".rom", ".bin", ".iso", ".cue", ".img", ".zip", ".7z", ".rar",
    ".nes", ".smc", ".sfc", ".gb", ".gbc", ".gba", ".n64", ".z64",
    ".psx", ".ps2", ".gcm", ".wad", ".cia", ".3ds",
)


class ScanRootError(RuntimeError):
    """Raised when traversal cannot begin at the requested root."""


@dataclass(slots=True)
class FileCandidate:
    """A regular file admitted by the extension allow-list."""

    path: str
    size: int

    @property
    def name(self) -> str:
        return os.path.basename(self.path)


def normalize_extensions(extensions: Iterable[str]) -> frozenset[str]:
    """Lower-case extensions and make sure each carries a leading dot."""

    normalized = set()
    for extension in extensions:
        value = extension.strip().lower()
        if not value:
            continue
        normalized.add(value if value.startswith(".") else f".{value}")
    return frozenset(normalized)


def is_supported(path: str, extensions: frozenset[str]) -> bool:
    return os.path.splitext(path)[1].lower() in extensions


def walk_directory(
    root: str | Path,
    *,
    recursive: bool,
    extensions: Iterable[str],
    errors: list[str],
) -> Iterator[FileCandidate]:
    """Validate ``root`` and return an iterator over admitted files.

    Listing and stat failures are appended to ``errors`` and traversal moves on.
    A root that is missing, not a directory or unreadable raises
    :class:`ScanRootError` immediately.
    """

    root_path = os.path.abspath(os.fspath(root))
    if not os.path.exists(root_path):
        raise ScanRootError(f"Directory not found: {root_path}")
    if not os.path.isdir(root_path):
        raise ScanRootError(f"Not a directory: {root_path}")
    try:
        with os.scandir(root_path):
            pass
    except OSError as exc:
        raise ScanRootError(f"Cannot read directory {root_path}: {exc}") from exc

    return _walk(root_path, recursive, normalize_extensions(extensions), errors)


def _walk(
    root: str,
    recursive: bool,
    extensions: frozenset[str],
    errors: list[str],
) -> Iterator[FileCandidate]:
    def _on_error(exc: OSError) -> None:
        location = exc.filename or root
        logger.warning("Cannot list %s: %s", location, exc)
        errors.append(f"Error accessing {location}: {exc}")

    for dirpath, dirnames, filenames in os.walk(root, topdown=True, onerror=_on_error):
        if recursive:
            dirnames.sort()
        else:
            dirnames.clear()

        for filename in sorted(filenames):
            path = os.path.join(dirpath, filename)
            if not is_supported(path, extensions):
                continue
            try:
                stat_result = os.stat(path)
            except OSError as exc:
                logger.warning("Cannot stat %s: %s", path, exc)
                errors.append(f"Error accessing {path}: {exc}")
                continue
            if not stat.S_ISREG(stat_result.st_mode):
                continue
            yield FileCandidate(path=path, size=stat_result.st_size)
