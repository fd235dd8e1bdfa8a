"""Single-pass directory scan: walk, hash, normalize and match."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable

from .hashing import HashError, hash_file
from .matcher import CatalogMatcher, LocationDraft
from .titles import normalize_title
from .walker import DEFAULT_EXTENSIONS, walk_directory

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ScanResult:
    """Outcome of one scan invocation; never persisted."""

    files_found: list[str] = field(default_factory=list)
    games_added: list[Any] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    locations_added: int = 0
    locations_skipped: int = 0


class ScanOrchestrator:
    """Drives one synchronous scan of a directory tree."""

    def __init__(
        self,
        matcher: CatalogMatcher,
        *,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        hasher: Callable[[str], str] = hash_file,
    ) -> None:
        self._matcher = matcher
        self._extensions = tuple(extensions)
        self._hasher = hasher

    def scan(
        self,
        directory_path: str | Path,
        *,
        server_location: str,
        platform_id: int,
        recursive: bool,
    ) -> ScanResult:
        """Scan ``directory_path`` and link every admitted file to the catalog.

        Raises :class:`~backend.ingest.walker.ScanRootError` when traversal cannot
        start; every other failure is recorded in ``ScanResult.errors``.
        """

        result = ScanResult()
        candidates = walk_directory(
            directory_path,
            recursive=recursive,
            extensions=self._extensions,
            errors=result.errors,
        )

        for candidate in candidates:
            result.files_found.append(candidate.path)

            try:
                file_hash = self._hasher(candidate.path)
            except HashError as exc:
                logger.warning("Skipping %s: %s", candidate.path, exc)
                result.errors.append(f"Error processing {candidate.path}: {exc}")
                continue

            location = LocationDraft(
                server_location=server_location,
                file_path=candidate.path,
                file_size=candidate.size,
                file_hash=file_hash,
            )
            title = normalize_title(candidate.name, self._extensions)

            try:
                outcome = self._matcher.match(title, platform_id, location)
            except Exception as exc:
                logger.warning("Catalog update failed for %s: %s", candidate.path, exc)
                result.errors.append(f"Error creating game for {candidate.path}: {exc}")
                continue

            if outcome.created:
                result.games_added.append(outcome.game)
            if outcome.attached:
                result.locations_added += 1
            else:
                result.locations_skipped += 1

        logger.info(
            "Scanned %s: %d files, %d new games, %d errors",
            directory_path,
            len(result.files_found),
            len(result.games_added),
            len(result.errors),
        )
        return result
