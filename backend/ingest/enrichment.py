"""Rate-limited metadata backfill for catalog entries."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, Sequence

from .providers.base import (
    MetadataProvider,
    ProviderAuthError,
    ProviderError,
    fetch_best_match,
)

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DEFAULT_DELAY_SECONDS = 2


class EnrichmentTarget(Protocol):
    id: int
    title: str
    platform_name: str | None


class EnrichmentStore(Protocol):
    """Catalog store operations used by the enrichment job."""

    def get_enrichment_target(self, game_id: int) -> EnrichmentTarget | None: ...

    def apply_metadata(self, game_id: int, updates: dict[str, Any]) -> None: ...

    def ids_missing_metadata(self) -> list[int]: ...


class EntryNotFoundError(LookupError):
    """Raised when a catalog entry selected for enrichment no longer exists."""


class NoMatchError(LookupError):
    """Raised when the provider has no result for an entry."""


@dataclass(slots=True)
class EnrichmentSummary:
    total: int
    processed: int = 0
    updated: int = 0
    errors: list[str] = field(default_factory=list)
    batch_sizes: list[int] = field(default_factory=list)
    aborted: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "processed": self.processed,
            "updated": self.updated,
            "errors": list(self.errors),
            "batch_sizes": list(self.batch_sizes),
            "aborted": self.aborted,
        }


def select_game_ids(store: EnrichmentStore, game_ids: Sequence[int] | None) -> list[int]:
    """Return the explicit ids, or every entry lacking a description or cover."""

    if game_ids:
        return list(game_ids)
    return store.ids_missing_metadata()


def plan_batches(game_ids: Sequence[int], batch_size: int) -> list[list[int]]:
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    return [list(game_ids[start:start + batch_size]) for start in range(0, len(game_ids), batch_size)]


def enrich_entry(store: EnrichmentStore, provider: MetadataProvider, game_id: int) -> dict[str, Any]:
    """Fetch metadata for one entry and apply the non-empty fields.

    Returns the applied updates. Raises :class:`EntryNotFoundError`,
    :class:`NoMatchError` or the provider's :class:`ProviderError`.
    """

    target = store.get_enrichment_target(game_id)
    if target is None:
        raise EntryNotFoundError(f"Game {game_id} not found")

    match = fetch_best_match(provider, target.title, target.platform_name)
    if match is None:
        raise NoMatchError(f"No game found with title: {target.title}")

    updates = match.updates()
    if updates:
        store.apply_metadata(game_id, updates)
    return updates


class EnrichmentJob:
    """Processes entries in fixed-size batches with a pause between batches.

    Entries inside a batch run one after another. Per-entry failures are
    collected in the summary; an authentication failure stops the whole run
    because no later provider call can succeed.
    """

    def __init__(
        self,
        store: EnrichmentStore,
        provider: MetadataProvider,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        on_progress: Callable[[int, int], None] | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")
        self._store = store
        self._provider = provider
        self._batch_size = batch_size
        self._delay_seconds = delay_seconds
        self._sleep = sleep
        self._on_progress = on_progress

    def run(self, game_ids: Sequence[int]) -> EnrichmentSummary:
        summary = EnrichmentSummary(total=len(game_ids))
        batches = plan_batches(game_ids, self._batch_size)

        for index, batch in enumerate(batches):
            summary.batch_sizes.append(len(batch))
            for game_id in batch:
                summary.processed += 1
                if not self._process(game_id, summary):
                    summary.aborted = True
                    logger.error("Metadata batch aborted after %d of %d games", summary.processed, summary.total)
                    return summary

            if self._on_progress is not None:
                self._on_progress(summary.processed, summary.total)

            if index < len(batches) - 1 and self._delay_seconds > 0:
                self._sleep(self._delay_seconds)

        logger.info(
            "Batch metadata update completed: %d updated, %d errors",
            summary.updated,
            len(summary.errors),
        )
        return summary

    def _process(self, game_id: int, summary: EnrichmentSummary) -> bool:
        """Enrich one entry; return ``False`` when the run must stop."""

        try:
            target = self._store.get_enrichment_target(game_id)
        except Exception as exc:
            summary.errors.append(f"Game {game_id}: Failed to fetch - {exc}")
            return True
        if target is None:
            summary.errors.append(f"Game {game_id}: Failed to fetch - not found")
            return True

        label = f"Game {game_id} ({target.title})"
        try:
            match = fetch_best_match(self._provider, target.title, target.platform_name)
        except ProviderAuthError as exc:
            summary.errors.append(f"{label}: Authentication failed - {exc}")
            return False
        except ProviderError as exc:
            summary.errors.append(f"{label}: Failed to fetch metadata - {exc}")
            return True

        if match is None:
            summary.errors.append(f"{label}: No metadata match")
            return True

        updates = match.updates()
        if not updates:
            return True
        try:
            self._store.apply_metadata(game_id, updates)
        except Exception as exc:
            summary.errors.append(f"{label}: Failed to update - {exc}")
            return True

        summary.updated += 1
        return True
