"""Find-or-create linking of scanned files to catalog entries."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(slots=True)
class LocationDraft:
    """File location computed during a scan, not yet persisted."""

    server_location: str
    file_path: str
    file_size: int
    file_hash: str


class CatalogWriter(Protocol):
    """Catalog store operations the matcher relies on."""

    def find_game(self, title: str, platform_id: int) -> Any | None: ...

    def create_game(self, title: str, platform_id: int, location: LocationDraft) -> Any: ...

    def attach_location(self, game_id: int, location: LocationDraft) -> None: ...

    def has_location(self, game_id: int, location: LocationDraft) -> bool: ...


@dataclass(slots=True)
class MatchOutcome:
    game: Any
    created: bool
    attached: bool


class CatalogMatcher:
    """Links a normalized title and platform to exactly one catalog entry.

    Matching is exact and case-sensitive on ``(title, platform_id)``. When
    ``dedupe_rescans`` is enabled, a location already recorded for the matched
    entry with the same server label, path and hash is not attached again.
    """

    def __init__(self, store: CatalogWriter, *, dedupe_rescans: bool = False) -> None:
        self._store = store
        self._dedupe_rescans = dedupe_rescans

    def match(self, title: str, platform_id: int, location: LocationDraft) -> MatchOutcome:
        existing = self._store.find_game(title, platform_id)
        if existing is None:
            game = self._store.create_game(title, platform_id, location)
            return MatchOutcome(game=game, created=True, attached=True)

        if self._dedupe_rescans and self._store.has_location(existing.id, location):
            return MatchOutcome(game=existing, created=False, attached=False)

        self._store.attach_location(existing.id, location)
        return MatchOutcome(game=existing, created=False, attached=True)
