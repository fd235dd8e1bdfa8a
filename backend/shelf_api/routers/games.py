"""Catalog endpoints for browsing games and fetching their metadata."""
from fastapi import APIRouter, Depends, HTTPException, Query

from ...ingest.enrichment import EntryNotFoundError, NoMatchError, enrich_entry
from ...ingest.providers import MetadataProvider, ProviderError
from ..dependencies import get_catalog_store, get_provider
from ..schemas import GameDetailModel, GameListModel, GameMetricsModel, GameSortOption
from ..stores.catalog_store import CatalogStore

router = APIRouter(prefix="/games", tags=["games"])


@router.get("", response_model=GameListModel)
def list_games(
    query: str | None = Query(default=None, description="Optional title search term."),
    platform_id: int | None = Query(default=None, ge=1, description="Filter by platform."),
    missing_metadata: bool | None = Query(
        default=None,
        description="True for entries lacking a description or cover art, false for enriched ones.",
    ),
    sort: GameSortOption = Query(
        default="updated_desc",
        description="Sort ordering applied to the returned games.",
    ),
    page: int = Query(default=1, ge=1, description="Page number starting at 1."),
    page_size: int = Query(
        default=25,
        ge=1,
        le=100,
        description="Number of games to return per page.",
    ),
    store: CatalogStore = Depends(get_catalog_store),
) -> GameListModel:
    """Return paginated games matching the provided filters."""

    return store.list(
        query=query,
        platform_id=platform_id,
        missing_metadata=missing_metadata,
        sort=sort,
        page=page,
        page_size=page_size,
    )


@router.get("/metrics", response_model=GameMetricsModel)
def game_metrics(store: CatalogStore = Depends(get_catalog_store)) -> GameMetricsModel:
    """Return aggregate catalog statistics."""

    return store.metrics()


@router.get("/{game_id}", response_model=GameDetailModel)
def get_game(game_id: int, store: CatalogStore = Depends(get_catalog_store)) -> GameDetailModel:
    """Return a single game with its file locations, raising when missing."""

    game = store.get(game_id)
    if game is None:
        raise HTTPException(status_code=404, detail="Game not found")
    return game


@router.post("/{game_id}/fetch-metadata", response_model=GameDetailModel)
def fetch_game_metadata(
    game_id: int,
    store: CatalogStore = Depends(get_catalog_store),
    provider: MetadataProvider = Depends(get_provider),
) -> GameDetailModel:
    """Look up one game with the metadata provider and apply the result."""

    try:
        enrich_entry(store, provider, game_id)
    except EntryNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc
    except NoMatchError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    game = store.get(game_id)
    if game is None:  # pragma: no cover - deleted concurrently
        raise HTTPException(status_code=404, detail="Game not found")
    return game
