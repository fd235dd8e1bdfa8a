"""Construct the configured metadata provider."""
from __future__ import annotations

from typing import Callable

import httpx

from ...ingest.providers import (
    IGDBProvider,
    MetadataProvider,
    ProviderConfigError,
    TheGamesDBProvider,
    TokenManager,
)
from ..settings import ShelfSettings


def _build_igdb(settings: ShelfSettings, transport: httpx.BaseTransport | None) -> MetadataProvider:
    tokens = TokenManager(
        settings.igdb_client_id,
        settings.igdb_client_secret,
        token_url=settings.igdb_token_url,
        timeout=settings.provider_timeout_seconds,
        transport=transport,
    )
    return IGDBProvider(
        tokens,
        games_url=settings.igdb_games_url,
        timeout=settings.provider_timeout_seconds,
        transport=transport,
    )


def _build_thegamesdb(
    settings: ShelfSettings, transport: httpx.BaseTransport | None
) -> MetadataProvider:
    return TheGamesDBProvider(
        settings.thegamesdb_api_key,
        base_url=settings.thegamesdb_base_url,
        timeout=settings.provider_timeout_seconds,
        transport=transport,
    )


PROVIDER_FACTORIES: dict[str, Callable[[ShelfSettings, httpx.BaseTransport | None], MetadataProvider]] = {
    "igdb": _build_igdb,
    "thegamesdb": _build_thegamesdb,
}


def build_provider(
    settings: ShelfSettings, *, transport: httpx.BaseTransport | None = None
) -> MetadataProvider:
    """Return the provider named by ``settings.metadata_provider``.

    Credentials are not checked here; a provider without them raises
    ``ProviderAuthError`` on its first search.
    """

    factory = PROVIDER_FACTORIES.get(settings.metadata_provider)
    if factory is None:
        raise ProviderConfigError(f"Unknown metadata provider: {settings.metadata_provider}")
    return factory(settings, transport)
