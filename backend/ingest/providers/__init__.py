"""Metadata providers implementing the shared search capability."""

from .base import (
    MetadataEnvelope,
    MetadataProvider,
    ProviderAuthError,
    ProviderConfigError,
    ProviderError,
    fetch_best_match,
)
from .igdb import IGDBProvider, TokenManager
from .thegamesdb import TheGamesDBProvider

__all__ = [
    "IGDBProvider",
    "MetadataEnvelope",
    "MetadataProvider",
    "ProviderAuthError",
    "ProviderConfigError",
    "ProviderError",
    "TheGamesDBProvider",
    "TokenManager",
    "fetch_best_match",
]
