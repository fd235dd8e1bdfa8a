"""Provider-neutral metadata types and the search capability interface."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Protocol


class ProviderError(RuntimeError):
    """Raised when a metadata provider request fails."""


class ProviderAuthError(ProviderError):
    """Raised when the provider rejects or cannot issue credentials."""


class ProviderConfigError(ProviderError):
    """Raised when no usable provider is configured."""


@dataclass(slots=True)
class MetadataEnvelope:
    """Metadata returned by a provider; zero values mean "unknown"."""

    title: str = ""
    description: str = ""
    rating: float = 0.0
    genre: str = ""
    year: int = 0
    cover_art_url: str = ""
    box_art_url: str = ""
    provider_id: int = 0

    def updates(self) -> dict[str, Any]:
        """Return the catalog columns this envelope can fill.

        Empty strings and non-positive numbers are left out so a partial match
        never clears data already on the entry. The title is never included.
        """

        patch: dict[str, Any] = {}
        if self.description:
            patch["description"] = self.description
        if self.rating > 0:
            patch["rating"] = self.rating
        if self.genre:
            patch["genre"] = self.genre
        if self.year > 0:
            patch["year"] = self.year
        if self.cover_art_url:
            patch["cover_art_url"] = self.cover_art_url
        if self.box_art_url:
            patch["box_art_url"] = self.box_art_url
        if self.provider_id > 0:
            patch["external_id"] = self.provider_id
        return patch

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class MetadataProvider(Protocol):
    """Search capability shared by every metadata provider."""

    name: str

    def search(self, title: str, platform: str | None = None) -> list[MetadataEnvelope]:
        """Return candidate matches, best first; an empty list means no match."""
        ...


def fetch_best_match(
    provider: MetadataProvider, title: str, platform: str | None = None
) -> MetadataEnvelope | None:
    """Return the provider's first result, or ``None`` when nothing matched."""

    results = provider.search(title, platform)
    return results[0] if results else None
