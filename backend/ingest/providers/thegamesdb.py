"""TheGamesDB metadata provider."""
from __future__ import annotations

import logging
import threading
from typing import Any

import httpx

from .base import MetadataEnvelope, ProviderAuthError, ProviderError

logger = logging.getLogger(__name__)

BASE_URL = "https://api.thegamesdb.net/v1"
DEFAULT_IMAGE_BASE = "https://cdn.thegamesdb.net/images/original/"


def _extract_year(release_date: str | None) -> int:
    if not release_date:
        return 0
    try:
        return int(release_date.split("-")[0])
    except ValueError:
        return 0


class TheGamesDBProvider:
    """Searches TheGamesDB by game name.

    TheGamesDB offers no server-side platform scoping for name searches, so the
    platform argument is accepted for interface compatibility and ignored.
    """

    name = "thegamesdb"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._genres: dict[str, str] | None = None
        self._genre_lock = threading.Lock()

    def search(self, title: str, platform: str | None = None) -> list[MetadataEnvelope]:
        payload = self._get(
            "/Games/ByGameName",
            {"name": title, "fields": "overview,genres", "include": "boxart"},
        )
        games = (payload.get("data") or {}).get("games") or []
        boxart = (payload.get("include") or {}).get("boxart") or {}
        image_base = (boxart.get("base_url") or {}).get("original") or DEFAULT_IMAGE_BASE
        artwork = boxart.get("data") or {}

        genres = self._genre_names() if any(game.get("genres") for game in games) else {}

        results: list[MetadataEnvelope] = []
        for game in games:
            game_id = int(game.get("id") or 0)
            envelope = MetadataEnvelope(
                title=game.get("game_title") or "",
                description=game.get("overview") or "",
                year=_extract_year(game.get("release_date")),
                provider_id=game_id,
            )
            genre_ids = game.get("genres") or []
            if genre_ids:
                envelope.genre = genres.get(str(genre_ids[0]), "")
            for art in artwork.get(str(game_id)) or []:
                if art.get("type") == "boxart" and art.get("side") == "front" and art.get("filename"):
                    envelope.cover_art_url = image_base + art["filename"]
                    break
            results.append(envelope)
        logger.debug("TheGamesDB search %r returned %d results", title, len(results))
        return results

    def _genre_names(self) -> dict[str, str]:
        with self._genre_lock:
            if self._genres is None:
                payload = self._get("/Genres", {})
                raw = (payload.get("data") or {}).get("genres") or {}
                self._genres = {
                    str(key): value.get("name", "")
                    for key, value in raw.items()
                    if isinstance(value, dict)
                }
            return self._genres

    def _get(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        if not self._api_key:
            raise ProviderAuthError("TheGamesDB API key is not configured")

        query = {"apikey": self._api_key, **params}
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.get(f"{self._base_url}{path}", params=query)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Failed to contact TheGamesDB: {exc}") from exc

        if response.status_code in (401, 403):
            raise ProviderAuthError(f"TheGamesDB rejected the API key ({response.status_code})")
        if response.status_code != 200:
            raise ProviderError(f"TheGamesDB request failed with status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError("TheGamesDB returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise ProviderError("TheGamesDB response must be an object")
        return payload
