"""IGDB metadata provider with a lock-guarded OAuth token cache."""
from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable

import httpx

from .base import MetadataEnvelope, ProviderAuthError, ProviderError

logger = logging.getLogger(__name__)

TOKEN_URL = "https://id.twitch.tv/oauth2/token"
GAMES_URL = "https://api.igdb.com/v4/games"
SEARCH_FIELDS = "name,summary,first_release_date,rating,cover.url,genres.name,platforms.name"
SCOPED_LIMIT = 10
UNSCOPED_LIMIT = 20
EXPIRY_BUFFER_SECONDS = 300

PLATFORM_IDS: dict[str, int] = {
    "Nintendo Entertainment System": 18,
    "NES": 18,
    "Super Nintendo Entertainment System": 19,
    "SNES": 19,
    "Nintendo 64": 4,
    "N64": 4,
    "Nintendo GameCube": 21,
    "GameCube": 21,
    "Nintendo Wii": 5,
    "Wii": 5,
    "Game Boy": 33,
    "Game Boy Color": 22,
    "Game Boy Advance": 24,
    "Gameboy Advance": 24,
    "GBA": 24,
    "Nintendo DS": 20,
    "Nintendo 3DS": 37,
    "Sega Master System": 64,
    "Sega Genesis": 29,
    "Genesis": 29,
    "Mega Drive": 29,
    "Sega Saturn": 32,
    "Sega Dreamcast": 23,
    "Dreamcast": 23,
    "Sony PlayStation": 7,
    "PlayStation": 7,
    "PS1": 7,
    "Sony PlayStation 2": 8,
    "PlayStation 2": 8,
    "PS2": 8,
    "Sony PlayStation 3": 9,
    "PlayStation 3": 9,
    "PS3": 9,
    "Sony PlayStation 4": 48,
    "PlayStation 4": 48,
    "PS4": 48,
    "Sony PlayStation 5": 167,
    "PlayStation 5": 167,
    "PS5": 167,
    "Sony PlayStation Portable": 38,
    "PlayStation Portable": 38,
    "PSP": 38,
    "Sony PlayStation Vita": 46,
    "PlayStation Vita": 46,
    "PS Vita": 46,
    "Microsoft Xbox": 11,
    "Xbox": 11,
    "Microsoft Xbox 360": 12,
    "Xbox 360": 12,
    "Microsoft Xbox One": 49,
    "Xbox One": 49,
    "Microsoft Xbox Series X/S": 169,
    "Xbox Series X/S": 169,
    "Xbox Series X": 169,
    "Xbox Series S": 169,
    "Atari 2600": 59,
    "Atari 5200": 66,
    "Atari 7800": 60,
    "PC": 6,
    "Windows": 6,
    "Arcade": 52,
}

_PLATFORM_IDS_LOWER = {name.lower(): platform_id for name, platform_id in PLATFORM_IDS.items()}


def platform_id_for(platform: str | None) -> int | None:
    """Return the IGDB platform id for a platform name, ignoring case."""

    if not platform:
        return None
    return _PLATFORM_IDS_LOWER.get(platform.strip().lower())


def platform_matches(candidate_names: list[str], platform: str) -> bool:
    """Best-effort check that one of ``candidate_names`` is ``platform``."""

    wanted = platform.strip().lower()
    for raw_name in candidate_names:
        name = raw_name.lower()
        if name == wanted or wanted in name or name in wanted:
            return True

        if wanted in {"nes", "nintendo entertainment system"}:
            if "nintendo" in name and "entertainment" in name:
                return True
        elif wanted in {"snes", "super nintendo entertainment system", "super nintendo"}:
            if "super nintendo" in name:
                return True
        elif wanted in {"genesis", "mega drive", "sega genesis"}:
            if "genesis" in name or "mega drive" in name:
                return True
        elif wanted in {"playstation", "ps1", "sony playstation"}:
            if "playstation" in name and "2" not in name:
                return True
        elif wanted in {"xbox", "microsoft xbox"}:
            if "xbox" in name and "360" not in name and "one" not in name:
                return True
    return False


def build_query(title: str, platform: str | None = None) -> tuple[str, bool]:
    """Build an Apicalypse search body.

    Returns the query and whether results still need client-side platform
    filtering because the platform name has no known IGDB id.
    """

    escaped = title.replace("\\", "\\\\").replace('"', '\\"')
    platform_id = platform_id_for(platform)
    if platform_id is not None:
        query = (
            f'search "{escaped}"; where platforms = ({platform_id}); '
            f"fields {SEARCH_FIELDS}; limit {SCOPED_LIMIT};"
        )
        return query, False
    if platform:
        return f'search "{escaped}"; fields {SEARCH_FIELDS}; limit {UNSCOPED_LIMIT};', True
    return f'search "{escaped}"; fields {SEARCH_FIELDS}; limit {SCOPED_LIMIT};', False


def normalize_cover_url(url: str) -> str:
    """Make an IGDB image URL absolute and switch it to the large cover size."""

    if url.startswith("//"):
        url = f"https:{url}"
    elif url.startswith("http://"):
        url = "https://" + url.removeprefix("http://")
    return url.replace("t_thumb", "t_cover_big", 1)


def map_game(game: dict[str, Any]) -> MetadataEnvelope:
    """Convert one IGDB game object into a :class:`MetadataEnvelope`."""

    envelope = MetadataEnvelope(
        title=game.get("name") or "",
        description=game.get("summary") or "",
        provider_id=int(game.get("id") or 0),
    )

    rating = game.get("rating")
    if rating:
        envelope.rating = float(rating) / 10.0

    released = game.get("first_release_date")
    if released and int(released) > 0:
        envelope.year = datetime.fromtimestamp(int(released), tz=timezone.utc).year

    genres = game.get("genres") or []
    if genres and isinstance(genres[0], dict):
        envelope.genre = genres[0].get("name") or ""

    cover = game.get("cover")
    if isinstance(cover, dict) and cover.get("url"):
        envelope.cover_art_url = normalize_cover_url(cover["url"])

    return envelope


class TokenManager:
    """Client-credentials token cache shared by concurrent searches.

    Readers use the cached token without locking; a refresh happens under the
    lock and re-checks the cache so only one caller hits the token endpoint.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        token_url: str = TOKEN_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
        expiry_buffer: float = EXPIRY_BUFFER_SECONDS,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_url = token_url
        self._timeout = timeout
        self._transport = transport
        self._clock = clock
        self._expiry_buffer = expiry_buffer
        self._lock = threading.Lock()
        self._cached: tuple[str, float] | None = None

    @property
    def client_id(self) -> str:
        return self._client_id

    def _valid(self, cached: tuple[str, float] | None) -> bool:
        return cached is not None and self._clock() < cached[1] - self._expiry_buffer

    def ensure_token(self) -> str:
        """Return a usable access token, authenticating when needed."""

        cached = self._cached
        if self._valid(cached):
            return cached[0]  # type: ignore[index]

        with self._lock:
            cached = self._cached
            if self._valid(cached):
                return cached[0]  # type: ignore[index]
            token, expires_in = self._request_token()
            self._cached = (token, self._clock() + expires_in)
            logger.info("Obtained IGDB access token valid for %ss", expires_in)
            return token

    def invalidate(self, rejected: str) -> None:
        """Drop the cached token if it is still the one the server rejected."""

        with self._lock:
            if self._cached is not None and self._cached[0] == rejected:
                self._cached = None

    def _request_token(self) -> tuple[str, int]:
        if not self._client_id or not self._client_secret:
            raise ProviderAuthError("IGDB client credentials are not configured")

        form = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "grant_type": "client_credentials",
        }
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(self._token_url, data=form)
        except httpx.HTTPError as exc:
            raise ProviderAuthError(f"Failed to authenticate with Twitch: {exc}") from exc

        if response.status_code != 200:
            raise ProviderAuthError(
                f"Authentication failed with status {response.status_code}: {response.text}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderAuthError("Failed to decode OAuth response") from exc

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise ProviderAuthError("OAuth response did not include an access token")
        return str(token), int(payload.get("expires_in") or 0)


class IGDBProvider:
    """Searches IGDB and maps results into metadata envelopes."""

    name = "igdb"

    def __init__(
        self,
        tokens: TokenManager,
        *,
        games_url: str = GAMES_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._tokens = tokens
        self._games_url = games_url
        self._timeout = timeout
        self._transport = transport

    @property
    def tokens(self) -> TokenManager:
        return self._tokens

    def search(self, title: str, platform: str | None = None) -> list[MetadataEnvelope]:
        """Search IGDB for ``title``, scoped to ``platform`` when it is known."""

        query, filter_locally = build_query(title, platform)
        games = self._post_query(query)

        results: list[MetadataEnvelope] = []
        for game in games:
            if not isinstance(game, dict):
                continue
            if filter_locally and platform:
                names = [
                    item.get("name", "")
                    for item in game.get("platforms") or []
                    if isinstance(item, dict)
                ]
                if not platform_matches(names, platform):
                    continue
            results.append(map_game(game))

        logger.debug("IGDB search %r (%s) returned %d results", title, platform, len(results))
        return results

    def _post_query(self, query: str) -> list[Any]:
        token = self._tokens.ensure_token()
        response = self._send(query, token)
        if response.status_code == 401:
            # Token revoked server-side before its advertised expiry.
            self._tokens.invalidate(token)
            response = self._send(query, self._tokens.ensure_token())
            if response.status_code == 401:
                raise ProviderAuthError("IGDB rejected the access token")

        if response.status_code != 200:
            raise ProviderError(
                f"IGDB request failed with status {response.status_code}: {response.text}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError("Failed to decode IGDB response") from exc
        if not isinstance(payload, list):
            raise ProviderError("IGDB response must be a list")
        return payload

    def _send(self, query: str, token: str) -> httpx.Response:
        headers = {
            "Client-ID": self._tokens.client_id,
            "Authorization": f"Bearer {token}",
            "Content-Type": "text/plain",
        }
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                return client.post(self._games_url, content=query, headers=headers)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Failed to make IGDB request: {exc}") from exc
