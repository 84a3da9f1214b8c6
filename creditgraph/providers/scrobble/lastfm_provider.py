"""Last.fm provider: scrobble history and artist/album artwork.

Implements :class:`IScrobbleProvider` (``user.getrecenttracks``) and
:class:`IImageProvider` (``artist.getinfo`` / ``album.getinfo``) over an
injected ``httpx.AsyncClient``.  Requests go through this provider's
:class:`RateLimiter`.

Last.fm reports some failures as HTTP 200 with ``{"error": N}`` in the
body; error 29 is its rate-limit code and is treated like HTTP 429.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from creditgraph.config.settings import Settings
from creditgraph.interfaces.image_provider import IImageProvider
from creditgraph.interfaces.scrobble_provider import IScrobbleProvider
from creditgraph.models.catalog import NowPlaying
from creditgraph.utils.errors import CatalogError, RateLimitError, TransientError
from creditgraph.utils.logging import get_logger
from creditgraph.utils.rate_limiter import RateLimiter, retry_on_rate_limit

logger: structlog.BoundLogger = get_logger(__name__)

_API_URL = "https://ws.audioscrobbler.com/2.0/"
_USER_AGENT = "creditgraph/0.1.0"
_PREFERRED_SIZES = ("extralarge", "large")
# Last.fm's grey star placeholder, returned when no real image exists.
_PLACEHOLDER_HASH = "2a96cbd8b46e442fc41c2b86b821562f"
_RATE_LIMIT_ERROR = 29
# "Artist not found", "Album not found", "User not found" style errors.
_NOT_FOUND_ERRORS = frozenset({6, 7})


def best_image(images: list[dict[str, Any]] | None) -> str | None:
    """Pick extralarge/large, else the last listed size; drop placeholders."""
    if not images:
        return None
    preferred = next((img for img in images if img.get("size") in _PREFERRED_SIZES), None)
    url = (preferred or {}).get("#text") or images[-1].get("#text") or ""
    if not url or _PLACEHOLDER_HASH in url:
        return None
    return url


def _map_scrobble(raw: dict[str, Any]) -> NowPlaying:
    artist = raw.get("artist") or {}
    album = raw.get("album") or {}
    date = raw.get("date") or {}
    return NowPlaying(
        track=raw.get("name", ""),
        artist=artist.get("#text") or artist.get("name", ""),
        album=album.get("#text", ""),
        image=best_image(raw.get("image")),
        is_playing=(raw.get("@attr") or {}).get("nowplaying") == "true",
        timestamp=int(date["uts"]) if date.get("uts") else None,
    )


class LastFmProvider(IScrobbleProvider, IImageProvider):
    """Last.fm API client for scrobbles and images.

    The ``httpx.AsyncClient`` is injected for testability.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: Settings,
        limiter: RateLimiter | None = None,
    ) -> None:
        self._http = http_client
        self._settings = settings
        self._limiter = limiter or RateLimiter(settings.lastfm_min_interval, name="lastfm")
        self._backoff = settings.rate_limit_backoff_seconds

    # -- Private helpers -------------------------------------------------------

    async def _request(self, method: str, **params: str) -> dict[str, Any] | None:
        """Call an API method; returns ``None`` for Last.fm's not-found errors."""

        async def attempt() -> dict[str, Any] | None:
            await self._limiter.throttle()
            query = {
                "method": method,
                "api_key": self._settings.lastfm_api_key,
                "format": "json",
                **params,
            }
            try:
                response = await self._http.get(
                    _API_URL,
                    params=query,
                    headers={"User-Agent": _USER_AGENT},
                    timeout=self._settings.http_timeout_seconds,
                )
            except httpx.HTTPError as exc:
                raise TransientError(
                    message=f"Last.fm {method} failed: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc

            if response.status_code == 429:
                raise RateLimitError(
                    message="Last.fm rate limit exceeded",
                    provider_name=self.get_provider_name(),
                )
            if response.status_code >= 500:
                raise TransientError(
                    message=f"Last.fm {method} returned {response.status_code}",
                    provider_name=self.get_provider_name(),
                )

            try:
                data = response.json()
            except ValueError as exc:
                raise TransientError(
                    message=f"Last.fm {method} returned invalid JSON",
                    provider_name=self.get_provider_name(),
                ) from exc

            error_code = data.get("error") if isinstance(data, dict) else None
            if error_code == _RATE_LIMIT_ERROR:
                raise RateLimitError(
                    message=data.get("message", "Rate limit exceeded"),
                    provider_name=self.get_provider_name(),
                )
            if error_code in _NOT_FOUND_ERRORS:
                return None
            if error_code is not None:
                raise CatalogError(
                    message=f"Last.fm error {error_code}: {data.get('message', '')}",
                    provider_name=self.get_provider_name(),
                )
            if response.status_code >= 400:
                raise CatalogError(
                    message=f"Last.fm {method} returned {response.status_code}",
                    provider_name=self.get_provider_name(),
                )
            return data

        return await retry_on_rate_limit(attempt, self._backoff, self.get_provider_name())

    # -- IScrobbleProvider -----------------------------------------------------

    async def get_recent_tracks(self, username: str, limit: int = 50) -> list[NowPlaying]:
        data = await self._request("user.getrecenttracks", user=username, limit=str(limit))
        tracks = ((data or {}).get("recenttracks") or {}).get("track") or []
        # A single scrobble comes back as an object rather than a list.
        if isinstance(tracks, dict):
            tracks = [tracks]
        return [_map_scrobble(raw) for raw in tracks[:limit]]

    async def get_now_playing(self, username: str) -> NowPlaying | None:
        tracks = await self.get_recent_tracks(username, limit=1)
        if not tracks:
            return None
        current = tracks[0]
        logger.debug(
            "lastfm_now_playing",
            username=username,
            track=current.track,
            is_playing=current.is_playing,
        )
        return current

    # -- IImageProvider --------------------------------------------------------

    async def fetch_artist_image(self, name: str, mbid: str | None = None) -> str | None:
        params = {"mbid": mbid} if mbid else {"artist": name}
        data = await self._request("artist.getinfo", **params)
        if data is None and mbid:
            # Last.fm does not know every MBID; fall back to the name.
            data = await self._request("artist.getinfo", artist=name)
        return best_image(((data or {}).get("artist") or {}).get("image"))

    async def fetch_album_image(self, artist: str, album: str) -> str | None:
        data = await self._request("album.getinfo", artist=artist, album=album)
        return best_image(((data or {}).get("album") or {}).get("image"))

    # -- Metadata --------------------------------------------------------------

    def get_provider_name(self) -> str:
        """Return ``'lastfm'``."""
        return "lastfm"

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._settings.lastfm_api_key)
