"""TheAudioDB provider for artist thumbnails.

Looks an artist up by MusicBrainz id (``artist-mb.php``) when one is known,
which avoids name collisions, and by name (``search.php``) otherwise.  The
public test key ``"2"`` works for both endpoints.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from creditgraph.config.settings import Settings
from creditgraph.interfaces.image_provider import IImageProvider
from creditgraph.utils.errors import RateLimitError, TransientError
from creditgraph.utils.logging import get_logger
from creditgraph.utils.rate_limiter import RateLimiter, retry_on_rate_limit

logger: structlog.BoundLogger = get_logger(__name__)

_BASE_URL = "https://www.theaudiodb.com/api/v1/json"


class TheAudioDBProvider(IImageProvider):
    """Artist images from TheAudioDB.

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
        self._limiter = limiter or RateLimiter(settings.audiodb_min_interval, name="theaudiodb")
        self._backoff = settings.rate_limit_backoff_seconds

    async def _get(self, endpoint: str, params: dict[str, str]) -> dict[str, Any]:
        url = f"{_BASE_URL}/{self._settings.audiodb_api_key}/{endpoint}"

        async def attempt() -> dict[str, Any]:
            await self._limiter.throttle()
            try:
                response = await self._http.get(
                    url, params=params, timeout=self._settings.http_timeout_seconds
                )
            except httpx.HTTPError as exc:
                raise TransientError(
                    message=f"TheAudioDB request failed: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
            if response.status_code == 429:
                raise RateLimitError(
                    message="TheAudioDB rate limit exceeded",
                    provider_name=self.get_provider_name(),
                )
            if response.status_code >= 400:
                raise TransientError(
                    message=f"TheAudioDB returned {response.status_code}",
                    provider_name=self.get_provider_name(),
                )
            try:
                return response.json() or {}
            except ValueError:
                # An unknown artist sometimes yields an empty body.
                return {}

        return await retry_on_rate_limit(attempt, self._backoff, self.get_provider_name())

    async def fetch_artist_image(self, name: str, mbid: str | None = None) -> str | None:
        if mbid:
            data = await self._get("artist-mb.php", {"i": mbid})
        else:
            data = await self._get("search.php", {"s": name})
        artists = data.get("artists") or []
        if not artists:
            logger.debug("theaudiodb_artist_not_found", artist=name, mbid=mbid)
            return None
        return artists[0].get("strArtistThumb") or None

    def get_provider_name(self) -> str:
        """Return ``'theaudiodb'``."""
        return "theaudiodb"

    def is_available(self) -> bool:
        return bool(self._settings.audiodb_api_key)
