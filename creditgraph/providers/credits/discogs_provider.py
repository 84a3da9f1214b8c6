"""Discogs REST API provider using python3-discogs-client.

Implements :class:`ISupplementalCreditsProvider` (track and release
credits) and :class:`IImageProvider` (artist photos).  The client is
initialized lazily with a personal user token and every call runs through
``asyncio.to_thread`` after this provider's :class:`RateLimiter`; Discogs
allows 60 authenticated requests per minute.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any, Callable

import discogs_client
import structlog
from discogs_client.exceptions import HTTPError

from creditgraph.config.settings import Settings
from creditgraph.interfaces.credits_provider import ISupplementalCreditsProvider
from creditgraph.interfaces.image_provider import IImageProvider
from creditgraph.models.catalog import SupplementalCredit, SupplementalRelease, SupplementalTrack
from creditgraph.utils.errors import RateLimitError, TransientError
from creditgraph.utils.logging import get_logger
from creditgraph.utils.rate_limiter import RateLimiter, retry_on_rate_limit
from creditgraph.utils.text_normalizer import (
    clean_discogs_artist_name,
    fuzzy_match,
    normalize,
    normalize_for_key,
)

logger: structlog.BoundLogger = get_logger(__name__)

_USER_AGENT = "creditgraph/0.1.0"
_MAX_SEARCH_RESULTS = 10
_ARTIST_MATCH_THRESHOLD = 0.8

# Release-selection weights.
_ARTIST_IN_TITLE = 50
_ALBUM_IN_TITLE = 100
_COMPILATION_FORMAT = -50
_ALBUM_FORMAT = 20
_ANNIVERSARY_NUMBER = -40
_SPECIAL_EDITION = -30

_ANNIVERSARY_NUMBER_RE = re.compile(r"\b(?:25|30|40|50)\b")
_SPECIAL_EDITION_RE = re.compile(
    r"\b(?:deluxe|special|limited|expanded|remaster|anniversary|collector|box\s*set)\b",
    re.IGNORECASE,
)


def score_release(result: dict[str, Any], artist: str, album: str | None = None) -> int:
    """Score a release search hit; higher is a better source of credits.

    Search hits are titled ``"Artist - Album"`` and carry a ``format`` list
    such as ``["Vinyl", "LP", "Album"]``.
    """
    title = result.get("title", "")
    normalized_title = normalize(title)
    formats = [str(f).lower() for f in result.get("format", []) or []]
    score = 0

    wanted_artist = normalize(artist)
    if wanted_artist and wanted_artist in normalized_title:
        score += _ARTIST_IN_TITLE
    if album and normalize(album) and normalize(album) in normalized_title:
        score += _ALBUM_IN_TITLE
    if any("compilation" in f for f in formats):
        score += _COMPILATION_FORMAT
    if any("album" in f or f == "lp" for f in formats):
        score += _ALBUM_FORMAT
    if _ANNIVERSARY_NUMBER_RE.search(title):
        score += _ANNIVERSARY_NUMBER
    if _SPECIAL_EDITION_RE.search(title):
        score += _SPECIAL_EDITION
    return score


def _map_credit(raw: dict[str, Any]) -> SupplementalCredit | None:
    name = raw.get("name") or ""
    if not name:
        return None
    raw_id = raw.get("id")
    return SupplementalCredit(
        # Unlinked credits (id 0) get a name-derived id so they still dedupe.
        artist_id=str(raw_id) if raw_id else f"name-{normalize_for_key(name)}",
        name=name,
        role=raw.get("role", "") or "",
        tracks=raw.get("tracks", "") or "",
    )


def _map_credits(raw: list[dict[str, Any]] | None) -> tuple[SupplementalCredit, ...]:
    mapped = (_map_credit(item) for item in raw or [])
    return tuple(credit for credit in mapped if credit is not None)


def map_release(data: dict[str, Any]) -> SupplementalRelease:
    """Map a full Discogs release payload to a :class:`SupplementalRelease`."""
    tracklist: list[SupplementalTrack] = []
    for item in data.get("tracklist", []):
        if item.get("type_", "track") != "track":
            continue
        tracklist.append(
            SupplementalTrack(
                position=item.get("position", ""),
                title=item.get("title", ""),
                credits=_map_credits(item.get("extraartists")),
            )
        )
    return SupplementalRelease(
        id=str(data.get("id", "")),
        title=data.get("title", ""),
        tracklist=tuple(tracklist),
        credits=_map_credits(data.get("extraartists")),
    )


class DiscogsProvider(ISupplementalCreditsProvider, IImageProvider):
    """Supplemental credits and artist images from the Discogs API."""

    def __init__(self, settings: Settings, limiter: RateLimiter | None = None) -> None:
        self._settings = settings
        self._client: discogs_client.Client | None = None
        self._limiter = limiter or RateLimiter(settings.discogs_min_interval, name="discogs")
        self._backoff = settings.rate_limit_backoff_seconds

    # -- Private helpers -------------------------------------------------------

    def _get_client(self) -> discogs_client.Client:
        """Lazily initialize and return the Discogs API client."""
        if self._client is None:
            self._client = discogs_client.Client(
                _USER_AGENT, user_token=self._settings.discogs_user_token
            )
        return self._client

    async def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        """Throttle, run *func* in a thread and translate HTTP errors.

        Returns ``None`` on HTTP 404.
        """

        async def attempt() -> Any:
            await self._limiter.throttle()
            try:
                return await asyncio.to_thread(func, *args)
            except HTTPError as exc:
                if exc.status_code == 404:
                    return None
                if exc.status_code == 429:
                    raise RateLimitError(
                        message="Discogs rate limit exceeded",
                        provider_name=self.get_provider_name(),
                    ) from exc
                raise TransientError(
                    message=f"Discogs request failed ({exc.status_code}): {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
            except OSError as exc:
                # requests' connection errors derive from OSError.
                raise TransientError(
                    message=f"Discogs request failed: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc

        return await retry_on_rate_limit(attempt, self._backoff, self.get_provider_name())

    # -- Sync helpers (executed via asyncio.to_thread) -------------------------

    def _search_sync(self, query: str, search_type: str) -> list[dict[str, Any]]:
        client = self._get_client()
        results = client.search(query, type=search_type)
        items: list[dict[str, Any]] = []
        for i, item in enumerate(results):
            if i >= _MAX_SEARCH_RESULTS:
                break
            items.append(dict(item.data))
        return items

    def _get_release_sync(self, release_id: int) -> dict[str, Any]:
        release = self._get_client().release(release_id)
        release.refresh()
        return dict(release.data)

    def _get_artist_sync(self, artist_id: int) -> dict[str, Any]:
        artist = self._get_client().artist(artist_id)
        artist.refresh()
        return dict(artist.data)

    # -- ISupplementalCreditsProvider ------------------------------------------

    async def find_release_credits(
        self,
        track: str,
        artist: str,
        album: str | None = None,
    ) -> SupplementalRelease | None:
        """Pick the best-scoring release for the query and return its credits."""
        if not self.is_available():
            return None

        query = f"{artist} {album}" if album else f"{artist} {track}"
        results = await self._call(self._search_sync, query, "release") or []
        if not results:
            logger.debug("discogs_release_search_empty", query=query)
            return None

        scored = sorted(
            ((score_release(r, artist, album), r) for r in results),
            key=lambda pair: pair[0],
            reverse=True,
        )
        best_score, best = scored[0]
        logger.info(
            "discogs_release_selected",
            title=best.get("title"),
            score=best_score,
            candidates=len(scored),
        )

        data = await self._call(self._get_release_sync, int(best["id"]))
        if data is None:
            return None
        return map_release(data)

    # -- IImageProvider --------------------------------------------------------

    async def fetch_artist_image(self, name: str, mbid: str | None = None) -> str | None:
        """Primary image of the closest-named Discogs artist."""
        if not self.is_available():
            return None
        results = await self._call(self._search_sync, name, "artist") or []
        by_title = {
            clean_discogs_artist_name(r["title"]): r for r in results if r.get("title")
        }
        matched = fuzzy_match(name, list(by_title), threshold=_ARTIST_MATCH_THRESHOLD)
        if matched is None:
            logger.debug("discogs_artist_not_matched", query=name, candidates=len(by_title))
            return None
        match, confidence = matched
        hit = by_title[match]
        logger.debug("discogs_artist_matched", query=name, match=match, confidence=confidence)

        data = await self._call(self._get_artist_sync, int(hit["id"]))
        images = (data or {}).get("images", [])
        primary = next((img for img in images if img.get("type") == "primary"), None)
        chosen = primary or (images[0] if images else None)
        if chosen and chosen.get("uri"):
            return chosen["uri"]
        cover = hit.get("cover_image") or ""
        # Discogs serves a spacer gif when an artist has no photo.
        return cover if cover and not cover.endswith("spacer.gif") else None

    # -- Metadata --------------------------------------------------------------

    def get_provider_name(self) -> str:
        """Return ``'discogs'``."""
        return "discogs"

    def is_available(self) -> bool:
        """Return ``True`` if a user token is configured."""
        return bool(self._settings.discogs_user_token)

