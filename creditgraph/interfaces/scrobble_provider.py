"""Abstract base class for scrobble-history services."""

from __future__ import annotations

from abc import ABC, abstractmethod

from creditgraph.models.catalog import NowPlaying


class IScrobbleProvider(ABC):
    """Contract for listening-history lookups (Last.fm)."""

    @abstractmethod
    async def get_now_playing(self, username: str) -> NowPlaying | None:
        """Return the user's current track, or their most recent scrobble.

        ``None`` when the user has no scrobbles at all.
        """

    @abstractmethod
    async def get_recent_tracks(self, username: str, limit: int = 50) -> list[NowPlaying]:
        """Return up to *limit* recent scrobbles, newest first."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in logs."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` when an API key is configured."""
