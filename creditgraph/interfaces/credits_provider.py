"""Abstract base class for the supplemental credits database.

The credits database (Discogs) often lists personnel the primary catalog
lacks: mixing and mastering engineers, session players, and credits that are
scoped to individual track positions on a release.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from creditgraph.models.catalog import SupplementalRelease


class ISupplementalCreditsProvider(ABC):
    """Contract for supplemental credit sources."""

    @abstractmethod
    async def find_release_credits(
        self,
        track: str,
        artist: str,
        album: str | None = None,
    ) -> SupplementalRelease | None:
        """Find the best-matching release for a track and return its credits.

        Parameters
        ----------
        track:
            Track title.
        artist:
            Primary artist name.
        album:
            Optional album title; when given it dominates release selection.

        Returns
        -------
        SupplementalRelease or None
            Tracklist with per-track credits plus release-level credits
            (each possibly scoped to track positions), or ``None`` when no
            release matched.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in ids, logs and errors."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` when credentials are configured."""
