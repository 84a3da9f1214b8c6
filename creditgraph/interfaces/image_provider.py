"""Abstract base class for artist and album image sources."""

from __future__ import annotations

from abc import ABC, abstractmethod


class IImageProvider(ABC):
    """Contract for image lookups.

    Implementations return an image URL, or ``None`` when the source has no
    image.  Errors may be raised freely; :class:`ImageResolver` logs them
    and moves on to the next provider.
    """

    @abstractmethod
    async def fetch_artist_image(self, name: str, mbid: str | None = None) -> str | None:
        """Look up an artist image.

        Parameters
        ----------
        name:
            Artist display name.
        mbid:
            Primary-catalog id, when known; sources that index by it should
            prefer it over a name search.
        """

    async def fetch_album_image(self, artist: str, album: str) -> str | None:
        """Look up album artwork.  Sources without album art return ``None``."""
        return None

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in logs."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` when the provider is configured for use."""
