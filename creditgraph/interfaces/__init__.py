"""Interface definitions for every external collaborator.

Each external catalog or store is reached only through one of these ABCs;
concrete adapters live in ``creditgraph/providers/`` and are wired in
``creditgraph/main.py``.  Tests inject fakes that implement the same ABCs.

    Interface                      ->  Implementations
    ----------------------------------------------------------------
    ICatalogProvider               ->  MusicBrainzProvider
    ISupplementalCreditsProvider   ->  DiscogsProvider
    IImageProvider                 ->  TheAudioDBProvider, DiscogsProvider,
                                       LastFmProvider
    IScrobbleProvider              ->  LastFmProvider
    ICacheStorage                  ->  SQLiteCacheStorage, MemoryCacheStorage
"""

from creditgraph.interfaces.cache_storage import ICacheStorage
from creditgraph.interfaces.catalog_provider import ICatalogProvider
from creditgraph.interfaces.credits_provider import ISupplementalCreditsProvider
from creditgraph.interfaces.image_provider import IImageProvider
from creditgraph.interfaces.scrobble_provider import IScrobbleProvider

__all__ = [
    "ICacheStorage",
    "ICatalogProvider",
    "IImageProvider",
    "IScrobbleProvider",
    "ISupplementalCreditsProvider",
]
