"""Primary catalog provider.

MusicBrainzProvider is the single ICatalogProvider: recording, release,
release-group, work and artist identities in the graph all come from it.
"""

from creditgraph.providers.catalog.musicbrainz_provider import MusicBrainzProvider

__all__ = ["MusicBrainzProvider"]
