"""Image providers.

TheAudioDBProvider is first in the artist image chain; DiscogsProvider and
LastFmProvider (registered from their own packages) follow it.
"""

from creditgraph.providers.images.theaudiodb_provider import TheAudioDBProvider

__all__ = ["TheAudioDBProvider"]
