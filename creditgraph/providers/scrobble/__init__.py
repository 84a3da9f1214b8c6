"""Scrobble provider.

LastFmProvider answers "what is this user listening to" and supplies album
artwork for the image chain.  Requires LASTFM_API_KEY.
"""

from creditgraph.providers.scrobble.lastfm_provider import LastFmProvider

__all__ = ["LastFmProvider"]
