"""Supplemental credits provider.

DiscogsProvider fills in personnel the primary catalog lacks (mixing and
mastering engineers, session players) and doubles as an artist image source.
Requires DISCOGS_USER_TOKEN; without it the provider reports unavailable
and graph assembly skips the supplemental merge.
"""

from creditgraph.providers.credits.discogs_provider import DiscogsProvider

__all__ = ["DiscogsProvider"]
