"""creditgraph -- music credit reconciliation across MusicBrainz, Discogs and Last.fm."""

__version__ = "0.1.0"
