"""creditgraph domain models.

- graph.py   -- Entity, Relationship, MusicGraph and the role/type enums
- catalog.py -- provider-neutral DTOs returned by catalog adapters
- cache.py   -- persisted track cache entry and index shapes
- lookup.py  -- found / not-found / error result for fallback chains
"""

from __future__ import annotations

from creditgraph.models.cache import CACHE_FORMAT_VERSION, CachedEntry, CacheIndex, CacheStats
from creditgraph.models.catalog import (
    ArtistCredit,
    ArtistRef,
    ArtistRelation,
    LabelRef,
    NowPlaying,
    RecordingCandidate,
    RecordingDetail,
    ReleaseCandidate,
    ReleaseDetail,
    ReleaseGroupRef,
    ReleaseRef,
    ReleaseTrack,
    SupplementalCredit,
    SupplementalRelease,
    SupplementalTrack,
)
from creditgraph.models.graph import (
    CREDITED_ARTIST_ROLES,
    Entity,
    EntityType,
    MusicGraph,
    Relationship,
    ReleaseType,
    RoleType,
    relationship_id,
)
from creditgraph.models.lookup import LookupResult, LookupStatus

__all__ = [
    "ArtistCredit",
    "ArtistRef",
    "ArtistRelation",
    "CACHE_FORMAT_VERSION",
    "CREDITED_ARTIST_ROLES",
    "CacheIndex",
    "CacheStats",
    "CachedEntry",
    "Entity",
    "EntityType",
    "LabelRef",
    "LookupResult",
    "LookupStatus",
    "MusicGraph",
    "NowPlaying",
    "RecordingCandidate",
    "RecordingDetail",
    "Relationship",
    "ReleaseCandidate",
    "ReleaseDetail",
    "ReleaseGroupRef",
    "ReleaseRef",
    "ReleaseTrack",
    "ReleaseType",
    "RoleType",
    "SupplementalCredit",
    "SupplementalRelease",
    "SupplementalTrack",
    "relationship_id",
]
