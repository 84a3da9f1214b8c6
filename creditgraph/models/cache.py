"""Persisted track cache shapes.

Both models serialize with camelCase keys; an entry on disk looks like::

    {"entities": [...], "relationships": [...],
     "cachedAt": 1718000000000, "lastAccessedAt": 1718000500000, "hitCount": 3}

and the index like ``{"keys": ["artist::track", ...], "formatVersion": 1}``
with keys ordered most-recently-used first.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from creditgraph.models.graph import Entity, MusicGraph, Relationship

CACHE_FORMAT_VERSION = 1

_PERSISTED_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CachedEntry(BaseModel):
    """One cached track subgraph plus its LRU/TTL bookkeeping."""

    model_config = _PERSISTED_CONFIG

    entities: list[Entity] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    cached_at: int  # epoch millis
    last_accessed_at: int  # epoch millis
    hit_count: int = 0

    @classmethod
    def from_graph(cls, graph: MusicGraph, now_ms: int) -> CachedEntry:
        return cls(
            entities=list(graph.entities),
            relationships=list(graph.relationships),
            cached_at=now_ms,
            last_accessed_at=now_ms,
            hit_count=0,
        )

    def to_graph(self) -> MusicGraph:
        return MusicGraph(entities=self.entities, relationships=self.relationships)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class CacheIndex(BaseModel):
    """Ordered key list; position 0 is the most recently used key."""

    model_config = _PERSISTED_CONFIG

    keys: list[str] = Field(default_factory=list)
    format_version: int = CACHE_FORMAT_VERSION

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class CacheStats(BaseModel):
    """Snapshot of the track cache for observability."""

    model_config = ConfigDict(frozen=True)

    track_count: int = 0
    oldest_entry: datetime | None = None
    newest_entry: datetime | None = None
    total_hits: int = 0
