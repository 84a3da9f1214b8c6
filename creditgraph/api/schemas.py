"""Pydantic request/response schemas for the creditgraph API.

Graph bodies reuse :class:`MusicGraph` directly, so responses carry the
same camelCase entity/relationship shape the track cache persists and the
exchange files use.  Request schemas end with ``Request``, response
schemas with ``Response``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from creditgraph.models.graph import Entity, MusicGraph


class TrackGraphRequest(BaseModel):
    """Query for a flat track graph."""

    track: str = Field(..., min_length=1, max_length=300)
    artist: str = Field(..., min_length=1, max_length=300)
    album: str | None = Field(default=None, max_length=300)


class ArtistGraphRequest(BaseModel):
    """Artist name for discography or relation graphs."""

    artist: str = Field(..., min_length=1, max_length=300)


class ExpandRequest(BaseModel):
    """A discography node to drill into (a release or a track)."""

    entity: Entity


class GraphResponse(BaseModel):
    """An assembled graph plus a convenience not-found flag."""

    found: bool
    graph: MusicGraph


class CacheStatsResponse(BaseModel):
    """Track cache and image cache counters."""

    track_count: int
    oldest_entry: datetime | None = None
    newest_entry: datetime | None = None
    total_hits: int
    image_cache: dict[str, int] = Field(default_factory=dict)
    aliases: dict[str, int] = Field(default_factory=dict)


class CacheClearResponse(BaseModel):
    cleared: bool


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
    provider: str | None = None
