"""FastAPI API routes for creditgraph.

Service dependencies are resolved from ``app.state`` (populated at startup
by ``main._build_all``) through ``Depends`` helpers using the ``Annotated``
pattern.  A missing service yields 503 rather than an attribute error, so
tests can mount the router on a bare app with only the stubs they need.

    Endpoint                                Method  Description
    --------------------------------------------------------------------
    /api/v1/graphs/track                    POST    Flat track credit graph
    /api/v1/graphs/artist                   POST    Discography root (depth 0-1)
    /api/v1/graphs/expand                   POST    Drill into a release or track
    /api/v1/graphs/relations                POST    Band memberships / collaborations
    /api/v1/graphs/now-playing/{username}   GET     Graph for a user's current scrobble
    /api/v1/graphs/history/{username}       GET     Graph of a user's recent scrobbles
    /api/v1/cache/stats                     GET     Track and image cache counters
    /api/v1/cache                           DELETE  Clear every cache
    /api/v1/health                          GET     Health check + provider status
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from creditgraph import __version__
from creditgraph.api.schemas import (
    ArtistGraphRequest,
    CacheClearResponse,
    CacheStatsResponse,
    ExpandRequest,
    GraphResponse,
    HealthResponse,
    TrackGraphRequest,
)
from creditgraph.models.graph import EntityType, MusicGraph
from creditgraph.services.graph_assembler import GraphAssembler
from creditgraph.services.track_cache import TrackCache
from creditgraph.utils.errors import InvalidEntityError
from creditgraph.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")


# ---------------------------------------------------------------------------
# Dependency injection helpers
# ---------------------------------------------------------------------------


def _get_assembler(request: Request) -> GraphAssembler:
    """Return the graph assembler, or raise 503 when it is not wired."""
    assembler = getattr(request.app.state, "graph_assembler", None)
    if assembler is None:
        raise HTTPException(status_code=503, detail="Graph assembler not available")
    return assembler


def _get_track_cache(request: Request) -> TrackCache:
    track_cache = getattr(request.app.state, "track_cache", None)
    if track_cache is None:
        raise HTTPException(status_code=503, detail="Track cache not available")
    return track_cache


def _get_image_resolver(request: Request) -> Any:
    return getattr(request.app.state, "image_resolver", None)


def _get_alias_resolver(request: Request) -> Any:
    return getattr(request.app.state, "alias_resolver", None)


AssemblerDep = Annotated[GraphAssembler, Depends(_get_assembler)]
TrackCacheDep = Annotated[TrackCache, Depends(_get_track_cache)]
ImageResolverDep = Annotated[Any, Depends(_get_image_resolver)]
AliasResolverDep = Annotated[Any, Depends(_get_alias_resolver)]


def _graph_response(graph: MusicGraph) -> GraphResponse:
    return GraphResponse(found=not graph.is_empty, graph=graph)


# ---------------------------------------------------------------------------
# Graphs
# ---------------------------------------------------------------------------


@router.post("/graphs/track", response_model=GraphResponse, summary="Build a track credit graph")
async def build_track_graph(body: TrackGraphRequest, assembler: AssemblerDep) -> GraphResponse:
    """Resolve a track and return its credited artists, release and personnel."""
    graph = await assembler.build_track_graph(body.track, body.artist, body.album or None)
    return _graph_response(graph)


@router.post("/graphs/artist", response_model=GraphResponse, summary="Initialize a discography")
async def initialize_artist_graph(
    body: ArtistGraphRequest, assembler: AssemblerDep
) -> GraphResponse:
    """Return the artist and its albums, singles and EPs."""
    graph = await assembler.initialize_artist_graph(body.artist)
    return _graph_response(graph)


@router.post("/graphs/expand", response_model=GraphResponse, summary="Drill into a node")
async def expand_entity(body: ExpandRequest, assembler: AssemblerDep) -> GraphResponse:
    """Expand a release into tracks, or a track into its people."""
    entity = body.entity
    if entity.type is EntityType.ALBUM:
        graph = await assembler.expand_release(entity)
    elif entity.type is EntityType.TRACK:
        graph = await assembler.expand_track(entity)
    else:
        raise InvalidEntityError(message=f"Cannot expand a {entity.type.value} entity")
    return _graph_response(graph)


@router.post("/graphs/relations", response_model=GraphResponse, summary="Artist relations")
async def build_artist_relations_graph(
    body: ArtistGraphRequest, assembler: AssemblerDep
) -> GraphResponse:
    graph = await assembler.build_artist_relations_graph(body.artist)
    return _graph_response(graph)


@router.get(
    "/graphs/now-playing/{username}",
    response_model=GraphResponse,
    summary="Graph for a user's current track",
)
async def build_now_playing_graph(username: str, assembler: AssemblerDep) -> GraphResponse:
    graph = await assembler.build_now_playing_graph(username)
    return _graph_response(graph)


@router.get(
    "/graphs/history/{username}",
    response_model=GraphResponse,
    summary="Graph of a user's recent scrobbles",
)
async def build_user_history_graph(
    username: str,
    assembler: AssemblerDep,
    limit: int = Query(default=30, ge=1, le=200),
) -> GraphResponse:
    graph = await assembler.build_user_history_graph(username, limit=limit)
    return _graph_response(graph)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


@router.get("/cache/stats", response_model=CacheStatsResponse, summary="Cache statistics")
async def cache_stats(
    track_cache: TrackCacheDep,
    image_resolver: ImageResolverDep,
    alias_resolver: AliasResolverDep,
) -> CacheStatsResponse:
    stats = await track_cache.stats()
    return CacheStatsResponse(
        track_count=stats.track_count,
        oldest_entry=stats.oldest_entry,
        newest_entry=stats.newest_entry,
        total_hits=stats.total_hits,
        image_cache=image_resolver.stats() if image_resolver is not None else {},
        aliases=alias_resolver.stats() if alias_resolver is not None else {},
    )


@router.delete("/cache", response_model=CacheClearResponse, summary="Clear all caches")
async def clear_cache(
    track_cache: TrackCacheDep,
    image_resolver: ImageResolverDep,
    alias_resolver: AliasResolverDep,
) -> CacheClearResponse:
    """Clear the track cache, the image cache and the alias table."""
    await track_cache.clear()
    if image_resolver is not None:
        image_resolver.clear()
    if alias_resolver is not None:
        alias_resolver.clear()
    _logger.info("caches_cleared")
    return CacheClearResponse(cleared=True)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, summary="Application health check")
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    catalog_ok = providers.get("musicbrainz", False)
    return HealthResponse(
        status="healthy" if catalog_ok else "degraded",
        version=__version__,
        providers=providers,
    )
