"""creditgraph FastAPI application entry point.

Wires together all providers and services via constructor injection.
Loads configuration from ``.env`` and ``config/config.yaml``, configures
structured logging, and exposes the API router.  ``build_components`` is
also used by the CLI to get the same object graph without a web server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from creditgraph import __version__
from creditgraph.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from creditgraph.api.routes import router as api_router
from creditgraph.config.loader import load_config, load_match_weights
from creditgraph.config.settings import Settings
from creditgraph.interfaces.cache_storage import ICacheStorage
from creditgraph.interfaces.image_provider import IImageProvider
from creditgraph.providers.cache.memory_cache_storage import MemoryCacheStorage
from creditgraph.providers.cache.sqlite_cache_storage import SQLiteCacheStorage
from creditgraph.providers.catalog.musicbrainz_provider import MusicBrainzProvider
from creditgraph.providers.credits.discogs_provider import DiscogsProvider
from creditgraph.providers.images.theaudiodb_provider import TheAudioDBProvider
from creditgraph.providers.scrobble.lastfm_provider import LastFmProvider
from creditgraph.services.alias_resolver import AliasResolver
from creditgraph.services.credit_merger import CreditMerger
from creditgraph.services.graph_assembler import GraphAssembler
from creditgraph.services.image_resolver import ImageResolver
from creditgraph.services.recording_matcher import RecordingMatcher, ReleaseMatcher
from creditgraph.services.recording_resolver import RecordingResolver
from creditgraph.services.role_mapper import RoleMapper
from creditgraph.services.track_cache import TrackCache
from creditgraph.utils.logging import configure_logging, get_logger

_SECONDS_PER_DAY = 24 * 60 * 60

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings.config_path, settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def _build_storage(app_settings: Settings) -> ICacheStorage:
    if app_settings.cache_enabled:
        return SQLiteCacheStorage(
            db_path=app_settings.cache_db_path,
            quota_bytes=app_settings.cache_quota_bytes,
        )
    return MemoryCacheStorage(quota_bytes=app_settings.cache_quota_bytes)


def _build_all(app_settings: Settings, app_config: dict | None = None) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=app_settings.http_timeout_seconds)
    weights = load_match_weights(app_config or {})

    # -- Providers (one rate limiter each, owned by the provider) --
    catalog = MusicBrainzProvider(settings=app_settings)
    discogs = DiscogsProvider(settings=app_settings)
    lastfm = LastFmProvider(http_client=http_client, settings=app_settings)
    audiodb = TheAudioDBProvider(http_client=http_client, settings=app_settings)

    image_sources: dict[str, IImageProvider] = {
        "theaudiodb": audiodb,
        "discogs": discogs,
        "lastfm": lastfm,
    }
    artist_image_chain = [
        image_sources[name] for name in app_settings.get_available_image_sources()
    ]
    album_image_chain = [lastfm] if lastfm.is_available() else []

    # -- Services --
    image_resolver = ImageResolver(
        artist_providers=artist_image_chain,
        album_providers=album_image_chain,
        cache_size=app_settings.image_cache_size,
        timeout_seconds=app_settings.image_timeout_seconds,
        secondary_limit=app_settings.secondary_image_limit,
    )
    cache_storage = _build_storage(app_settings)
    track_cache = TrackCache(
        storage=cache_storage,
        capacity=app_settings.cache_capacity,
        ttl_seconds=app_settings.cache_ttl_days * _SECONDS_PER_DAY,
        eviction_burst=app_settings.cache_eviction_burst,
    )
    release_matcher = ReleaseMatcher(weights)
    recording_matcher = RecordingMatcher(weights, release_matcher)
    recording_resolver = RecordingResolver(catalog, recording_matcher)
    alias_resolver = AliasResolver(catalog)
    role_mapper = RoleMapper()
    credit_merger = CreditMerger(alias_resolver, role_mapper)

    graph_assembler = GraphAssembler(
        catalog=catalog,
        recording_resolver=recording_resolver,
        release_matcher=release_matcher,
        alias_resolver=alias_resolver,
        role_mapper=role_mapper,
        credit_merger=credit_merger,
        image_resolver=image_resolver,
        track_cache=track_cache,
        credits_provider=discogs if discogs.is_available() else None,
        scrobble_provider=lastfm if lastfm.is_available() else None,
        settings=app_settings,
    )

    provider_registry: dict[str, Any] = {
        "musicbrainz": catalog.is_available(),
        "discogs": discogs.is_available(),
        "lastfm": lastfm.is_available(),
        "theaudiodb": audiodb.is_available(),
        "persistent_cache": app_settings.cache_enabled,
    }

    return {
        "http_client": http_client,
        "catalog": catalog,
        "cache_storage": cache_storage,
        "track_cache": track_cache,
        "image_resolver": image_resolver,
        "alias_resolver": alias_resolver,
        "role_mapper": role_mapper,
        "graph_assembler": graph_assembler,
        "provider_registry": provider_registry,
    }


async def build_components(app_settings: Settings | None = None) -> dict[str, Any]:
    """Build and initialize components outside the web server (CLI use)."""
    components = _build_all(app_settings or settings, config)
    await _initialize_storage(components)
    return components


async def _initialize_storage(components: dict[str, Any]) -> None:
    storage = components["cache_storage"]
    if isinstance(storage, SQLiteCacheStorage):
        await storage.initialize()
    removed = await components["track_cache"].cleanup_expired()
    _logger.debug("cache_startup_sweep", removed=removed)


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    await _initialize_storage(components)

    _logger.info(
        "app_startup",
        version=__version__,
        environment=settings.app_env,
        providers=components["provider_registry"],
    )

    yield

    # -- Shutdown: close shared httpx client --
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="creditgraph API",
        version=__version__,
        description=(
            "Resolve a track, album or artist against MusicBrainz, merge credits "
            "from Discogs, and return a deduplicated graph of who made the music."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# Server entry point
# ---------------------------------------------------------------------------


def run() -> None:
    uvicorn.run(
        "creditgraph.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )


if __name__ == "__main__":
    run()
