"""creditgraph API layer: routes, schemas, and middleware."""

from creditgraph.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from creditgraph.api.routes import router
from creditgraph.api.schemas import (
    ArtistGraphRequest,
    CacheClearResponse,
    CacheStatsResponse,
    ErrorResponse,
    ExpandRequest,
    GraphResponse,
    HealthResponse,
    TrackGraphRequest,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
    "ArtistGraphRequest",
    "CacheClearResponse",
    "CacheStatsResponse",
    "ErrorResponse",
    "ExpandRequest",
    "GraphResponse",
    "HealthResponse",
    "TrackGraphRequest",
]
