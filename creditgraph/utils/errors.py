"""Custom exception hierarchy for creditgraph.

All application exceptions inherit from :class:`CreditGraphError`, which
carries an optional ``provider_name`` so handlers can tell which catalog
(e.g. "musicbrainz", "discogs", "lastfm") caused the failure.

    CreditGraphError  (base)
    +-- CatalogError              (generic upstream failure)
    +-- RateLimitError            (upstream 429 / 503 throttling)
    +-- TransientError            (network failure or 5xx)
    +-- CacheError                (track cache storage)
    |   +-- CacheQuotaExceededError
    |   +-- CacheFormatMismatchError
    +-- InvalidEntityError        (drill-down on an entity without a source id)
    +-- ConfigurationError        (startup / missing config)

"Not found" is deliberately absent: a lookup that finds nothing returns a
``LookupResult.not_found()`` or an empty graph rather than raising.
"""


class CreditGraphError(Exception):
    """Base exception for all creditgraph errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name``.  ``__str__`` prefixes the provider name in brackets,
    e.g. ``[discogs] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Upstream catalog errors
# ---------------------------------------------------------------------------

class CatalogError(CreditGraphError):
    """Raised when a catalog call fails for a reason that is not rate limiting."""

    def __init__(
        self,
        message: str = "Catalog request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(CreditGraphError):
    """Raised when an upstream catalog answers 429 (or 503 for MusicBrainz).

    Providers retry once after a fixed backoff; a second occurrence is
    propagated to the caller.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        self._retry_after = retry_after
        super().__init__(message=message, provider_name=provider_name)

    @property
    def retry_after(self) -> float | None:
        return self._retry_after


class TransientError(CreditGraphError):
    """Raised on network failures and 5xx responses.  Not retried here."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Cache errors (handled inside TrackCache, never surfaced to callers)
# ---------------------------------------------------------------------------

class CacheError(CreditGraphError):
    """Base class for track cache storage failures."""

    def __init__(
        self,
        message: str = "Track cache operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CacheQuotaExceededError(CacheError):
    """Raised by a cache storage when a write would exceed its byte quota."""

    def __init__(
        self,
        message: str = "Cache storage quota exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CacheFormatMismatchError(CacheError):
    """Raised when the persisted cache index has an unknown format version."""

    def __init__(
        self,
        message: str = "Cache index format version mismatch",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Request / configuration errors
# ---------------------------------------------------------------------------

class InvalidEntityError(CreditGraphError):
    """Raised when a drill-down request names an entity that cannot be expanded."""

    def __init__(
        self,
        message: str = "Entity cannot be expanded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(CreditGraphError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
