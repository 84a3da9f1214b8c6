"""Application settings loaded from environment variables via pydantic-settings.

Values come from (highest priority first) environment variables, then the
``.env`` file in the working directory, then the defaults below.  Field
``discogs_user_token`` maps to env var ``DISCOGS_USER_TOKEN`` and so on.

Empty credential strings mean "not configured": main.py skips providers
whose key is missing instead of failing at startup.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """creditgraph application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Primary catalog (MusicBrainz) ===
    musicbrainz_app_name: str = "creditgraph"
    musicbrainz_app_version: str = "0.1.0"
    musicbrainz_contact: str = ""
    musicbrainz_min_interval: float = 1.1

    # === Credits database (Discogs) ===
    discogs_user_token: str = ""
    discogs_min_interval: float = 1.1

    # === Scrobbles and images ===
    lastfm_api_key: str = ""
    lastfm_min_interval: float = 0.2
    audiodb_api_key: str = "2"  # TheAudioDB's public test key
    audiodb_min_interval: float = 1.2

    # Fixed wait before the single retry after an upstream 429.
    rate_limit_backoff_seconds: float = 60.0
    http_timeout_seconds: float = 20.0

    # === Track cache ===
    cache_enabled: bool = True
    cache_db_path: str = "data/track_cache.db"
    cache_capacity: int = 150
    cache_ttl_days: float = 7.0
    cache_quota_bytes: int = 5 * 1024 * 1024
    cache_eviction_burst: int = 10

    # === Images ===
    image_timeout_seconds: float = 15.0
    secondary_image_limit: int = 5
    image_cache_size: int = 1000

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    config_path: str = "config/config.yaml"

    def get_available_image_sources(self) -> list[str]:
        """Return image source names in fallback order, skipping unconfigured ones."""
        sources: list[str] = []
        if self.audiodb_api_key:
            sources.append("theaudiodb")
        if self.discogs_user_token:
            sources.append("discogs")
        if self.lastfm_api_key:
            sources.append("lastfm")
        return sources
