"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers, later layers winning:

    1. config/config.yaml  -- static defaults (scoring weights live here)
    2. .env file           -- local developer overrides
    3. environment vars    -- deploy-time values

``load_config()`` reads the YAML first, then deep-merges the values that
:class:`Settings` resolved from the environment on top of it.
"""

from pathlib import Path

import structlog
import yaml
from pydantic import ValidationError

from creditgraph.config.settings import Settings
from creditgraph.services.recording_matcher import MatchWeights
from creditgraph.utils.errors import ConfigurationError
from creditgraph.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file is not
              an error; defaults apply.
        settings: Pre-built settings; constructed from the environment when
                  omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        _logger.debug("config_file_missing", path=str(config_path))
        yaml_config = {}

    if not isinstance(yaml_config, dict):
        raise ConfigurationError(message=f"{config_path} must contain a mapping at top level")

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "cache": {
            "enabled": settings.cache_enabled,
            "db_path": settings.cache_db_path,
            "capacity": settings.cache_capacity,
            "ttl_days": settings.cache_ttl_days,
        },
        "images": {
            "sources": settings.get_available_image_sources(),
            "timeout_seconds": settings.image_timeout_seconds,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def load_match_weights(config: dict) -> MatchWeights:
    """Build :class:`MatchWeights` from the ``matching`` section of *config*.

    Keys that are absent keep their defaults.

    Raises:
        ConfigurationError: when a weight has the wrong type.
    """
    section = config.get("matching") or {}
    try:
        return MatchWeights.model_validate(section)
    except ValidationError as exc:
        raise ConfigurationError(message=f"Invalid matching weights: {exc}") from exc


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
