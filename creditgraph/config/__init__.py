"""Configuration: pydantic-settings environment settings and the YAML loader."""

from creditgraph.config.settings import Settings

__all__ = ["Settings"]
