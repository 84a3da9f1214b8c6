"""Unit tests for the dependency wiring in creditgraph/main.py.

No network calls are made: providers are only constructed, never queried.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI

from creditgraph.config.settings import Settings
from creditgraph.main import _build_all, build_components, create_app
from creditgraph.providers.cache.memory_cache_storage import MemoryCacheStorage
from creditgraph.providers.cache.sqlite_cache_storage import SQLiteCacheStorage
from creditgraph.services.graph_assembler import GraphAssembler


def _settings(**overrides: Any) -> Settings:
    defaults: dict[str, Any] = {
        "_env_file": None,
        "discogs_user_token": "",
        "lastfm_api_key": "",
        "cache_enabled": False,
    }
    defaults.update(overrides)
    return Settings(**defaults)


# ======================================================================
# _build_all
# ======================================================================


class TestBuildAll:
    @pytest.mark.asyncio
    async def test_without_credentials(self) -> None:
        components = _build_all(_settings())
        try:
            assert isinstance(components["graph_assembler"], GraphAssembler)
            assert isinstance(components["cache_storage"], MemoryCacheStorage)
            assert components["provider_registry"] == {
                "musicbrainz": True,
                "discogs": False,
                "lastfm": False,
                "theaudiodb": True,
                "persistent_cache": False,
            }
            assembler = components["graph_assembler"]
            assert assembler._credits is None
            assert assembler._scrobbles is None
        finally:
            await components["http_client"].aclose()

    @pytest.mark.asyncio
    async def test_image_chain_follows_configured_sources(self) -> None:
        components = _build_all(_settings(discogs_user_token="t", lastfm_api_key="k"))
        try:
            resolver = components["image_resolver"]
            names = [p.get_provider_name() for p in resolver._artist_providers]
            assert names == ["theaudiodb", "discogs", "lastfm"]
            assert [p.get_provider_name() for p in resolver._album_providers] == ["lastfm"]
            assert components["graph_assembler"]._credits is not None
        finally:
            await components["http_client"].aclose()

    @pytest.mark.asyncio
    async def test_cache_settings_applied(self, tmp_path: Path) -> None:
        settings = _settings(
            cache_enabled=True,
            cache_db_path=str(tmp_path / "cache.db"),
            cache_capacity=20,
        )
        components = _build_all(settings)
        try:
            assert isinstance(components["cache_storage"], SQLiteCacheStorage)
            assert components["track_cache"].capacity == 20
        finally:
            await components["http_client"].aclose()


class TestBuildComponents:
    @pytest.mark.asyncio
    async def test_initializes_sqlite_storage(self, tmp_path: Path) -> None:
        db_path = tmp_path / "data" / "cache.db"
        components = await build_components(_settings(cache_enabled=True, cache_db_path=str(db_path)))
        try:
            assert db_path.parent.exists()
            stats = await components["track_cache"].stats()
            assert stats.track_count == 0
        finally:
            await components["http_client"].aclose()


# ======================================================================
# create_app
# ======================================================================


class TestCreateApp:
    def test_routes_registered(self) -> None:
        app = create_app()
        assert isinstance(app, FastAPI)
        paths = {route.path for route in app.routes}
        assert "/api/v1/graphs/track" in paths
        assert "/api/v1/graphs/expand" in paths
        assert "/api/v1/health" in paths
