"""Unit tests for the creditgraph command-line interface."""

from __future__ import annotations

import json
from argparse import Namespace
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from creditgraph.cli.graph import _build_parser, _dispatch, _run, main
from creditgraph.models.cache import CacheStats
from creditgraph.models.graph import Entity, EntityType, MusicGraph
from creditgraph.utils.errors import TransientError


def _graph() -> MusicGraph:
    return MusicGraph(entities=[Entity(id="artist-dp", name="Daft Punk", type=EntityType.ARTIST)])


def _components(graph: MusicGraph | None = None) -> dict:
    assembler = MagicMock()
    for method in (
        "build_track_graph",
        "initialize_artist_graph",
        "build_artist_relations_graph",
        "build_now_playing_graph",
        "build_user_history_graph",
    ):
        setattr(assembler, method, AsyncMock(return_value=graph if graph is not None else _graph()))
    track_cache = MagicMock()
    track_cache.stats = AsyncMock(return_value=CacheStats(track_count=3, total_hits=7))
    track_cache.clear = AsyncMock()
    return {
        "graph_assembler": assembler,
        "track_cache": track_cache,
        "image_resolver": MagicMock(),
        "alias_resolver": MagicMock(),
        "http_client": MagicMock(aclose=AsyncMock()),
    }


# ======================================================================
# Argument parsing
# ======================================================================


class TestParser:
    def test_track_command(self) -> None:
        args = _build_parser().parse_args(
            ["-q", "track", "Get Lucky", "-a", "Daft Punk", "--album", "Random Access Memories", "-o", "out.json"]
        )
        assert args.quiet is True
        assert args.command == "track"
        assert args.title == "Get Lucky"
        assert args.artist == "Daft Punk"
        assert args.album == "Random Access Memories"
        assert args.output == "out.json"

    def test_track_requires_artist(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["track", "Get Lucky"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args([])

    def test_history_default_limit(self) -> None:
        args = _build_parser().parse_args(["history", "someone"])
        assert args.username == "someone"
        assert args.limit == 30
        assert args.output is None

    @pytest.mark.parametrize("command", ["cache-stats", "cache-clear"])
    def test_cache_commands_take_no_arguments(self, command: str) -> None:
        args = _build_parser().parse_args([command])
        assert args.command == command
        assert args.quiet is False


# ======================================================================
# Dispatch
# ======================================================================


class TestDispatch:
    @pytest.mark.asyncio
    async def test_track_prints_graph(self, capsys: pytest.CaptureFixture[str]) -> None:
        components = _components()
        args = _build_parser().parse_args(["track", "Get Lucky", "-a", "Daft Punk"])

        assert await _dispatch(args, components) == 0

        components["graph_assembler"].build_track_graph.assert_awaited_once_with(
            "Get Lucky", "Daft Punk", None
        )
        document = json.loads(capsys.readouterr().out)
        assert document["entities"][0]["id"] == "artist-dp"

    @pytest.mark.asyncio
    async def test_output_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        target = tmp_path / "graphs" / "dp.json"
        args = _build_parser().parse_args(["artist", "Daft Punk", "-o", str(target)])

        assert await _dispatch(args, _components()) == 0

        assert json.loads(target.read_text())["entities"][0]["name"] == "Daft Punk"
        assert capsys.readouterr().out == ""

    @pytest.mark.asyncio
    async def test_empty_graph_is_failure(self, capsys: pytest.CaptureFixture[str]) -> None:
        args = _build_parser().parse_args(["relations", "Nobody"])

        assert await _dispatch(args, _components(MusicGraph.empty())) == 1
        assert "No match found." in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_now_playing(self) -> None:
        components = _components()
        args = _build_parser().parse_args(["now-playing", "someone"])

        assert await _dispatch(args, components) == 0
        components["graph_assembler"].build_now_playing_graph.assert_awaited_once_with("someone")

    @pytest.mark.asyncio
    async def test_history(self) -> None:
        components = _components()
        args = _build_parser().parse_args(["history", "someone", "--limit", "10"])

        assert await _dispatch(args, components) == 0
        components["graph_assembler"].build_user_history_graph.assert_awaited_once_with(
            "someone", limit=10
        )

    @pytest.mark.asyncio
    async def test_cache_stats(self, capsys: pytest.CaptureFixture[str]) -> None:
        args = Namespace(command="cache-stats")

        assert await _dispatch(args, _components()) == 0

        stats = json.loads(capsys.readouterr().out)
        assert stats["track_count"] == 3
        assert stats["total_hits"] == 7

    @pytest.mark.asyncio
    async def test_cache_clear(self) -> None:
        components = _components()

        assert await _dispatch(Namespace(command="cache-clear"), components) == 0

        components["track_cache"].clear.assert_awaited_once()
        components["image_resolver"].clear.assert_called_once()
        components["alias_resolver"].clear.assert_called_once()


class TestRun:
    @pytest.mark.asyncio
    async def test_error_reported_and_client_closed(self, capsys: pytest.CaptureFixture[str]) -> None:
        components = _components()
        components["graph_assembler"].initialize_artist_graph.side_effect = TransientError(
            message="upstream down", provider_name="musicbrainz"
        )
        args = _build_parser().parse_args(["artist", "Daft Punk"])

        with patch("creditgraph.main.build_components", AsyncMock(return_value=components)):
            assert await _run(args) == 1

        assert "[musicbrainz] upstream down" in capsys.readouterr().err
        components["http_client"].aclose.assert_awaited_once()

    def test_main_exits_with_status(self) -> None:
        with patch("creditgraph.cli.graph._run", AsyncMock(return_value=0)):
            with pytest.raises(SystemExit) as exc_info:
                main(["cache-stats"])
        assert exc_info.value.code == 0
