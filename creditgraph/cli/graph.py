"""Build credit graphs from the command line.

Usage::

    python -m creditgraph.cli track "Smooth Criminal" --artist "Michael Jackson"
    python -m creditgraph.cli track "Get Lucky" --artist "Daft Punk" -o get_lucky.json
    python -m creditgraph.cli artist "Daft Punk"
    python -m creditgraph.cli relations "Daft Punk"
    python -m creditgraph.cli now-playing some_lastfm_user
    python -m creditgraph.cli history some_lastfm_user --limit 50
    python -m creditgraph.cli cache-stats
    python -m creditgraph.cli cache-clear

Graphs are printed to stdout as exchange JSON (``entities`` and
``relationships``) or written to ``--output``.  Progress and logs go to
stderr so stdout stays machine readable.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time
from typing import Any

from creditgraph.models.graph import MusicGraph
from creditgraph.utils.errors import CreditGraphError


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def _emit_graph(graph: MusicGraph, output_file: str | None) -> None:
    from creditgraph.services.graph_exchange import export_graph, graph_to_json

    if output_file:
        path = export_graph(graph, output_file)
        print(f"Graph written to: {path}", file=sys.stderr)
    else:
        print(graph_to_json(graph))


def _summary(graph: MusicGraph) -> str:
    return f"{len(graph.entities)} entities, {len(graph.relationships)} relationships"


def _suppress_logs() -> None:
    """Route structlog and stdlib logging to stderr at WARNING+.

    Must run before ``creditgraph.main`` is imported, since structlog caches
    loggers on first use.
    """
    import logging
    import os

    import structlog

    os.environ["LOG_LEVEL"] = "WARNING"

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.WARNING)
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("musicbrainzngs").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Command runner
# ---------------------------------------------------------------------------


async def _dispatch(args: argparse.Namespace, components: dict[str, Any]) -> int:
    assembler = components["graph_assembler"]
    track_cache = components["track_cache"]

    if args.command == "cache-stats":
        stats = await track_cache.stats()
        print(json.dumps(stats.model_dump(mode="json"), indent=2))
        return 0

    if args.command == "cache-clear":
        await track_cache.clear()
        components["image_resolver"].clear()
        components["alias_resolver"].clear()
        print("Cache cleared.", file=sys.stderr)
        return 0

    start = time.monotonic()
    if args.command == "track":
        graph = await assembler.build_track_graph(args.title, args.artist, args.album)
    elif args.command == "artist":
        graph = await assembler.initialize_artist_graph(args.name)
    elif args.command == "relations":
        graph = await assembler.build_artist_relations_graph(args.name)
    elif args.command == "history":
        graph = await assembler.build_user_history_graph(args.username, limit=args.limit)
    else:
        graph = await assembler.build_now_playing_graph(args.username)
    elapsed = time.monotonic() - start

    if graph.is_empty:
        print("No match found.", file=sys.stderr)
        return 1

    print(f"Built {_summary(graph)} in {elapsed:.1f}s", file=sys.stderr)
    _emit_graph(graph, args.output)
    return 0


async def _run(args: argparse.Namespace) -> int:
    # Deferred: importing main configures logging and builds the app.
    from creditgraph.main import build_components

    components = await build_components()
    try:
        return await _dispatch(args, components)
    except CreditGraphError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await components["http_client"].aclose()


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _add_output(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Write the graph JSON to a file instead of stdout.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m creditgraph.cli",
        description="Resolve music metadata and print the credit graph as JSON.",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log warnings and errors (to stderr).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    track = sub.add_parser("track", help="Build the flat credit graph for one track.")
    track.add_argument("title", help="Track title.")
    track.add_argument("--artist", "-a", required=True, help="Artist name as displayed.")
    track.add_argument("--album", default=None, help="Album title, if known.")
    _add_output(track)

    artist = sub.add_parser("artist", help="Build an artist's discography root graph.")
    artist.add_argument("name", help="Artist name.")
    _add_output(artist)

    relations = sub.add_parser("relations", help="Build an artist's band/member graph.")
    relations.add_argument("name", help="Artist name.")
    _add_output(relations)

    now_playing = sub.add_parser("now-playing", help="Graph the track a Last.fm user is playing.")
    now_playing.add_argument("username", help="Last.fm username.")
    _add_output(now_playing)

    history = sub.add_parser("history", help="Graph a Last.fm user's recent scrobbles.")
    history.add_argument("username", help="Last.fm username.")
    history.add_argument("--limit", type=int, default=30, help="Number of scrobbles (default: 30).")
    _add_output(history)

    sub.add_parser("cache-stats", help="Show track cache statistics.")
    sub.add_parser("cache-clear", help="Clear the track, image and alias caches.")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.quiet:
        _suppress_logs()

    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
