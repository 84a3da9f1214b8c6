"""JSON import/export of assembled graphs.

The exchange shape is the same camelCase ``{"entities": [...],
"relationships": [...]}`` document the track cache persists, so a file
written here can be loaded into any consumer of :class:`MusicGraph`.

Import re-runs every record through :class:`GraphAccumulator`: duplicate
entity ids are merged, duplicate relationships collapse onto their derived
id, and relationships pointing at missing entities are dropped.
"""

from __future__ import annotations

import json
from pathlib import Path

import structlog
from pydantic import ValidationError

from creditgraph.models.graph import MusicGraph
from creditgraph.services.graph_accumulator import GraphAccumulator
from creditgraph.utils.errors import InvalidEntityError
from creditgraph.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)


def graph_to_json(graph: MusicGraph, indent: int | None = 2) -> str:
    """Serialize *graph* to the exchange JSON document."""
    return json.dumps(graph.to_exchange_dict(), indent=indent, ensure_ascii=False)


def graph_from_json(payload: str) -> MusicGraph:
    """Parse and validate an exchange document.

    Raises:
        InvalidEntityError: If the document is not valid JSON or a record
            does not match the entity/relationship schema.
    """
    try:
        raw = MusicGraph.model_validate_json(payload)
    except ValidationError as exc:
        raise InvalidEntityError(message=f"Invalid graph document: {exc}") from exc

    accumulator = GraphAccumulator(raw)
    graph = accumulator.build()

    duplicates = (len(raw.entities) - len(graph.entities)) + (
        len(raw.relationships) - len(accumulator.relationships)
    )
    if duplicates:
        logger.warning("graph_import_duplicates_merged", count=duplicates)
    return graph


def export_graph(graph: MusicGraph, path: str | Path) -> Path:
    """Write *graph* to *path*, creating parent directories as needed."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(graph_to_json(graph), encoding="utf-8")
    logger.info(
        "graph_exported",
        path=str(target),
        entities=len(graph.entities),
        relationships=len(graph.relationships),
    )
    return target


def import_graph(path: str | Path) -> MusicGraph:
    """Read and validate a graph previously written by :func:`export_graph`."""
    source = Path(path)
    graph = graph_from_json(source.read_text(encoding="utf-8"))
    logger.info(
        "graph_imported",
        path=str(source),
        entities=len(graph.entities),
        relationships=len(graph.relationships),
    )
    return graph
