"""Unit tests for graph JSON export and import."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from creditgraph.models.graph import Entity, EntityType, MusicGraph, Relationship, ReleaseType, RoleType
from creditgraph.services.graph_exchange import export_graph, graph_from_json, graph_to_json, import_graph
from creditgraph.utils.errors import InvalidEntityError


def _graph() -> MusicGraph:
    return MusicGraph(
        entities=[
            Entity(id="track-1", name="Da Funk", type=EntityType.TRACK, source_id="1"),
            Entity(
                id="release-h",
                name="Homework",
                type=EntityType.ALBUM,
                release_type=ReleaseType.ALBUM,
                metadata={"releaseDate": "1997-01-20"},
            ),
            Entity(id="artist-dp", name="Daft Punk", type=EntityType.ARTIST),
        ],
        relationships=[
            Relationship.create("track-1", "artist-dp", RoleType.PRIMARY_ARTIST),
            Relationship.create("release-h", "track-1", RoleType.CONTAINS),
        ],
    )


class TestGraphToJson:
    def test_camel_case_keys_and_no_nulls(self) -> None:
        document = json.loads(graph_to_json(_graph()))

        album = document["entities"][1]
        assert album["releaseType"] == "Album"
        assert album["metadata"] == {"releaseDate": "1997-01-20"}
        assert "image" not in album
        assert document["relationships"][0]["role"] == "primary_artist"

    def test_compact_output(self) -> None:
        assert "\n" not in graph_to_json(_graph(), indent=None)


class TestGraphFromJson:
    def test_parses_exchange_document(self) -> None:
        graph = graph_from_json(graph_to_json(_graph()))
        assert graph.get_entity("release-h").release_type is ReleaseType.ALBUM
        assert len(graph.relationships) == 2

    def test_duplicates_merged(self) -> None:
        document = {
            "entities": [
                {"id": "artist-dp", "name": "Daft Punk", "type": "artist"},
                {"id": "artist-dp", "name": "Daft Punk", "type": "artist", "image": "https://img/dp.jpg"},
                {"id": "track-1", "name": "Da Funk", "type": "track"},
            ],
            "relationships": [
                {"id": "a", "source": "track-1", "target": "artist-dp", "role": "primary_artist"},
                {"id": "b", "source": "track-1", "target": "artist-dp", "role": "primary_artist"},
            ],
        }

        graph = graph_from_json(json.dumps(document))

        assert len(graph.entities) == 2
        assert graph.get_entity("artist-dp").image == "https://img/dp.jpg"
        assert len(graph.relationships) == 1

    def test_dangling_relationship_dropped(self) -> None:
        document = {
            "entities": [{"id": "track-1", "name": "Da Funk", "type": "track"}],
            "relationships": [
                {"id": "x", "source": "track-1", "target": "artist-gone", "role": "producer"},
            ],
        }
        assert graph_from_json(json.dumps(document)).relationships == []

    @pytest.mark.parametrize(
        "payload",
        [
            "not json",
            '{"entities": [{"id": "a", "name": "A", "type": "planet"}]}',
            '{"entities": [{"name": "missing id", "type": "artist"}]}',
        ],
    )
    def test_invalid_documents_rejected(self, payload: str) -> None:
        with pytest.raises(InvalidEntityError):
            graph_from_json(payload)


class TestFileExchange:
    def test_export_then_import(self, tmp_path: Path) -> None:
        target = export_graph(_graph(), tmp_path / "nested" / "graph.json")

        assert target.exists()
        assert import_graph(target).entity_ids() == {"track-1", "release-h", "artist-dp"}
