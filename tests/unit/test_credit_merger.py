"""Unit tests for CreditMerger."""

from __future__ import annotations

import pytest

from creditgraph.models.catalog import SupplementalCredit, SupplementalRelease, SupplementalTrack
from creditgraph.models.graph import Entity, EntityType, RoleType
from creditgraph.services.alias_resolver import AliasResolver
from creditgraph.services.credit_merger import CreditMerger
from creditgraph.services.graph_accumulator import GraphAccumulator
from creditgraph.services.role_mapper import RoleMapper
from tests.conftest import FakeCatalog

TRACK_ID = "track-rec-5"


def _credit(artist_id: str, name: str, role: str, tracks: str = "") -> SupplementalCredit:
    return SupplementalCredit(artist_id=artist_id, name=name, role=role, tracks=tracks)


def _release(*credits: SupplementalCredit, track_credits=()) -> SupplementalRelease:
    return SupplementalRelease(
        id="d-1",
        title="After Hours",
        tracklist=(
            SupplementalTrack(position="2", title="Heartless"),
            SupplementalTrack(position="5", title="Blinding Lights", credits=tuple(track_credits)),
            SupplementalTrack(position="6", title="In Your Eyes"),
        ),
        credits=tuple(credits),
    )


def _track_graph() -> GraphAccumulator:
    graph = GraphAccumulator()
    graph.add_entity(Entity(id=TRACK_ID, name="Blinding Lights", type=EntityType.TRACK))
    graph.add_entity(Entity(id="artist-C", name="The Weeknd", type=EntityType.ARTIST, source_id="C"))
    graph.add_relationship(TRACK_ID, "artist-C", RoleType.PRIMARY_ARTIST)
    return graph


@pytest.fixture()
def merger(alias_resolver: AliasResolver) -> CreditMerger:
    return CreditMerger(alias_resolver, RoleMapper())


class TestPositionScoping:
    def test_credits_scoped_to_other_position_are_skipped(self, merger: CreditMerger) -> None:
        graph = _track_graph()
        release = _release(
            _credit("11", "Max Martin", "Producer", tracks="2"),
            _credit("12", "Oscar Holter", "Keyboards", tracks="2"),
        )

        report = merger.merge(graph, TRACK_ID, release, "Blinding Lights")

        assert report.track_position == "5"
        assert report.out_of_scope_skipped == 2
        assert "artist-discogs-11" not in graph
        assert "artist-discogs-12" not in graph
        assert len(graph.relationships) == 1

    def test_range_scope_includes_position(self, merger: CreditMerger) -> None:
        graph = _track_graph()
        release = _release(_credit("11", "Max Martin", "Producer", tracks="4 to 6"))

        merger.merge(graph, TRACK_ID, release, "Blinding Lights")

        assert graph.has_relationship(TRACK_ID, "artist-discogs-11", RoleType.PRODUCER)

    def test_unscoped_credit_applies(self, merger: CreditMerger) -> None:
        graph = _track_graph()
        release = _release(_credit("99", "Dave Kutch", "Mastered By"))

        report = merger.merge(graph, TRACK_ID, release, "Blinding Lights")

        assert report.entities_added == 1
        assert graph.get("artist-discogs-99").name == "Dave Kutch"
        assert graph.has_relationship(TRACK_ID, "artist-discogs-99", RoleType.MASTERING)

    def test_scoped_credit_skipped_when_track_not_in_tracklist(self, merger: CreditMerger) -> None:
        graph = _track_graph()
        release = _release(_credit("11", "Max Martin", "Producer", tracks="5"))

        report = merger.merge(graph, TRACK_ID, release, "Save Your Tears")

        assert report.track_position is None
        assert report.relationships_added == 0

    def test_track_level_credits_applied(self, merger: CreditMerger) -> None:
        graph = _track_graph()
        release = _release(track_credits=[_credit("11", "Max Martin", "Producer, Keyboards")])

        merger.merge(graph, TRACK_ID, release, "Blinding Lights (Radio Edit)")

        assert graph.roles_between(TRACK_ID, "artist-discogs-11") == {
            RoleType.PRODUCER,
            RoleType.KEYBOARDS,
        }


class TestIdentity:
    def test_same_name_reuses_existing_entity(self, merger: CreditMerger) -> None:
        graph = _track_graph()
        release = _release(_credit("777", "The Weeknd", "Written-By"))

        report = merger.merge(graph, TRACK_ID, release, "Blinding Lights")

        assert report.entities_added == 0
        assert "artist-discogs-777" not in graph
        assert graph.has_relationship(TRACK_ID, "artist-C", RoleType.SONGWRITER)

    @pytest.mark.asyncio
    async def test_alias_reuses_existing_entity(
        self, catalog: FakeCatalog, alias_resolver: AliasResolver, merger: CreditMerger
    ) -> None:
        catalog.aliases["C"] = ["Abel Tesfaye"]
        await alias_resolver.ensure_aliases("C", "The Weeknd")
        graph = _track_graph()
        release = _release(_credit("778", "Abel Tesfaye", "Written-By"))

        merger.merge(graph, TRACK_ID, release, "Blinding Lights")

        artists = [e for e in graph.entities if e.type is EntityType.ARTIST]
        assert [a.id for a in artists] == ["artist-C"]
        assert graph.has_relationship(TRACK_ID, "artist-C", RoleType.SONGWRITER)

    def test_discogs_number_suffix_is_ignored(self, merger: CreditMerger) -> None:
        graph = _track_graph()
        release = _release(_credit("5", "The Weeknd (2)", "Vocals"))

        merger.merge(graph, TRACK_ID, release, "Blinding Lights")

        assert graph.has_relationship(TRACK_ID, "artist-C", RoleType.VOCALS)


class TestMergeBehaviour:
    def test_merge_is_idempotent(self, merger: CreditMerger) -> None:
        graph = _track_graph()
        release = _release(
            _credit("11", "Max Martin", "Producer"),
            _credit("99", "Dave Kutch", "Mastered By"),
        )

        merger.merge(graph, TRACK_ID, release, "Blinding Lights")
        entities_after_first = graph.entities
        relationships_after_first = graph.relationships
        second = merger.merge(graph, TRACK_ID, release, "Blinding Lights")

        assert second.relationships_added == 0
        assert second.duplicates_skipped == 2
        assert graph.entities == entities_after_first
        assert graph.relationships == relationships_after_first

    def test_non_musical_credit_is_ignored(self, merger: CreditMerger) -> None:
        graph = _track_graph()
        release = _release(_credit("50", "Someone", "Photography By"))

        report = merger.merge(graph, TRACK_ID, release, "Blinding Lights")

        assert report.ignored_credits == 1
        assert "artist-discogs-50" not in graph

    def test_applies_to_position_case_insensitive(self) -> None:
        credit = _credit("1", "X", "Producer", tracks="a1, b2")
        assert CreditMerger.applies_to_position(credit, "B2") is True
        assert CreditMerger.applies_to_position(credit, "A2") is False
