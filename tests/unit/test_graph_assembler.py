"""Unit tests for GraphAssembler entry points over a fake catalog."""

from __future__ import annotations

import pytest

from creditgraph.config.settings import Settings
from creditgraph.models.catalog import (
    ArtistRelation,
    LabelRef,
    NowPlaying,
    RecordingCandidate,
    RecordingDetail,
    ReleaseCandidate,
    ReleaseDetail,
    ReleaseGroupRef,
    ReleaseTrack,
    SupplementalCredit,
    SupplementalRelease,
    SupplementalTrack,
)
from creditgraph.models.graph import Entity, EntityType, MusicGraph, ReleaseType, RoleType
from creditgraph.providers.cache.memory_cache_storage import MemoryCacheStorage
from creditgraph.services.image_resolver import ImageResolver
from creditgraph.services.track_cache import TrackCache
from creditgraph.utils.errors import ConfigurationError, InvalidEntityError, TransientError
from tests.conftest import (
    FakeCatalog,
    FakeCreditsProvider,
    FakeImageProvider,
    FakeScrobbleProvider,
    artist,
    build_assembler,
    credit,
    release,
)

TRACK = "track-rec-bl"
ALBUM = "release-r-ah"


def _roles(graph: MusicGraph, source: str, target: str) -> set[RoleType]:
    return {r.role for r in graph.relationships if r.source == source and r.target == target}


def _artist_ids(graph: MusicGraph) -> set[str]:
    return {e.id for e in graph.entities if e.type is EntityType.ARTIST}


@pytest.fixture()
def weeknd_catalog(catalog: FakeCatalog) -> FakeCatalog:
    """Blinding Lights by The Weeknd, produced and co-written by Max Martin."""
    releases = (
        release("r-ah", "After Hours", date="2020-03-20"),
        release("r-single", "Blinding Lights", primary_type="Single", date="2019-11-29"),
    )
    catalog.recordings = [
        RecordingCandidate(
            id="rec-bl",
            title="Blinding Lights",
            score=100,
            artist_credits=(credit("C", "The Weeknd"),),
            releases=releases,
        )
    ]
    catalog.recording_details["rec-bl"] = RecordingDetail(
        id="rec-bl",
        title="Blinding Lights",
        artist_credits=(credit("C", "The Weeknd"),),
        relations=(
            ArtistRelation(type="producer", artist=artist("mm", "Max Martin")),
            ArtistRelation(type="instrument", artist=artist("mm", "Max Martin"), attributes=("keyboard",)),
        ),
        work_ids=("w1",),
        releases=releases,
    )
    catalog.work_credits["w1"] = [
        ArtistRelation(type="writer", artist=artist("X", "Abel Tesfaye")),
        ArtistRelation(type="composer", artist=artist("mm", "Max Martin")),
    ]
    catalog.aliases["C"] = ["Abel Tesfaye"]
    return catalog


# ======================================================================
# build_track_graph
# ======================================================================


class TestBuildTrackGraph:
    @pytest.mark.asyncio
    async def test_full_track_graph(self, weeknd_catalog: FakeCatalog, settings: Settings) -> None:
        assembler = build_assembler(weeknd_catalog, settings)

        graph = await assembler.build_track_graph("Blinding Lights", "The Weeknd")

        assert graph.get_entity(TRACK).name == "Blinding Lights"
        assert graph.get_entity(ALBUM).release_type is ReleaseType.ALBUM
        assert graph.get_entity(ALBUM).metadata == {"releaseDate": "2020-03-20"}
        assert _artist_ids(graph) == {"artist-C", "artist-mm"}
        assert _roles(graph, TRACK, "artist-C") == {RoleType.PRIMARY_ARTIST, RoleType.SONGWRITER}
        assert _roles(graph, TRACK, "artist-mm") == {
            RoleType.PRODUCER,
            RoleType.KEYBOARDS,
            RoleType.COMPOSER,
        }
        assert _roles(graph, ALBUM, TRACK) == {RoleType.CONTAINS}
        assert _roles(graph, "artist-C", ALBUM) == {RoleType.RELEASED_ON}

    @pytest.mark.asyncio
    async def test_legal_name_credit_merges_into_stage_name(
        self, weeknd_catalog: FakeCatalog, settings: Settings
    ) -> None:
        graph = await build_assembler(weeknd_catalog, settings).build_track_graph(
            "Blinding Lights", "The Weeknd"
        )
        assert "artist-X" not in graph.entity_ids()
        assert [e.name for e in graph.entities if e.id == "artist-C"] == ["The Weeknd"]

    @pytest.mark.asyncio
    async def test_graph_invariants(self, weeknd_catalog: FakeCatalog, settings: Settings) -> None:
        graph = await build_assembler(weeknd_catalog, settings).build_track_graph(
            "Blinding Lights", "The Weeknd"
        )
        ids = [e.id for e in graph.entities]
        assert len(ids) == len(set(ids))
        triples = [(r.source, r.target, r.role) for r in graph.relationships]
        assert len(triples) == len(set(triples))
        for rel in graph.relationships:
            assert rel.source in graph.entity_ids() and rel.target in graph.entity_ids()

    @pytest.mark.asyncio
    async def test_not_found_is_empty_graph(self, catalog: FakeCatalog, settings: Settings) -> None:
        graph = await build_assembler(catalog, settings).build_track_graph("Nothing", "Nobody")
        assert graph.is_empty

    @pytest.mark.asyncio
    async def test_missing_detail_is_empty_graph(
        self, weeknd_catalog: FakeCatalog, settings: Settings
    ) -> None:
        weeknd_catalog.recording_details.clear()
        graph = await build_assembler(weeknd_catalog, settings).build_track_graph(
            "Blinding Lights", "The Weeknd"
        )
        assert graph.is_empty

    @pytest.mark.asyncio
    async def test_featured_artist(self, weeknd_catalog: FakeCatalog, settings: Settings) -> None:
        detail = weeknd_catalog.recording_details["rec-bl"]
        weeknd_catalog.recording_details["rec-bl"] = detail.model_copy(
            update={
                "artist_credits": (
                    credit("C", "The Weeknd", joinphrase=" feat. "),
                    credit("D", "Daft Punk"),
                )
            }
        )

        graph = await build_assembler(weeknd_catalog, settings).build_track_graph(
            "Blinding Lights", "The Weeknd"
        )

        assert _roles(graph, TRACK, "artist-D") == {RoleType.FEATURED}
        assert _roles(graph, "artist-D", ALBUM) == set()

    @pytest.mark.asyncio
    async def test_personnel_relation_does_not_duplicate_credited_artist(
        self, weeknd_catalog: FakeCatalog, settings: Settings
    ) -> None:
        detail = weeknd_catalog.recording_details["rec-bl"]
        weeknd_catalog.recording_details["rec-bl"] = detail.model_copy(
            update={"relations": (ArtistRelation(type="guest", artist=artist("C", "The Weeknd")),)}
        )

        graph = await build_assembler(weeknd_catalog, settings).build_track_graph(
            "Blinding Lights", "The Weeknd"
        )

        assert RoleType.FEATURED not in _roles(graph, TRACK, "artist-C")

    @pytest.mark.asyncio
    async def test_work_credit_failure_is_tolerated(
        self, weeknd_catalog: FakeCatalog, settings: Settings
    ) -> None:
        weeknd_catalog.errors["fetch_work_credits"] = TransientError(provider_name="fake-catalog")

        graph = await build_assembler(weeknd_catalog, settings).build_track_graph(
            "Blinding Lights", "The Weeknd"
        )

        assert not graph.is_empty
        assert RoleType.SONGWRITER not in _roles(graph, TRACK, "artist-C")

    @pytest.mark.asyncio
    async def test_release_first_adds_labels(
        self, weeknd_catalog: FakeCatalog, settings: Settings
    ) -> None:
        weeknd_catalog.releases = [
            ReleaseCandidate(
                id="r-ah", title="After Hours", score=100, primary_type="Album", status="Official"
            )
        ]
        weeknd_catalog.release_details["r-ah"] = ReleaseDetail(
            id="r-ah",
            title="After Hours",
            status="Official",
            primary_type="Album",
            date="2020-03-20",
            tracks=(ReleaseTrack(recording_id="rec-bl", title="Blinding Lights", position="9"),),
            labels=(LabelRef(id="xo", name="XO", catalog_number="B0031"),),
        )

        graph = await build_assembler(weeknd_catalog, settings).build_track_graph(
            "Blinding Lights", "The Weeknd", "After Hours"
        )

        label = graph.get_entity("label-xo")
        assert label is not None and label.type is EntityType.LABEL
        assert label.metadata == {"catalogNumber": "B0031"}
        assert _roles(graph, ALBUM, "label-xo") == {RoleType.RELEASED_ON}
        assert weeknd_catalog.calls_to("search_recording") == []


class TestSupplementalCredits:
    @pytest.mark.asyncio
    async def test_discogs_credits_merged(self, weeknd_catalog: FakeCatalog, settings: Settings) -> None:
        supplemental = SupplementalRelease(
            id="d-1",
            title="After Hours",
            tracklist=(SupplementalTrack(position="9", title="Blinding Lights"),),
            credits=(
                SupplementalCredit(artist_id="555", name="Max Martin", role="Mixed By"),
                SupplementalCredit(artist_id="556", name="Dave Kutch", role="Mastered By"),
                SupplementalCredit(artist_id="557", name="Someone", role="Producer", tracks="3"),
            ),
        )
        assembler = build_assembler(
            weeknd_catalog, settings, credits_provider=FakeCreditsProvider(supplemental)
        )

        graph = await assembler.build_track_graph("Blinding Lights", "The Weeknd")

        assert RoleType.MIXING in _roles(graph, TRACK, "artist-mm")
        assert "artist-discogs-555" not in graph.entity_ids()
        assert _roles(graph, TRACK, "artist-discogs-556") == {RoleType.MASTERING}
        assert "artist-discogs-557" not in graph.entity_ids()

    @pytest.mark.asyncio
    async def test_supplemental_failure_is_tolerated(
        self, weeknd_catalog: FakeCatalog, settings: Settings
    ) -> None:
        provider = FakeCreditsProvider(error=TransientError(provider_name="discogs"))
        assembler = build_assembler(weeknd_catalog, settings, credits_provider=provider)

        graph = await assembler.build_track_graph("Blinding Lights", "The Weeknd")

        assert provider.calls == [("Blinding Lights", "The Weeknd", None)]
        assert _artist_ids(graph) == {"artist-C", "artist-mm"}


class TestImagesAndCache:
    @pytest.mark.asyncio
    async def test_images_applied(self, weeknd_catalog: FakeCatalog, settings: Settings) -> None:
        artist_images = FakeImageProvider(artist_images={"The Weeknd": "https://img/weeknd.jpg"})
        album_images = FakeImageProvider(
            album_images={"After Hours": "https://img/ah.jpg", "Blinding Lights": "https://img/bl.jpg"}
        )
        resolver = ImageResolver([artist_images], [album_images])
        assembler = build_assembler(weeknd_catalog, settings, image_resolver=resolver)

        graph = await assembler.build_track_graph("Blinding Lights", "The Weeknd")

        assert graph.get_entity("artist-C").image == "https://img/weeknd.jpg"
        assert graph.get_entity(ALBUM).image == "https://img/ah.jpg"
        assert graph.get_entity(TRACK).image == "https://img/bl.jpg"
        assert ("The Weeknd", "C") in artist_images.artist_calls

    @pytest.mark.asyncio
    async def test_second_request_served_from_cache(
        self, weeknd_catalog: FakeCatalog, settings: Settings
    ) -> None:
        cache = TrackCache(MemoryCacheStorage())
        assembler = build_assembler(weeknd_catalog, settings, track_cache=cache)

        first = await assembler.build_track_graph("Blinding Lights", "The Weeknd")
        second = await assembler.build_track_graph("Blinding Lights", "The Weeknd")

        assert second.to_exchange_dict() == first.to_exchange_dict()
        assert len(weeknd_catalog.calls_to("search_recording")) == 1

    @pytest.mark.asyncio
    async def test_cache_disabled_by_settings(self, weeknd_catalog: FakeCatalog) -> None:
        settings = Settings(_env_file=None, cache_enabled=False)
        cache = TrackCache(MemoryCacheStorage())
        assembler = build_assembler(weeknd_catalog, settings, track_cache=cache)

        await assembler.build_track_graph("Blinding Lights", "The Weeknd")
        await assembler.build_track_graph("Blinding Lights", "The Weeknd")

        assert len(weeknd_catalog.calls_to("search_recording")) == 2
        assert (await cache.stats()).track_count == 0

    @pytest.mark.asyncio
    async def test_not_found_is_not_cached(self, catalog: FakeCatalog, settings: Settings) -> None:
        cache = TrackCache(MemoryCacheStorage())
        assembler = build_assembler(catalog, settings, track_cache=cache)

        await assembler.build_track_graph("Nothing", "Nobody")

        assert (await cache.stats()).track_count == 0


# ======================================================================
# Discography drill-down
# ======================================================================


@pytest.fixture()
def daft_punk_catalog(catalog: FakeCatalog) -> FakeCatalog:
    catalog.artists = [artist("dp", "Daft Punk")]
    catalog.release_groups["dp"] = [
        ReleaseGroupRef(id="g2", title="Discovery", primary_type="Album", first_release_date="2001-03-12"),
        ReleaseGroupRef(id="g1", title="Homework", primary_type="Album", first_release_date="1997-01-20"),
        ReleaseGroupRef(id="g3", title="Alive 1997 Broadcast", primary_type="Broadcast"),
        ReleaseGroupRef(id="g4", title="One More Time", primary_type="Single"),
    ]
    catalog.group_tracks["g1"] = [
        ReleaseTrack(recording_id="rec-rev", title="Revolution 909", position="1"),
        ReleaseTrack(recording_id="rec-da", title="Da Funk", position="2"),
    ]
    catalog.recording_details["rec-da"] = RecordingDetail(
        id="rec-da",
        title="Da Funk",
        artist_credits=(credit("dp", "Daft Punk"),),
        relations=(ArtistRelation(type="producer", artist=artist("tb", "Thomas Bangalter")),),
    )
    catalog.artist_relations["dp"] = [
        ArtistRelation(
            type="member of band", artist=artist("tb", "Thomas Bangalter"), direction="backward"
        ),
        ArtistRelation(type="collaboration", artist=artist("nr", "Nile Rodgers"), direction="forward"),
    ]
    return catalog


class TestDiscography:
    @pytest.mark.asyncio
    async def test_initialize_artist_graph(
        self, daft_punk_catalog: FakeCatalog, settings: Settings
    ) -> None:
        graph = await build_assembler(daft_punk_catalog, settings).initialize_artist_graph("Daft Punk")

        root = graph.get_entity("artist-dp")
        assert root.depth == 0
        assert root.child_count == 3
        releases = [e for e in graph.entities if e.type is EntityType.ALBUM]
        assert [e.name for e in releases] == ["Homework", "Discovery", "One More Time"]
        assert all(e.depth == 1 and e.parent_id == "artist-dp" for e in releases)
        assert releases[0].metadata == {"releaseDate": "1997-01-20"}
        assert releases[2].release_type is ReleaseType.SINGLE
        assert len(graph.relationships) == 3
        assert all(r.role is RoleType.RELEASED_ON for r in graph.relationships)

    @pytest.mark.asyncio
    async def test_unknown_artist(self, catalog: FakeCatalog, settings: Settings) -> None:
        graph = await build_assembler(catalog, settings).initialize_artist_graph("Nobody")
        assert graph.is_empty

    @pytest.mark.asyncio
    async def test_expand_release(self, daft_punk_catalog: FakeCatalog, settings: Settings) -> None:
        node = Entity(
            id="release-g1",
            name="Homework",
            type=EntityType.ALBUM,
            source_id="g1",
            parent_id="artist-dp",
            depth=1,
        )

        graph = await build_assembler(daft_punk_catalog, settings).expand_release(node)

        assert graph.get_entity("release-g1").child_count == 2
        track = graph.get_entity("track-rec-da")
        assert track.depth == 2
        assert track.parent_id == "release-g1"
        assert track.metadata == {"position": "2"}
        assert _roles(graph, "release-g1", "track-rec-da") == {RoleType.CONTAINS}

    @pytest.mark.asyncio
    async def test_expand_requires_source_id(self, catalog: FakeCatalog, settings: Settings) -> None:
        assembler = build_assembler(catalog, settings)
        orphan = Entity(id="release-x", name="X", type=EntityType.ALBUM)
        with pytest.raises(InvalidEntityError):
            await assembler.expand_release(orphan)
        with pytest.raises(InvalidEntityError):
            await assembler.expand_track(orphan.model_copy(update={"type": EntityType.TRACK}))

    @pytest.mark.asyncio
    async def test_expand_track(self, daft_punk_catalog: FakeCatalog, settings: Settings) -> None:
        node = Entity(
            id="track-rec-da",
            name="Da Funk",
            type=EntityType.TRACK,
            source_id="rec-da",
            parent_id="release-g1",
            depth=2,
        )

        graph = await build_assembler(daft_punk_catalog, settings).expand_track(node)

        assert graph.get_entity("track-rec-da").child_count == 2
        for person_id in ("artist-dp", "artist-tb"):
            person = graph.get_entity(person_id)
            assert person.depth == 3
            assert person.parent_id == "track-rec-da"
        assert _roles(graph, "track-rec-da", "artist-tb") == {RoleType.PRODUCER}


# ======================================================================
# Supplementary entry points
# ======================================================================


class TestNowPlayingAndRelations:
    @pytest.mark.asyncio
    async def test_now_playing_builds_track_graph(
        self, weeknd_catalog: FakeCatalog, settings: Settings
    ) -> None:
        scrobbles = FakeScrobbleProvider(
            NowPlaying(track="Blinding Lights", artist="The Weeknd", is_playing=True)
        )
        assembler = build_assembler(weeknd_catalog, settings, scrobble_provider=scrobbles)

        graph = await assembler.build_now_playing_graph("someone")

        assert graph.get_entity(TRACK) is not None

    @pytest.mark.asyncio
    async def test_nothing_playing(self, catalog: FakeCatalog, settings: Settings) -> None:
        assembler = build_assembler(catalog, settings, scrobble_provider=FakeScrobbleProvider())
        assert (await assembler.build_now_playing_graph("someone")).is_empty

    @pytest.mark.asyncio
    async def test_now_playing_requires_provider(self, catalog: FakeCatalog, settings: Settings) -> None:
        with pytest.raises(ConfigurationError):
            await build_assembler(catalog, settings).build_now_playing_graph("someone")

    @pytest.mark.asyncio
    async def test_artist_relations(self, daft_punk_catalog: FakeCatalog, settings: Settings) -> None:
        graph = await build_assembler(daft_punk_catalog, settings).build_artist_relations_graph(
            "Daft Punk"
        )

        assert graph.get_entity("artist-dp").child_count == 2
        assert _roles(graph, "artist-tb", "artist-dp") == {RoleType.MEMBER_OF}
        assert _roles(graph, "artist-dp", "artist-nr") == {RoleType.FEATURED}


class TestUserHistory:
    @pytest.fixture()
    def history(self) -> list[NowPlaying]:
        return [
            NowPlaying(
                track="Blinding Lights",
                artist="The Weeknd",
                album="After Hours",
                image="https://img/after-hours.jpg",
                is_playing=True,
            ),
            NowPlaying(track="Save Your Tears", artist="The Weeknd", album="After Hours", timestamp=200),
            NowPlaying(track="Blinding Lights", artist="The Weeknd", album="After Hours", timestamp=100),
            NowPlaying(track="Smooth Operator", artist="Sade", timestamp=50),
        ]

    @pytest.mark.asyncio
    async def test_history_links_artists_tracks_and_albums(
        self, catalog: FakeCatalog, settings: Settings, history: list[NowPlaying]
    ) -> None:
        scrobbles = FakeScrobbleProvider(history=history)
        assembler = build_assembler(catalog, settings, scrobble_provider=scrobbles)

        graph = await assembler.build_user_history_graph("someone")

        weeknd = "artist-name-the_weeknd"
        lights = "track-name-the_weeknd-blinding_lights"
        album = "release-name-the_weeknd-after_hours"
        assert _artist_ids(graph) == {weeknd, "artist-name-sade"}
        assert len([e for e in graph.entities if e.type is EntityType.TRACK]) == 3
        assert _roles(graph, lights, weeknd) == {RoleType.PRIMARY_ARTIST}
        assert _roles(graph, album, lights) == {RoleType.CONTAINS}
        assert _roles(graph, weeknd, album) == {RoleType.RELEASED_ON}
        assert graph.get_entity(album).image == "https://img/after-hours.jpg"
        assert graph.get_entity(lights).metadata == {"lastPlayed": "100"}
        assert _roles(graph, "track-name-sade-smooth_operator", "artist-name-sade") == {
            RoleType.PRIMARY_ARTIST
        }
        assert catalog.calls == []

    @pytest.mark.asyncio
    async def test_history_limit_passed_to_provider(
        self, catalog: FakeCatalog, settings: Settings, history: list[NowPlaying]
    ) -> None:
        scrobbles = FakeScrobbleProvider(history=history)
        assembler = build_assembler(catalog, settings, scrobble_provider=scrobbles)

        graph = await assembler.build_user_history_graph("someone", limit=1)

        assert scrobbles.history_limits == [1]
        assert {e.name for e in graph.entities} == {"Blinding Lights", "The Weeknd", "After Hours"}

    @pytest.mark.asyncio
    async def test_empty_history(self, catalog: FakeCatalog, settings: Settings) -> None:
        assembler = build_assembler(
            catalog, settings, scrobble_provider=FakeScrobbleProvider(history=[])
        )
        assert (await assembler.build_user_history_graph("someone")).is_empty

    @pytest.mark.asyncio
    async def test_history_requires_provider(self, catalog: FakeCatalog, settings: Settings) -> None:
        with pytest.raises(ConfigurationError):
            await build_assembler(catalog, settings).build_user_history_graph("someone")
