"""Shared pytest fixtures for the creditgraph test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from creditgraph.config.settings import Settings
from creditgraph.interfaces.catalog_provider import ICatalogProvider
from creditgraph.interfaces.credits_provider import ISupplementalCreditsProvider
from creditgraph.interfaces.image_provider import IImageProvider
from creditgraph.interfaces.scrobble_provider import IScrobbleProvider
from creditgraph.models.catalog import (
    ArtistCredit,
    ArtistRef,
    ArtistRelation,
    NowPlaying,
    RecordingCandidate,
    RecordingDetail,
    ReleaseCandidate,
    ReleaseDetail,
    ReleaseGroupRef,
    ReleaseRef,
    ReleaseTrack,
    SupplementalRelease,
)
from creditgraph.providers.cache.memory_cache_storage import MemoryCacheStorage
from creditgraph.services.alias_resolver import AliasResolver
from creditgraph.services.credit_merger import CreditMerger
from creditgraph.services.graph_assembler import GraphAssembler
from creditgraph.services.recording_matcher import RecordingMatcher, ReleaseMatcher
from creditgraph.services.recording_resolver import RecordingResolver
from creditgraph.services.role_mapper import RoleMapper
from creditgraph.services.track_cache import TrackCache


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def artist(artist_id: str, name: str) -> ArtistRef:
    return ArtistRef(id=artist_id, name=name)


def credit(artist_id: str, name: str, joinphrase: str = "") -> ArtistCredit:
    return ArtistCredit(artist=artist(artist_id, name), credited_name=name, joinphrase=joinphrase)


def release(
    release_id: str,
    title: str,
    primary_type: str | None = "Album",
    status: str | None = "Official",
    date: str | None = None,
    secondary_types: tuple[str, ...] = (),
) -> ReleaseRef:
    return ReleaseRef(
        id=release_id,
        title=title,
        primary_type=primary_type,
        status=status,
        date=date,
        secondary_types=secondary_types,
    )


# ---------------------------------------------------------------------------
# Fake providers
# ---------------------------------------------------------------------------


class FakeCatalog(ICatalogProvider):
    """In-memory primary catalog.  Every call is recorded in ``calls``."""

    def __init__(self) -> None:
        self.artists: list[ArtistRef] = []
        self.recordings: list[RecordingCandidate] = []
        self.releases: list[ReleaseCandidate] = []
        self.recording_details: dict[str, RecordingDetail] = {}
        self.release_details: dict[str, ReleaseDetail] = {}
        self.aliases: dict[str, list[str]] = {}
        self.work_credits: dict[str, list[ArtistRelation]] = {}
        self.release_groups: dict[str, list[ReleaseGroupRef]] = {}
        self.group_tracks: dict[str, list[ReleaseTrack]] = {}
        self.artist_relations: dict[str, list[ArtistRelation]] = {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, Any]] = []

    def _record(self, method: str, arg: Any) -> None:
        self.calls.append((method, arg))
        if method in self.errors:
            raise self.errors[method]

    def calls_to(self, method: str) -> list[Any]:
        return [arg for name, arg in self.calls if name == method]

    async def search_artist(self, name: str) -> list[ArtistRef]:
        self._record("search_artist", name)
        return list(self.artists)

    async def search_recording(
        self, title: str, artist: str | None = None, album: str | None = None
    ) -> list[RecordingCandidate]:
        self._record("search_recording", (title, artist, album))
        return list(self.recordings)

    async def search_release(self, album: str, artist: str) -> list[ReleaseCandidate]:
        self._record("search_release", (album, artist))
        return list(self.releases)

    async def fetch_recording_detail(self, recording_id: str) -> RecordingDetail | None:
        self._record("fetch_recording_detail", recording_id)
        return self.recording_details.get(recording_id)

    async def fetch_release_detail(self, release_id: str) -> ReleaseDetail | None:
        self._record("fetch_release_detail", release_id)
        return self.release_details.get(release_id)

    async def fetch_artist_aliases(self, artist_id: str) -> list[str]:
        self._record("fetch_artist_aliases", artist_id)
        return list(self.aliases.get(artist_id, []))

    async def fetch_work_credits(self, work_id: str) -> list[ArtistRelation]:
        self._record("fetch_work_credits", work_id)
        return list(self.work_credits.get(work_id, []))

    async def fetch_artist_release_groups(self, artist_id: str) -> list[ReleaseGroupRef]:
        self._record("fetch_artist_release_groups", artist_id)
        return list(self.release_groups.get(artist_id, []))

    async def fetch_release_group_tracks(self, release_group_id: str) -> list[ReleaseTrack]:
        self._record("fetch_release_group_tracks", release_group_id)
        return list(self.group_tracks.get(release_group_id, []))

    async def fetch_artist_relations(self, artist_id: str) -> list[ArtistRelation]:
        self._record("fetch_artist_relations", artist_id)
        return list(self.artist_relations.get(artist_id, []))

    def get_provider_name(self) -> str:
        return "fake-catalog"

    def is_available(self) -> bool:
        return True


class FakeCreditsProvider(ISupplementalCreditsProvider):
    def __init__(self, release: SupplementalRelease | None = None, error: Exception | None = None) -> None:
        self.release = release
        self.error = error
        self.calls: list[tuple[str, str, str | None]] = []

    async def find_release_credits(
        self, track: str, artist: str, album: str | None = None
    ) -> SupplementalRelease | None:
        self.calls.append((track, artist, album))
        if self.error is not None:
            raise self.error
        return self.release

    def get_provider_name(self) -> str:
        return "fake-credits"

    def is_available(self) -> bool:
        return True


class FakeImageProvider(IImageProvider):
    def __init__(
        self,
        name: str = "fake-images",
        artist_images: dict[str, str] | None = None,
        album_images: dict[str, str] | None = None,
        error: Exception | None = None,
        available: bool = True,
    ) -> None:
        self.name = name
        self.artist_images = artist_images or {}
        self.album_images = album_images or {}
        self.error = error
        self.available = available
        self.artist_calls: list[tuple[str, str | None]] = []
        self.album_calls: list[tuple[str, str]] = []

    async def fetch_artist_image(self, name: str, mbid: str | None = None) -> str | None:
        self.artist_calls.append((name, mbid))
        if self.error is not None:
            raise self.error
        return self.artist_images.get(name)

    async def fetch_album_image(self, artist: str, album: str) -> str | None:
        self.album_calls.append((artist, album))
        if self.error is not None:
            raise self.error
        return self.album_images.get(album)

    def get_provider_name(self) -> str:
        return self.name

    def is_available(self) -> bool:
        return self.available


class FakeScrobbleProvider(IScrobbleProvider):
    def __init__(
        self, playing: NowPlaying | None = None, history: list[NowPlaying] | None = None
    ) -> None:
        self.playing = playing
        self.history = history
        self.history_limits: list[int] = []

    async def get_now_playing(self, username: str) -> NowPlaying | None:
        return self.playing

    async def get_recent_tracks(self, username: str, limit: int = 50) -> list[NowPlaying]:
        self.history_limits.append(limit)
        if self.history is not None:
            return self.history[:limit]
        return [self.playing] if self.playing else []

    def get_provider_name(self) -> str:
        return "fake-scrobbles"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        discogs_user_token="",
        lastfm_api_key="",
        cache_enabled=True,
    )


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def storage() -> MemoryCacheStorage:
    return MemoryCacheStorage()


@pytest.fixture
def track_cache(storage: MemoryCacheStorage) -> TrackCache:
    return TrackCache(storage)


@pytest.fixture
def alias_resolver(catalog: FakeCatalog) -> AliasResolver:
    return AliasResolver(catalog)


@pytest.fixture
def role_mapper() -> RoleMapper:
    return RoleMapper()


def build_assembler(
    catalog: FakeCatalog,
    settings: Settings,
    **overrides: Any,
) -> GraphAssembler:
    """GraphAssembler over *catalog* with real matching/merging services."""
    release_matcher = ReleaseMatcher()
    recording_matcher = RecordingMatcher(release_matcher=release_matcher)
    alias_resolver = overrides.pop("alias_resolver", None) or AliasResolver(catalog)
    role_mapper = RoleMapper()
    return GraphAssembler(
        catalog=catalog,
        recording_resolver=RecordingResolver(catalog, recording_matcher),
        release_matcher=release_matcher,
        alias_resolver=alias_resolver,
        role_mapper=role_mapper,
        credit_merger=CreditMerger(alias_resolver, role_mapper),
        settings=settings,
        **overrides,
    )
