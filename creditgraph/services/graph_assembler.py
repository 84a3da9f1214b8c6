"""Top-level orchestration: turns a user query into a credit graph.

Entry points
------------
build_track_graph(track, artist, album?)
    The flat track graph: the resolved recording, its credited artists,
    its target release (and labels), personnel from recording and work
    relations, supplemental credits and artwork.  Cached per query.
initialize_artist_graph(artist_name)
    Discography root: the artist at depth 0 and one node per release
    group (albums, singles, EPs) at depth 1.  No personnel.
expand_release(entity) / expand_track(entity)
    Drill-down from a discography node one level deeper.
build_now_playing_graph(username)
    The track graph for a user's current scrobble.
build_user_history_graph(username)
    Artists, tracks and albums from a user's recent scrobbles, linked by
    name only.  No catalog lookups.
build_artist_relations_graph(artist_name)
    An artist plus band memberships and collaborations.

Failure policy: missing optional data (supplemental credits, work
credits, aliases, images) shrinks the graph but never fails the request.
Only "no matching recording/artist at all" is a not-found, and that is
returned as an empty :class:`MusicGraph`, not raised.

The assembler keeps no per-request state; each call builds its own
:class:`GraphAccumulator`.
"""

from __future__ import annotations

import re
from typing import Sequence

import structlog

from creditgraph.config.settings import Settings
from creditgraph.interfaces.catalog_provider import ICatalogProvider
from creditgraph.interfaces.credits_provider import ISupplementalCreditsProvider
from creditgraph.interfaces.scrobble_provider import IScrobbleProvider
from creditgraph.models.catalog import ArtistCredit, ArtistRef, ArtistRelation, ReleaseRef
from creditgraph.models.graph import (
    CREDITED_ARTIST_ROLES,
    Entity,
    EntityType,
    MusicGraph,
    ReleaseType,
    RoleType,
)
from creditgraph.services.alias_resolver import AliasResolver, artist_entity_id
from creditgraph.services.credit_merger import CreditMerger
from creditgraph.services.graph_accumulator import GraphAccumulator
from creditgraph.services.image_resolver import ImageResolver
from creditgraph.services.recording_matcher import ReleaseMatcher
from creditgraph.services.recording_resolver import RecordingResolver, ResolvedRecording
from creditgraph.services.role_mapper import RoleMapper
from creditgraph.services.track_cache import TrackCache
from creditgraph.utils.errors import ConfigurationError, CreditGraphError, InvalidEntityError
from creditgraph.utils.logging import get_logger
from creditgraph.utils.text_normalizer import normalize_artist, normalize_for_key

logger: structlog.BoundLogger = get_logger(__name__)

# A joinphrase like " feat. " or " with " makes the *next* credit featured.
_FEATURING_JOIN = re.compile(r"\bfeat\b|\bft\.|\bfeaturing\b|\bwith\s", re.IGNORECASE)

_DISCOGRAPHY_TYPES = (ReleaseType.ALBUM, ReleaseType.SINGLE, ReleaseType.EP)

# Drill-down depths: artist -> release -> track -> personnel.
_RELEASE_DEPTH = 1
_TRACK_DEPTH = 2
_PERSONNEL_DEPTH = 3

DEFAULT_HISTORY_LIMIT = 30


def track_entity_id(recording_id: str) -> str:
    return f"track-{recording_id}"


def release_entity_id(release_id: str) -> str:
    return f"release-{release_id}"


def label_entity_id(label_id: str) -> str:
    return f"label-{label_id}"


class GraphAssembler:
    """Builds track, discography and relation graphs from injected services."""

    def __init__(
        self,
        catalog: ICatalogProvider,
        recording_resolver: RecordingResolver,
        release_matcher: ReleaseMatcher,
        alias_resolver: AliasResolver,
        role_mapper: RoleMapper,
        credit_merger: CreditMerger,
        image_resolver: ImageResolver | None = None,
        track_cache: TrackCache | None = None,
        credits_provider: ISupplementalCreditsProvider | None = None,
        scrobble_provider: IScrobbleProvider | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._catalog = catalog
        self._recordings = recording_resolver
        self._releases = release_matcher
        self._aliases = alias_resolver
        self._roles = role_mapper
        self._merger = credit_merger
        self._images = image_resolver
        self._cache = track_cache
        self._credits = credits_provider
        self._scrobbles = scrobble_provider
        self._settings = settings or Settings()

    @property
    def _cache_enabled(self) -> bool:
        return self._cache is not None and self._settings.cache_enabled

    # ------------------------------------------------------------------
    # Flat track graph
    # ------------------------------------------------------------------

    async def build_track_graph(
        self,
        track: str,
        artist: str,
        album: str | None = None,
    ) -> MusicGraph:
        """Resolve a track and assemble its full credit graph.

        Returns an empty graph when no recording matches.
        """
        if self._cache_enabled:
            cached = await self._cache.get_track(track, artist, album)
            if cached is not None:
                logger.info("track_graph_cache_hit", track=track, artist=artist)
                return cached

        lookup = await self._recordings.resolve(track, artist, album)
        if not lookup.is_found:
            return MusicGraph.empty()
        resolved: ResolvedRecording = lookup.value

        detail = await self._catalog.fetch_recording_detail(resolved.recording_id)
        if detail is None:
            logger.warning("recording_detail_missing", recording_id=resolved.recording_id)
            return MusicGraph.empty()

        graph = GraphAccumulator()
        track_id = track_entity_id(detail.id)
        graph.add_entity(
            Entity(id=track_id, name=detail.title, type=EntityType.TRACK, source_id=detail.id)
        )

        credited_ids, album_artist_ids = self._add_credited_artists(
            graph, track_id, detail.artist_credits, requested_artist=artist
        )
        await self._aliases.prefetch(
            (credit.artist.id, credit.artist.name) for credit in detail.artist_credits
        )

        target = self._add_album(graph, track_id, detail.releases, resolved, album, album_artist_ids)
        self._add_personnel(graph, track_id, detail.relations)
        await self._add_work_credits(graph, track_id, detail.work_ids)
        await self._merge_supplemental(graph, track_id, track, artist, album)

        if self._images is not None:
            single = self._releases.select_single_release(detail.releases)
            album_artist = self._display_name(graph, album_artist_ids) or artist
            await self._images.apply_images(
                graph,
                primary_artist_ids=credited_ids,
                album_artist=album_artist,
                track_entity_id=track_id,
                album_entity_id=release_entity_id(target.id) if target else None,
                album_title=target.title if target else None,
                single_title=single.title if single else None,
            )

        result = graph.build()
        logger.info(
            "track_graph_built",
            track=detail.title,
            strategy=resolved.strategy,
            entities=len(result.entities),
            relationships=len(result.relationships),
        )
        if self._cache_enabled:
            await self._cache.put_track(track, artist, result, album)
        return result

    def _add_credited_artists(
        self,
        graph: GraphAccumulator,
        track_id: str,
        credits: Sequence[ArtistCredit],
        requested_artist: str = "",
        depth: int | None = None,
        parent_id: str | None = None,
    ) -> tuple[list[str], list[str]]:
        """Add primary/featured artists; return (credited ids, album artist ids)."""
        wanted = normalize_artist(requested_artist)
        credited: list[str] = []
        non_featured: list[str] = []
        matching: list[str] = []

        featured_next = False
        for credit in credits:
            is_featured = featured_next
            featured_next = bool(_FEATURING_JOIN.search(credit.joinphrase))

            entity_id = artist_entity_id(credit.artist.id)
            if entity_id not in graph:
                entity_id = graph.find_artist_by_name(credit.artist.name) or entity_id
            graph.add_entity(
                Entity(
                    id=entity_id,
                    name=credit.artist.name,
                    type=EntityType.ARTIST,
                    source_id=credit.artist.id,
                    depth=depth,
                    parent_id=parent_id,
                )
            )
            role = RoleType.FEATURED if is_featured else RoleType.PRIMARY_ARTIST
            graph.add_relationship(track_id, entity_id, role)

            if entity_id not in credited:
                credited.append(entity_id)
            if not is_featured and entity_id not in non_featured:
                non_featured.append(entity_id)
                if wanted and normalize_artist(credit.artist.name) == wanted:
                    matching.append(entity_id)

        return credited, matching or non_featured

    def _add_album(
        self,
        graph: GraphAccumulator,
        track_id: str,
        releases: Sequence[ReleaseRef],
        resolved: ResolvedRecording,
        album: str | None,
        album_artist_ids: Sequence[str],
    ) -> ReleaseRef | None:
        target = self._releases.select_target_release(
            releases, album, preferred_id=resolved.release_id
        )
        if target is None and resolved.release is not None:
            target = resolved.release.as_ref()
        if target is None:
            logger.info("no_target_release", track_id=track_id)
            return None

        album_id = release_entity_id(target.id)
        graph.add_entity(
            Entity(
                id=album_id,
                name=target.title,
                type=EntityType.ALBUM,
                source_id=target.id,
                release_type=ReleaseType.from_catalog(target.primary_type),
                metadata={"releaseDate": target.date} if target.date else {},
            )
        )
        graph.add_relationship(album_id, track_id, RoleType.CONTAINS)
        for artist_id in album_artist_ids:
            graph.add_relationship(artist_id, album_id, RoleType.RELEASED_ON)

        # Labels are only known when the release-first lookup already opened it.
        if resolved.release is not None and resolved.release.id == target.id:
            for label in resolved.release.labels:
                label_id = label_entity_id(label.id)
                graph.add_entity(
                    Entity(
                        id=label_id,
                        name=label.name,
                        type=EntityType.LABEL,
                        source_id=label.id,
                        metadata=(
                            {"catalogNumber": label.catalog_number} if label.catalog_number else {}
                        ),
                    )
                )
                graph.add_relationship(album_id, label_id, RoleType.RELEASED_ON)
        return target

    def _add_personnel(
        self,
        graph: GraphAccumulator,
        track_id: str,
        relations: Sequence[ArtistRelation],
        depth: int | None = None,
        parent_id: str | None = None,
    ) -> None:
        for relation in relations:
            role = self._roles.map_relation(relation.type, relation.attributes)
            self._attach_person(graph, track_id, relation.artist, role, depth, parent_id)

    async def _add_work_credits(
        self, graph: GraphAccumulator, track_id: str, work_ids: Sequence[str]
    ) -> None:
        for work_id in work_ids:
            try:
                relations = await self._catalog.fetch_work_credits(work_id)
            except CreditGraphError as exc:
                logger.warning("work_credits_failed", work_id=work_id, error=str(exc))
                continue
            for relation in relations:
                role = self._roles.map_work_relation(relation.type, relation.attributes)
                self._attach_person(graph, track_id, relation.artist, role)

    def _attach_person(
        self,
        graph: GraphAccumulator,
        track_id: str,
        person: ArtistRef,
        role: RoleType,
        depth: int | None = None,
        parent_id: str | None = None,
    ) -> None:
        candidate_id = artist_entity_id(person.id)
        target_id = self._aliases.resolve_entity_id(person.name, candidate_id, graph)
        if target_id is None:
            target_id = candidate_id
            graph.add_entity(
                Entity(
                    id=target_id,
                    name=person.name,
                    type=EntityType.ARTIST,
                    source_id=person.id,
                    depth=depth,
                    parent_id=parent_id,
                )
            )
        elif target_id not in graph:
            canonical_source = target_id.removeprefix("artist-")
            graph.add_entity(
                Entity(
                    id=target_id,
                    name=self._aliases.canonical_name(canonical_source) or person.name,
                    type=EntityType.ARTIST,
                    source_id=canonical_source,
                    depth=depth,
                    parent_id=parent_id,
                )
            )

        already_credited = graph.roles_between(track_id, target_id) & CREDITED_ARTIST_ROLES
        if role in CREDITED_ARTIST_ROLES and already_credited:
            return
        graph.add_relationship(track_id, target_id, role)

    async def _merge_supplemental(
        self,
        graph: GraphAccumulator,
        track_id: str,
        track: str,
        artist: str,
        album: str | None,
    ) -> None:
        if self._credits is None or not self._credits.is_available():
            return
        try:
            release = await self._credits.find_release_credits(track, artist, album)
        except CreditGraphError as exc:
            logger.warning(
                "supplemental_credits_failed",
                provider=self._credits.get_provider_name(),
                track=track,
                error=str(exc),
            )
            return
        if release is None:
            logger.debug("supplemental_release_not_found", track=track, artist=artist)
            return
        self._merger.merge(graph, track_id, release, track)

    @staticmethod
    def _display_name(graph: GraphAccumulator, entity_ids: Sequence[str]) -> str | None:
        for entity_id in entity_ids:
            entity = graph.get(entity_id)
            if entity is not None:
                return entity.name
        return None

    # ------------------------------------------------------------------
    # Discography drill-down
    # ------------------------------------------------------------------

    async def initialize_artist_graph(self, artist_name: str) -> MusicGraph:
        """Artist at depth 0 and its albums, singles and EPs at depth 1."""
        ref = await self._find_artist(artist_name)
        if ref is None:
            return MusicGraph.empty()

        groups = await self._catalog.fetch_artist_release_groups(ref.id)
        kept = [
            (group, ReleaseType.from_catalog(group.primary_type))
            for group in groups
        ]
        kept = [(group, rtype) for group, rtype in kept if rtype in _DISCOGRAPHY_TYPES]
        kept.sort(key=lambda item: (item[0].first_release_date is None, item[0].first_release_date or ""))

        graph = GraphAccumulator()
        artist_id = artist_entity_id(ref.id)
        graph.add_entity(
            Entity(
                id=artist_id,
                name=ref.name,
                type=EntityType.ARTIST,
                source_id=ref.id,
                depth=0,
                child_count=len(kept),
            )
        )
        for group, release_type in kept:
            release_id = release_entity_id(group.id)
            graph.add_entity(
                Entity(
                    id=release_id,
                    name=group.title,
                    type=EntityType.ALBUM,
                    source_id=group.id,
                    release_type=release_type,
                    parent_id=artist_id,
                    depth=_RELEASE_DEPTH,
                    metadata=(
                        {"releaseDate": group.first_release_date} if group.first_release_date else {}
                    ),
                )
            )
            graph.add_relationship(artist_id, release_id, RoleType.RELEASED_ON)

        if self._images is not None:
            await self._images.apply_images(graph, primary_artist_ids=[artist_id], album_artist=ref.name)

        logger.info(
            "artist_graph_initialized",
            artist=ref.name,
            release_groups=len(kept),
            skipped=len(groups) - len(kept),
        )
        return graph.build()

    async def expand_release(self, entity: Entity) -> MusicGraph:
        """Tracks of a release group (earliest release) under *entity*."""
        if not entity.source_id:
            raise InvalidEntityError(message=f"Release '{entity.id}' has no source id")

        tracks = await self._catalog.fetch_release_group_tracks(entity.source_id)
        graph = GraphAccumulator()
        graph.add_entity(entity.model_copy(update={"child_count": len(tracks)}))
        for release_track in tracks:
            child_id = track_entity_id(release_track.recording_id)
            graph.add_entity(
                Entity(
                    id=child_id,
                    name=release_track.title,
                    type=EntityType.TRACK,
                    source_id=release_track.recording_id,
                    parent_id=entity.id,
                    depth=_TRACK_DEPTH,
                    metadata={"position": release_track.position} if release_track.position else {},
                )
            )
            graph.add_relationship(entity.id, child_id, RoleType.CONTAINS)

        logger.info("release_expanded", release=entity.name, tracks=len(tracks))
        return graph.build()

    async def expand_track(self, entity: Entity) -> MusicGraph:
        """Credited artists and personnel of a track under *entity*."""
        if not entity.source_id:
            raise InvalidEntityError(message=f"Track '{entity.id}' has no source id")

        detail = await self._catalog.fetch_recording_detail(entity.source_id)
        graph = GraphAccumulator()
        graph.add_entity(entity)
        if detail is None:
            logger.warning("recording_detail_missing", recording_id=entity.source_id)
            return graph.build()

        self._add_credited_artists(
            graph, entity.id, detail.artist_credits, depth=_PERSONNEL_DEPTH, parent_id=entity.id
        )
        await self._aliases.prefetch(
            (credit.artist.id, credit.artist.name) for credit in detail.artist_credits
        )
        self._add_personnel(
            graph, entity.id, detail.relations, depth=_PERSONNEL_DEPTH, parent_id=entity.id
        )

        # Fills child_count only when the caller did not already set it.
        graph.add_entity(entity.model_copy(update={"child_count": len(graph) - 1}))
        logger.info("track_expanded", track=entity.name, people=len(graph) - 1)
        return graph.build()

    # ------------------------------------------------------------------
    # Supplementary entry points
    # ------------------------------------------------------------------

    async def build_now_playing_graph(self, username: str) -> MusicGraph:
        """Track graph for the user's current (or most recent) scrobble."""
        if self._scrobbles is None or not self._scrobbles.is_available():
            raise ConfigurationError(message="No scrobble provider is configured")

        playing = await self._scrobbles.get_now_playing(username)
        if playing is None:
            logger.info("now_playing_empty", username=username)
            return MusicGraph.empty()

        logger.info(
            "now_playing_resolved",
            username=username,
            track=playing.track,
            artist=playing.artist,
            is_playing=playing.is_playing,
        )
        return await self.build_track_graph(playing.track, playing.artist, playing.album or None)

    async def build_user_history_graph(
        self, username: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> MusicGraph:
        """Artist, track and album nodes for the user's recent scrobbles.

        Scrobbles carry names, not catalog ids, so entities are keyed by
        normalized name and tracks by artist plus title.  Scrobbles arrive
        newest first; a repeated track keeps its most recent ``lastPlayed``.
        """
        if self._scrobbles is None or not self._scrobbles.is_available():
            raise ConfigurationError(message="No scrobble provider is configured")

        scrobbles = await self._scrobbles.get_recent_tracks(username, limit=limit)
        graph = GraphAccumulator()
        for scrobble in scrobbles:
            if not scrobble.track or not scrobble.artist:
                continue
            artist_key = normalize_for_key(scrobble.artist)
            artist_id = f"artist-name-{artist_key}"
            track_id = f"track-name-{artist_key}-{normalize_for_key(scrobble.track)}"

            graph.add_entity(Entity(id=artist_id, name=scrobble.artist, type=EntityType.ARTIST))
            graph.add_entity(
                Entity(
                    id=track_id,
                    name=scrobble.track,
                    type=EntityType.TRACK,
                    metadata=(
                        {"lastPlayed": str(scrobble.timestamp)}
                        if scrobble.timestamp is not None
                        else {}
                    ),
                )
            )
            graph.add_relationship(track_id, artist_id, RoleType.PRIMARY_ARTIST)

            if scrobble.album:
                album_id = f"release-name-{artist_key}-{normalize_for_key(scrobble.album)}"
                graph.add_entity(
                    Entity(
                        id=album_id,
                        name=scrobble.album,
                        type=EntityType.ALBUM,
                        image=scrobble.image,
                    )
                )
                graph.add_relationship(album_id, track_id, RoleType.CONTAINS)
                graph.add_relationship(artist_id, album_id, RoleType.RELEASED_ON)

        logger.info(
            "user_history_built",
            username=username,
            scrobbles=len(scrobbles),
            entities=len(graph),
        )
        return graph.build()

    async def build_artist_relations_graph(self, artist_name: str) -> MusicGraph:
        """Artist plus band memberships and collaborations."""
        ref = await self._find_artist(artist_name)
        if ref is None:
            return MusicGraph.empty()

        graph = GraphAccumulator()
        root_id = artist_entity_id(ref.id)
        graph.add_entity(
            Entity(id=root_id, name=ref.name, type=EntityType.ARTIST, source_id=ref.id, depth=0)
        )

        relations = await self._catalog.fetch_artist_relations(ref.id)
        for relation in relations:
            other_id = artist_entity_id(relation.artist.id)
            graph.add_entity(
                Entity(
                    id=other_id,
                    name=relation.artist.name,
                    type=EntityType.ARTIST,
                    source_id=relation.artist.id,
                    parent_id=root_id,
                    depth=1,
                )
            )
            role = self._roles.map_relation(relation.type, relation.attributes)
            if role is RoleType.MEMBER_OF:
                # "backward": the other artist is a member of this one.
                if relation.direction == "backward":
                    graph.add_relationship(other_id, root_id, role)
                else:
                    graph.add_relationship(root_id, other_id, role)
            else:
                graph.add_relationship(root_id, other_id, role)

        graph.add_entity(graph.get(root_id).model_copy(update={"child_count": len(graph) - 1}))
        logger.info("artist_relations_built", artist=ref.name, relations=len(relations))
        return graph.build()

    async def _find_artist(self, artist_name: str) -> ArtistRef | None:
        artists = await self._catalog.search_artist(artist_name)
        if not artists:
            logger.info("artist_not_found", artist=artist_name)
            return None
        return artists[0]
