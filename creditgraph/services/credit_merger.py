"""Folds supplemental (Discogs) credits into an in-progress track graph.

The primary catalog supplies the track, its credited artists and whatever
personnel relations it knows.  Discogs frequently knows more (mixing and
mastering engineers, session players), but its credits are free text, its
artist ids live in a different namespace and many of its release-level
credits only apply to some track positions.  Merging therefore:

- finds the current track in the Discogs tracklist to learn its position;
- keeps release-level credits that are unscoped or scoped to that position;
- resolves each credited name through :class:`AliasResolver` so a person
  already in the graph is reused instead of duplicated;
- inserts one relationship per mapped role, discarding duplicate triples.

Merging the same release twice leaves the graph unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from creditgraph.models.catalog import SupplementalCredit, SupplementalRelease, SupplementalTrack
from creditgraph.models.graph import Entity, EntityType
from creditgraph.services.alias_resolver import AliasResolver
from creditgraph.services.graph_accumulator import GraphAccumulator
from creditgraph.services.role_mapper import RoleMapper
from creditgraph.utils.logging import get_logger
from creditgraph.utils.text_normalizer import (
    clean_discogs_artist_name,
    clean_track_name,
    normalize,
    split_position_list,
    titles_overlap,
)

logger: structlog.BoundLogger = get_logger(__name__)


@dataclass
class MergeReport:
    """What one merge changed."""

    track_position: str | None = None
    entities_added: int = 0
    relationships_added: int = 0
    duplicates_skipped: int = 0
    out_of_scope_skipped: int = 0
    ignored_credits: int = 0


class CreditMerger:
    """Merges :class:`SupplementalRelease` credits into a :class:`GraphAccumulator`."""

    def __init__(
        self,
        alias_resolver: AliasResolver,
        role_mapper: RoleMapper,
        id_namespace: str = "discogs",
    ) -> None:
        self._aliases = alias_resolver
        self._roles = role_mapper
        self._namespace = id_namespace

    def entity_id_for(self, credit: SupplementalCredit) -> str:
        return f"artist-{self._namespace}-{credit.artist_id}"

    @staticmethod
    def find_track(release: SupplementalRelease, track_title: str) -> SupplementalTrack | None:
        """Locate *track_title* in the tracklist; exact normalized match beats overlap."""
        wanted = normalize(clean_track_name(track_title))
        if not wanted:
            return None
        for track in release.tracklist:
            if normalize(track.title) == wanted:
                return track
        for track in release.tracklist:
            if titles_overlap(normalize(track.title), wanted):
                return track
        return None

    @staticmethod
    def applies_to_position(credit: SupplementalCredit, position: str | None) -> bool:
        """Unscoped credits apply everywhere; scoped ones only to listed positions."""
        if not credit.tracks.strip():
            return True
        if position is None:
            return False
        wanted = position.strip().upper()
        return any(p.upper() == wanted for p in split_position_list(credit.tracks))

    def merge(
        self,
        graph: GraphAccumulator,
        track_entity_id: str,
        release: SupplementalRelease,
        track_title: str,
    ) -> MergeReport:
        """Merge *release*'s credits for *track_title* into *graph*."""
        report = MergeReport()
        track = self.find_track(release, track_title)
        if track is not None:
            report.track_position = track.position

        applicable: list[SupplementalCredit] = list(track.credits) if track is not None else []
        for credit in release.credits:
            if self.applies_to_position(credit, report.track_position):
                applicable.append(credit)
            else:
                report.out_of_scope_skipped += 1

        for credit in applicable:
            self._merge_credit(graph, track_entity_id, credit, report)

        logger.info(
            "supplemental_credits_merged",
            release=release.title,
            position=report.track_position,
            entities_added=report.entities_added,
            relationships_added=report.relationships_added,
            duplicates_skipped=report.duplicates_skipped,
            out_of_scope_skipped=report.out_of_scope_skipped,
        )
        return report

    def _merge_credit(
        self,
        graph: GraphAccumulator,
        track_entity_id: str,
        credit: SupplementalCredit,
        report: MergeReport,
    ) -> None:
        roles = self._roles.map_supplemental_role(credit.role)
        if not roles:
            report.ignored_credits += 1
            return

        name = clean_discogs_artist_name(credit.name)
        candidate_id = self.entity_id_for(credit)
        target_id = self._aliases.resolve_entity_id(name, candidate_id, graph)

        if target_id is None:
            target_id = candidate_id
            graph.add_entity(
                Entity(id=target_id, name=name, type=EntityType.ARTIST, source_id=credit.artist_id)
            )
            report.entities_added += 1
        elif target_id not in graph:
            # Alias hit on a canonical artist that is not in this graph yet.
            canonical = self._aliases.canonical_name(target_id.removeprefix("artist-")) or name
            graph.add_entity(
                Entity(
                    id=target_id,
                    name=canonical,
                    type=EntityType.ARTIST,
                    source_id=target_id.removeprefix("artist-"),
                )
            )
            report.entities_added += 1

        for role in roles:
            if graph.add_relationship(track_entity_id, target_id, role):
                report.relationships_added += 1
            else:
                report.duplicates_skipped += 1
