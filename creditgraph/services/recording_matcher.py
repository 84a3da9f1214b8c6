"""Scoring and ranking of candidate recordings and releases.

Given the caller's (track, artist, album?) and the candidates a catalog
search returned, pick one deterministically.  Every candidate starts from
its upstream relevance score and collects additive adjustments; the
weights come from :class:`MatchWeights` so they can be retuned from
``config/config.yaml`` without touching code.

Ties are broken by input order, and a negative best score still wins:
only an empty candidate list yields "no match".
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict

from creditgraph.models.catalog import RecordingCandidate, ReleaseCandidate, ReleaseRef
from creditgraph.utils.logging import get_logger
from creditgraph.utils.text_normalizer import normalize, normalize_artist, titles_overlap

logger: structlog.BoundLogger = get_logger(__name__)

_C = TypeVar("_C")


class MatchWeights(BaseModel):
    """Additive scoring adjustments.  Defaults are the tuned production values."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    # Recording-level
    exact_title: int = 50
    alternate_version: int = -100
    clean_version: int = -50
    per_extra_artist: int = 25
    artist_credited: int = 30
    # Release sub-score
    album_exact: int = 80
    album_partial: int = 40
    alternate_release: int = -60
    reissue_edition: int = -50
    official_status: int = 15
    album_type: int = 30
    ep_type: int = 10
    no_album_match: int = -100
    # Release-first lookup
    release_first_candidates: int = 3


# ---------------------------------------------------------------------------
# Indicator vocabularies
# ---------------------------------------------------------------------------

_ALTERNATE_DISAMBIGUATION = (
    "live", "remix", "acoustic", "demo", "radio edit", "instrumental",
    "karaoke", "cover", "remaster", "alternate", "edit", "mix",
    "version", "reprise", "interlude", "skit",
)
_ALTERNATE_TITLE = re.compile(
    r"[(\[\-].*?(live|remix|acoustic|demo|radio|instrumental|remaster|edit|mix).*?[)\]]",
    re.IGNORECASE,
)
_CLEAN_DISAMBIGUATION = ("clean", "edited", "radio edit")

_ALTERNATE_SECONDARY_TYPES = frozenset(
    {"live", "remix", "compilation", "dj-mix", "mixtape/street", "soundtrack"}
)
_COMPILATION_TITLE = re.compile(
    r"\b(greatest hits|best of|collection|anthology|soundtrack|ost|motion picture|"
    r"music from|inspired by|various artists|compilation|now that'?s what i call|"
    r"hits|essentials|ultimate|definitive)\b",
    re.IGNORECASE,
)
_REISSUE_TITLE = re.compile(
    r"\b(25|30|40|50|deluxe|special|anniversary|remaster(?:ed)?|expanded|"
    r"collector'?s?|box\s*set)\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Scored(Generic[_C]):
    """A candidate paired with its adjusted score."""

    candidate: _C
    score: int


def _stable_rank(scored: list[Scored[_C]]) -> list[Scored[_C]]:
    # sorted() is stable, so equal scores keep input order.
    return sorted(scored, key=lambda item: -item.score)


# ---------------------------------------------------------------------------
# Releases
# ---------------------------------------------------------------------------

class ReleaseMatcher:
    """Scores releases against a requested album title."""

    def __init__(self, weights: MatchWeights | None = None) -> None:
        self._weights = weights or MatchWeights()

    @property
    def weights(self) -> MatchWeights:
        return self._weights

    @staticmethod
    def is_alternate_release(release: ReleaseRef) -> bool:
        """Compilation, live, remix, DJ-mix, mixtape or soundtrack release."""
        if any(t.lower() in _ALTERNATE_SECONDARY_TYPES for t in release.secondary_types):
            return True
        return bool(_COMPILATION_TITLE.search(release.title))

    @staticmethod
    def is_reissue_edition(title: str) -> bool:
        """Anniversary, deluxe, remaster or other special-edition title."""
        return bool(_REISSUE_TITLE.search(title))

    def release_sub_score(self, release: ReleaseRef, album: str | None) -> tuple[int, bool]:
        """Score one release.

        Returns:
            ``(score, title_matched)``.  ``title_matched`` is always False
            when no album was requested.
        """
        w = self._weights
        score = 0
        matched = False

        if album:
            wanted = normalize(album)
            have = normalize(release.title)
            if wanted and have == wanted:
                score += w.album_exact
                matched = True
            elif titles_overlap(have, wanted):
                score += w.album_partial
                matched = True

        if self.is_alternate_release(release):
            score += w.alternate_release
        if self.is_reissue_edition(release.title):
            score += w.reissue_edition
        if (release.status or "").lower() == "official":
            score += w.official_status

        primary = (release.primary_type or "").lower()
        if primary == "album":
            score += w.album_type
        elif primary == "ep":
            score += w.ep_type

        return score, matched

    def album_component(self, releases: Sequence[ReleaseRef], album: str) -> int:
        """Best sub-score over the releases whose title matches *album*.

        Falls back to the ``no_album_match`` penalty when none match (or
        the candidate lists no releases at all).
        """
        best: int | None = None
        for release in releases:
            score, matched = self.release_sub_score(release, album)
            if matched and (best is None or score > best):
                best = score
        return best if best is not None else self._weights.no_album_match

    def rank_releases(
        self,
        candidates: Sequence[ReleaseCandidate],
        album: str,
    ) -> list[Scored[ReleaseCandidate]]:
        """Rank release search hits by upstream score plus release sub-score."""
        scored = [
            Scored(candidate, candidate.score + self.release_sub_score(candidate, album)[0])
            for candidate in candidates
        ]
        return _stable_rank(scored)

    def select_target_release(
        self,
        releases: Sequence[ReleaseRef],
        album: str | None = None,
        preferred_id: str | None = None,
    ) -> ReleaseRef | None:
        """Pick the release a resolved recording is attached to in the graph."""
        if not releases:
            return None
        if preferred_id:
            for release in releases:
                if release.id == preferred_id:
                    return release

        scored: list[Scored[ReleaseRef]] = []
        for release in releases:
            score, matched = self.release_sub_score(release, album)
            if album and not matched:
                score += self._weights.no_album_match
            scored.append(Scored(release, score))

        best = _stable_rank(scored)[0]
        logger.debug(
            "target_release_selected",
            release_id=best.candidate.id,
            title=best.candidate.title,
            score=best.score,
        )
        return best.candidate

    def select_single_release(self, releases: Sequence[ReleaseRef]) -> ReleaseRef | None:
        """Earliest non-alternate Single, used for track artwork."""
        singles = [
            r for r in releases
            if (r.primary_type or "").lower() == "single" and not self.is_alternate_release(r)
        ]
        if not singles:
            return None
        # Undated releases sort last; sorted() keeps input order among equals.
        return sorted(singles, key=lambda r: (r.date is None, r.date or ""))[0]


# ---------------------------------------------------------------------------
# Recordings
# ---------------------------------------------------------------------------

class RecordingMatcher:
    """Scores recording candidates against (track, artist, album?)."""

    def __init__(
        self,
        weights: MatchWeights | None = None,
        release_matcher: ReleaseMatcher | None = None,
    ) -> None:
        self._weights = weights or MatchWeights()
        self._releases = release_matcher or ReleaseMatcher(self._weights)

    @property
    def release_matcher(self) -> ReleaseMatcher:
        return self._releases

    @staticmethod
    def is_alternate_version(title: str, disambiguation: str = "") -> bool:
        """Live, remix, acoustic, demo or other non-canonical performance."""
        lowered = disambiguation.lower()
        if any(indicator in lowered for indicator in _ALTERNATE_DISAMBIGUATION):
            return True
        return bool(_ALTERNATE_TITLE.search(title))

    @staticmethod
    def is_clean_version(disambiguation: str) -> bool:
        lowered = disambiguation.lower()
        return any(indicator in lowered for indicator in _CLEAN_DISAMBIGUATION)

    def score(
        self,
        candidate: RecordingCandidate,
        track: str,
        artist: str,
        album: str | None = None,
    ) -> int:
        """Return the candidate's adjusted score."""
        w = self._weights
        score = candidate.score

        if normalize(candidate.title) == normalize(track):
            score += w.exact_title
        if self.is_alternate_version(candidate.title, candidate.disambiguation):
            score += w.alternate_version
        if self.is_clean_version(candidate.disambiguation):
            score += w.clean_version

        credit_count = len(candidate.artist_credits)
        if credit_count > 1:
            score += w.per_extra_artist * (credit_count - 1)

        wanted_artist = normalize_artist(artist)
        if wanted_artist:
            credited = [normalize_artist(c.artist.name) for c in candidate.artist_credits]
            if any(name == wanted_artist or wanted_artist in name for name in credited):
                score += w.artist_credited

        if album:
            score += self._releases.album_component(candidate.releases, album)

        return score

    def rank(
        self,
        candidates: Sequence[RecordingCandidate],
        track: str,
        artist: str,
        album: str | None = None,
    ) -> list[Scored[RecordingCandidate]]:
        scored = [Scored(c, self.score(c, track, artist, album)) for c in candidates]
        return _stable_rank(scored)

    def best_candidate(
        self,
        candidates: Sequence[RecordingCandidate],
        track: str,
        artist: str,
        album: str | None = None,
    ) -> RecordingCandidate | None:
        """Return the top-scoring candidate, or ``None`` for an empty list."""
        if not candidates:
            return None
        ranked = self.rank(candidates, track, artist, album)
        logger.debug(
            "recording_candidates_ranked",
            track=track,
            top=[(s.candidate.title, s.candidate.disambiguation, s.score) for s in ranked[:5]],
        )
        return ranked[0].candidate
