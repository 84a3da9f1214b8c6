"""Text normalization utilities for titles and artist names.

Every comparison in the matching, alias and merge code goes through the
functions in this module, so they must stay pure and idempotent:
``normalize(normalize(x)) == normalize(x)`` for any input.

1. **Comparison keys** -- :func:`normalize` for titles,
   :func:`normalize_artist` for artist names (also folds "J.I.D." into
   "jid" and "A$AP" into "asap"), :func:`normalize_for_key` for cache keys.

2. **Title cleanup** -- :func:`clean_track_name` strips featured-artist and
   version suffixes that scrobblers append but catalogs do not index.

3. **Discogs quirks** -- numbered duplicate-name suffixes ("Artist (2)")
   and ``tracks`` position scopes ("A1, A3" or "A1 to A3").
"""

import re

from rapidfuzz import fuzz, process

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")

# Letters commonly written as currency symbols in stage names.
_CURRENCY_LETTERS = str.maketrans({"$": "s", "¢": "c", "€": "e", "£": "l"})
_ARTIST_SEPARATORS = re.compile(r"[._\-]")

_FEAT_PATTERNS = (
    re.compile(r"\s*[(\[]\s*(?:feat\.?|ft\.?|featuring)\s+[^)\]]+[)\]]", re.IGNORECASE),
    re.compile(r"\s*[-–—]\s*(?:feat\.?|ft\.?|featuring)\s+.+$", re.IGNORECASE),
    re.compile(r"\s+(?:feat\.?|ft\.?|featuring)\s+.+$", re.IGNORECASE),
)

_VERSION_PATTERNS = (
    re.compile(
        r"\s*[(\[](?:official\s*(?:video|audio|music\s*video)?|lyric\s*video|audio|explicit|clean)[)\]]",
        re.IGNORECASE,
    ),
    re.compile(
        r"\s*[(\[](?:radio\s*edit|single\s*version|album\s*version|lp\s*version|"
        r"12\"\s*version|7\"\s*version)[)\]]",
        re.IGNORECASE,
    ),
    re.compile(
        r"\s*[(\[](?:extended|original|edit|mix|remix|remaster(?:ed)?|bonus\s*track)[)\]]",
        re.IGNORECASE,
    ),
    re.compile(r"\s*[(\[](?:live|acoustic|demo|instrumental)[)\]]", re.IGNORECASE),
)

# Last.fm scrobbles sometimes carry "Title From Album" in the track field.
_FROM_SUFFIX = re.compile(r"\s+from\s+.+$", re.IGNORECASE)

_DISCOGS_NUMBER_SUFFIX = re.compile(r"\s*\(\d+\)\s*$")
_POSITION_RANGE = re.compile(r"^([A-Za-z]*)(\d+)\s+to\s+([A-Za-z]*)(\d+)$", re.IGNORECASE)


def normalize(text: str) -> str:
    """Lowercase, strip punctuation and collapse whitespace.

    Args:
        text: Any title or name.

    Returns:
        The comparison key, e.g. ``"Don't Stop 'Til"`` -> ``"dont stop til"``.
    """
    lowered = text.lower()
    stripped = _PUNCTUATION.sub("", lowered)
    return _WHITESPACE.sub(" ", stripped).strip()


def normalize_artist(name: str) -> str:
    """Normalize an artist name for identity comparison.

    Like :func:`normalize`, but currency-style letters are mapped back to
    letters first and periods, hyphens and underscores are removed, so
    "J.I.D." and "JID" (or "A$AP Rocky" and "ASAP Rocky") compare equal.
    """
    substituted = name.translate(_CURRENCY_LETTERS)
    return normalize(_ARTIST_SEPARATORS.sub("", substituted))


def normalize_for_key(text: str, max_length: int = 50) -> str:
    """Build one bounded-length component of a cache key."""
    return normalize(text).replace(" ", "_")[:max_length]


def titles_overlap(first: str, second: str) -> bool:
    """Return True when two normalized titles are equal or one contains the other."""
    if not first or not second:
        return False
    return first == second or first in second or second in first


def clean_track_name(title: str) -> str:
    """Strip featured-artist credits and version suffixes from a track title.

    ``"Blinding Lights (feat. X) [Radio Edit]"`` -> ``"Blinding Lights"``.
    Returns the input unchanged when cleaning would leave nothing.
    """
    cleaned = title
    for pattern in _FEAT_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    for pattern in _VERSION_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    cleaned = _FROM_SUFFIX.sub("", cleaned).strip()
    return cleaned or title.strip()


def clean_discogs_artist_name(name: str) -> str:
    """Drop Discogs' numbered disambiguation suffix: ``"Prince (2)"`` -> ``"Prince"``."""
    return _DISCOGS_NUMBER_SUFFIX.sub("", name).strip()


def split_position_list(scope: str) -> list[str]:
    """Split a Discogs ``tracks`` scope into individual positions.

    ``"A1, A3"`` -> ``["A1", "A3"]``; ``"A1 to A3"`` -> ``["A1", "A2", "A3"]``.
    Ranges are only expanded when both ends share the same side prefix;
    anything else is kept verbatim.
    """
    positions: list[str] = []
    for part in scope.split(","):
        part = part.strip()
        if not part:
            continue
        match = _POSITION_RANGE.match(part)
        if match and match.group(1).upper() == match.group(3).upper():
            prefix = match.group(1)
            start, end = int(match.group(2)), int(match.group(4))
            if start <= end:
                positions.extend(f"{prefix}{n}" for n in range(start, end + 1))
                continue
        positions.append(part)
    return positions


def fuzzy_match(
    query: str,
    candidates: list[str],
    threshold: float = 0.8,
) -> tuple[str, float] | None:
    """Find the best fuzzy match for a query among candidates.

    Uses rapidfuzz ``token_sort_ratio``, which ignores word order
    ("Jackson Michael" matches "Michael Jackson").

    Args:
        query: The string to match.
        candidates: List of candidate strings to match against.
        threshold: Minimum similarity score (0.0--1.0) to accept a match.

    Returns:
        A (best_match, score) tuple if a match meets the threshold, else None.
    """
    if not candidates:
        return None

    result = process.extractOne(
        query,
        candidates,
        scorer=fuzz.token_sort_ratio,
        processor=normalize_artist,
        score_cutoff=threshold * 100,
    )
    if result is None:
        return None

    match, score, _index = result
    return match, score / 100.0
