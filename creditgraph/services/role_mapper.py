"""Maps catalog relation types and free-text credits onto :class:`RoleType`.

Three vocabularies arrive here:

* MusicBrainz recording relations -- an enumerated ``type`` ("instrument",
  "producer", "vocal", "mix", ...) refined by an attribute list
  ("trumpet", "executive", "background vocals").
* MusicBrainz work relations -- composer / lyricist / writer / arranger.
* Discogs credit strings -- free text such as ``"Producer, Mixed By"`` or
  ``"Guitar [Electric], Bass"``.

Each is resolved by ordered ``(pattern, role)`` tables: the first match
wins.  Anything no table recognizes becomes ``other_instrument``, is logged
as ``unmapped_role`` and is counted in :attr:`RoleMapper.unmapped` so the
tables can be extended from real traffic.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, Sequence

import structlog

from creditgraph.models.graph import RoleType
from creditgraph.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

_Rule = tuple["re.Pattern[str]", RoleType]


def _rules(*pairs: tuple[str, RoleType]) -> tuple[_Rule, ...]:
    return tuple((re.compile(pattern), role) for pattern, role in pairs)


# ---------------------------------------------------------------------------
# Instrument attributes (MusicBrainz "instrument"/"performer" relations)
# ---------------------------------------------------------------------------

_INSTRUMENT_RULES = _rules(
    (r"drum", RoleType.DRUMS),
    (r"percuss|^congas$|^bongos$|^tambourine$|^shaker$|^timpani$", RoleType.PERCUSSION),
    (r"bass guitar|electric bass|double bass|upright bass|fretless bass|^bass$", RoleType.BASS),
    (r"guitar|^banjo$|^mandolin$|^ukulele$", RoleType.GUITAR),
    (r"bass", RoleType.BASS),
    (r"piano|^rhodes$|^wurlitzer$", RoleType.PIANO),
    (r"synth", RoleType.SYNTHESIZER),
    (r"organ", RoleType.ORGAN),
    (r"keyboard|^clavinet$|^accordion$", RoleType.KEYBOARDS),
    (r"violin|^fiddle$", RoleType.VIOLIN),
    (r"cello", RoleType.CELLO),
    (r"string|^viola$|^orchestra$|^harp$", RoleType.STRINGS),
    (r"trumpet", RoleType.TRUMPET),
    (r"sax", RoleType.SAXOPHONE),
    (r"horn|trombone|tuba|^brass$", RoleType.HORNS),
    (r"flute", RoleType.FLUTE),
    (r"clarinet|oboe|bassoon|^woodwinds?$", RoleType.WOODWINDS),
    (r"harmonica", RoleType.HARMONICA),
    (r"turntable|^dj$|scratch", RoleType.TURNTABLES),
)

# ---------------------------------------------------------------------------
# Relation types: exact table first, then ordered partial rules
# ---------------------------------------------------------------------------

_EXACT_TYPES: dict[str, RoleType] = {
    "vocal": RoleType.VOCALS,
    "lead vocals": RoleType.VOCALS,
    "background vocals": RoleType.BACKGROUND_VOCALS,
    "backing vocals": RoleType.BACKGROUND_VOCALS,
    "guest": RoleType.FEATURED,
    "featured": RoleType.FEATURED,
    "choir": RoleType.CHOIR,
    "chorus": RoleType.CHOIR,
    "drum machine": RoleType.DRUMS,
    "orchestration": RoleType.ARRANGER,
    "orchestrator": RoleType.ARRANGER,
    "mix": RoleType.MIXING,
    "mix-dj": RoleType.MIXING,
    "mixing": RoleType.MIXING,
    "mastering": RoleType.MASTERING,
    "recording": RoleType.RECORDING,
    "engineer": RoleType.ENGINEER,
    "audio engineer": RoleType.ENGINEER,
    "sound engineer": RoleType.ENGINEER,
    "programming": RoleType.PROGRAMMING,
    "drum programming": RoleType.PROGRAMMING,
    "synth programming": RoleType.PROGRAMMING,
    "writer": RoleType.SONGWRITER,
    "songwriter": RoleType.SONGWRITER,
    "composer": RoleType.COMPOSER,
    "lyricist": RoleType.LYRICIST,
    "librettist": RoleType.LYRICIST,
    "arranger": RoleType.ARRANGER,
    "instrument arranger": RoleType.ARRANGER,
    "vocal arranger": RoleType.ARRANGER,
    "music by": RoleType.COMPOSER,
    "lyrics by": RoleType.LYRICIST,
    "arranged by": RoleType.ARRANGER,
    "remix": RoleType.REMIXER,
    "remixer": RoleType.REMIXER,
    "remixed by": RoleType.REMIXER,
    "member of band": RoleType.MEMBER_OF,
    "is person": RoleType.MEMBER_OF,
    "subgroup": RoleType.MEMBER_OF,
    "collaboration": RoleType.FEATURED,
    "signed": RoleType.SIGNED_TO,
    "label contract": RoleType.SIGNED_TO,
}

_PARTIAL_TYPE_RULES = _rules(
    (r"remix", RoleType.REMIXER),
    (r"background vocal|backing vocal", RoleType.BACKGROUND_VOCALS),
    (r"vocal|voice|singer", RoleType.VOCALS),
    (r"choir|chorus", RoleType.CHOIR),
    (r"programm", RoleType.PROGRAMMING),
    (r"master", RoleType.MASTERING),
    (r"\bmix", RoleType.MIXING),
    (r"record", RoleType.RECORDING),
    (r"engineer", RoleType.ENGINEER),
    (r"arrang|orchestrat", RoleType.ARRANGER),
    (r"lyric", RoleType.LYRICIST),
    (r"compos", RoleType.COMPOSER),
    (r"writ", RoleType.SONGWRITER),
) + _INSTRUMENT_RULES

_WORK_TYPES: dict[str, RoleType] = {
    "composer": RoleType.COMPOSER,
    "lyricist": RoleType.LYRICIST,
    "librettist": RoleType.LYRICIST,
    "writer": RoleType.SONGWRITER,
    "arranger": RoleType.ARRANGER,
    "orchestrator": RoleType.ARRANGER,
}

# ---------------------------------------------------------------------------
# Discogs free-text roles
# ---------------------------------------------------------------------------

_SUPPLEMENTAL_RULES = _rules(
    (r"executive producer|executive-producer", RoleType.EXECUTIVE_PRODUCER),
    (r"co-producer|coproducer", RoleType.CO_PRODUCER),
    (r"vocal producer|vocals produced", RoleType.VOCAL_PRODUCER),
    (r"additional producer|additional production", RoleType.ADDITIONAL_PRODUCER),
    (r"producer|produced by|^production$", RoleType.PRODUCER),
    (r"remix", RoleType.REMIXER),
    (r"written-by|written by|songwriter", RoleType.SONGWRITER),
    (r"lyrics by|lyricist|words by", RoleType.LYRICIST),
    (r"music by|composed by|composer", RoleType.COMPOSER),
    (r"arranged by|arranger|orchestrated by", RoleType.ARRANGER),
    (r"mixed by|mixing|^mix$", RoleType.MIXING),
    (r"mastered by|mastering|lacquer cut", RoleType.MASTERING),
    (r"recorded by|recording", RoleType.RECORDING),
    (r"engineer", RoleType.ENGINEER),
    (r"programmed by|programming", RoleType.PROGRAMMING),
    (r"^featuring$|^feat", RoleType.FEATURED),
    (r"backing vocals|background vocals", RoleType.BACKGROUND_VOCALS),
    (r"choir|chorus", RoleType.CHOIR),
    (r"vocal|voice", RoleType.VOCALS),
    (r"scratches|turntables|^dj mix$", RoleType.TURNTABLES),
)

# Non-musical credits that never become graph edges.
_SUPPLEMENTAL_IGNORED = re.compile(
    r"artwork|design|photograph|liner notes|layout|illustration|a&r|management|"
    r"legal|copyright|phonographic|distributed by|marketed by|manufactured|"
    r"printed by|pressed by|licensed|coordinator|art direction|typography|"
    r"^other$|sleeve|creative director|booking"
)

_BRACKETED = re.compile(r"\[([^\]]*)\]")


def _split_outside_brackets(text: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    for char in text:
        if char == "[":
            depth += 1
        elif char == "]":
            depth = max(0, depth - 1)
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return [p.strip() for p in parts if p.strip()]


def _first_match(rules: Iterable[_Rule], text: str) -> RoleType | None:
    for pattern, role in rules:
        if pattern.search(text):
            return role
    return None


class RoleMapper:
    """Stateless mapping plus an observable counter of unmapped inputs."""

    def __init__(self) -> None:
        self.unmapped: Counter[str] = Counter()

    # ------------------------------------------------------------------
    # Primary catalog relations
    # ------------------------------------------------------------------

    def map_relation(self, relation_type: str, attributes: Sequence[str] = ()) -> RoleType:
        """Map a recording/artist relation type plus attributes to a role.

        ``("performer", ["trumpet"])`` -> ``RoleType.TRUMPET``;
        ``("producer", ["executive"])`` -> ``RoleType.EXECUTIVE_PRODUCER``.
        """
        kind = relation_type.strip().lower()
        attrs = [a.strip().lower() for a in attributes]

        if kind in ("instrument", "performer", "performing orchestra"):
            for attr in attrs:
                role = _first_match(_INSTRUMENT_RULES, attr)
                if role is not None:
                    return role
            if attrs:
                self._record_unmapped(f"{kind}:{','.join(attrs)}")
            return RoleType.OTHER_INSTRUMENT

        if kind == "producer":
            if "executive" in attrs:
                return RoleType.EXECUTIVE_PRODUCER
            if "co" in attrs:
                return RoleType.CO_PRODUCER
            if any("vocal" in a for a in attrs):
                return RoleType.VOCAL_PRODUCER
            if "additional" in attrs:
                return RoleType.ADDITIONAL_PRODUCER
            return RoleType.PRODUCER

        if kind == "vocal":
            if any("background" in a or "backing" in a for a in attrs):
                return RoleType.BACKGROUND_VOCALS
            if any("choir" in a or "chorus" in a for a in attrs):
                return RoleType.CHOIR
            return RoleType.VOCALS

        exact = _EXACT_TYPES.get(kind)
        if exact is not None:
            return exact

        partial = _first_match(_PARTIAL_TYPE_RULES, kind)
        if partial is not None:
            return partial

        self._record_unmapped(kind)
        return RoleType.OTHER_INSTRUMENT

    def map_work_relation(self, relation_type: str, attributes: Sequence[str] = ()) -> RoleType:
        """Map a work (composition) relation; falls back to :meth:`map_relation`."""
        role = _WORK_TYPES.get(relation_type.strip().lower())
        if role is not None:
            return role
        return self.map_relation(relation_type, attributes)

    # ------------------------------------------------------------------
    # Supplemental (Discogs) credits
    # ------------------------------------------------------------------

    def map_supplemental_role(self, role_text: str) -> list[RoleType]:
        """Map a Discogs credit string to zero or more roles.

        ``"Producer, Mixed By"`` -> ``[PRODUCER, MIXING]``;
        ``"Guitar [Electric]"`` -> ``[GUITAR]``.  Non-musical credits
        (artwork, photography, legal lines) map to no role.
        """
        roles: list[RoleType] = []
        for part in _split_outside_brackets(role_text):
            qualifiers = [q.strip().lower() for q in _BRACKETED.findall(part)]
            base = _BRACKETED.sub("", part).strip().lower()
            if not base:
                continue
            if _SUPPLEMENTAL_IGNORED.search(base):
                logger.debug("supplemental_role_ignored", role=base)
                continue

            role = _first_match(_SUPPLEMENTAL_RULES, base)
            if role is None:
                role = self._map_supplemental_instrument(base, qualifiers)
            if role not in roles:
                roles.append(role)
        return roles

    def _map_supplemental_instrument(self, base: str, qualifiers: list[str]) -> RoleType:
        # "Bass [Electric Bass]" style: the base names the instrument,
        # qualifiers only narrow it down.
        for candidate in [base, *qualifiers]:
            role = _first_match(_INSTRUMENT_RULES, candidate)
            if role is not None:
                return role
        exact = _EXACT_TYPES.get(base)
        if exact is not None:
            return exact
        self._record_unmapped(f"discogs:{base}")
        return RoleType.OTHER_INSTRUMENT

    # ------------------------------------------------------------------

    def _record_unmapped(self, key: str) -> None:
        self.unmapped[key] += 1
        logger.warning("unmapped_role", relation=key, seen=self.unmapped[key])
