"""Graph models: entities, typed relationships and the assembled graph.

An assembled :class:`MusicGraph` is what every GraphAssembler entry point
returns, what TrackCache persists, and what the exchange format reads and
writes.  Field names serialize in camelCase (``sourceId``, ``parentId``)
so persisted entries and exported files keep one shape.

Identity rules:
    - Entity ids are namespaced by source-local identifier
      (``artist-<mbid>``, ``release-<mbid>``, ``artist-discogs-<id>``), so
      the same catalog record always yields the same id.
    - Relationship ids are a stable hash of ``(source, target, role)``;
      see :func:`relationship_id`.
"""

from __future__ import annotations

import hashlib
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class EntityType(str, Enum):  # noqa: UP042
    """Kinds of node in the credit graph."""

    ARTIST = "artist"
    TRACK = "track"
    ALBUM = "album"
    LABEL = "label"


class ReleaseType(str, Enum):  # noqa: UP042
    """Primary type of a release or release group, as shown to the UI."""

    ALBUM = "Album"
    SINGLE = "Single"
    EP = "EP"
    OTHER = "Other"

    @classmethod
    def from_catalog(cls, primary_type: str | None) -> ReleaseType:
        """Map a catalog primary-type string ("album", "Single", ...) to a ReleaseType."""
        lookup = {"album": cls.ALBUM, "single": cls.SINGLE, "ep": cls.EP}
        return lookup.get((primary_type or "").lower(), cls.OTHER)


class RoleType(str, Enum):  # noqa: UP042
    """Closed set of relationship roles.

    Relationships point from the credited work (track, album) to the
    contributor, except ``released_on`` (artist -> album, album -> label),
    ``contains`` (album -> track) and the artist-to-artist roles
    ``member_of`` / ``signed_to``.
    """

    # Artist roles
    PRIMARY_ARTIST = "primary_artist"
    FEATURED = "featured"
    REMIXER = "remixer"
    # Production
    PRODUCER = "producer"
    EXECUTIVE_PRODUCER = "executive_producer"
    CO_PRODUCER = "co_producer"
    VOCAL_PRODUCER = "vocal_producer"
    ADDITIONAL_PRODUCER = "additional_producer"
    # Songwriting
    SONGWRITER = "songwriter"
    COMPOSER = "composer"
    LYRICIST = "lyricist"
    ARRANGER = "arranger"
    # Engineering
    ENGINEER = "engineer"
    MIXING = "mixing"
    MASTERING = "mastering"
    RECORDING = "recording"
    PROGRAMMING = "programming"
    # Vocals
    VOCALS = "vocals"
    BACKGROUND_VOCALS = "background_vocals"
    CHOIR = "choir"
    # Strings
    GUITAR = "guitar"
    BASS = "bass"
    VIOLIN = "violin"
    CELLO = "cello"
    STRINGS = "strings"
    # Rhythm
    DRUMS = "drums"
    PERCUSSION = "percussion"
    # Keys
    KEYBOARDS = "keyboards"
    PIANO = "piano"
    ORGAN = "organ"
    SYNTHESIZER = "synthesizer"
    # Brass & woodwinds
    SAXOPHONE = "saxophone"
    TRUMPET = "trumpet"
    HORNS = "horns"
    FLUTE = "flute"
    WOODWINDS = "woodwinds"
    # Other instruments
    HARMONICA = "harmonica"
    TURNTABLES = "turntables"
    OTHER_INSTRUMENT = "other_instrument"
    # Structural
    MEMBER_OF = "member_of"
    SIGNED_TO = "signed_to"
    RELEASED_ON = "released_on"
    CONTAINS = "contains"


# Roles that describe who the track is *by*, as opposed to who worked on it.
CREDITED_ARTIST_ROLES = frozenset({RoleType.PRIMARY_ARTIST, RoleType.FEATURED})


def relationship_id(source: str, target: str, role: RoleType | str) -> str:
    """Derive the dedup key for a relationship.

    The same ``(source, target, role)`` triple always produces the same id,
    and distinct triples cannot collide by string concatenation (ids contain
    hyphens, so a plain ``f"{source}-{target}"`` would be ambiguous).
    """
    role_value = role.value if isinstance(role, RoleType) else str(role)
    digest = hashlib.sha1(
        f"{source}\x1f{target}\x1f{role_value}".encode("utf-8"),
        usedforsecurity=False,
    ).hexdigest()
    return f"rel-{digest[:20]}"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

_GRAPH_MODEL_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
    use_enum_values=False,
)


class Entity(BaseModel):
    """A node in the credit graph.

    The drill-down attributes (``parent_id``, ``depth``, ``child_count``,
    ``release_type``) are only set by the discography entry points; the
    flat track graph leaves them empty.
    """

    model_config = _GRAPH_MODEL_CONFIG

    id: str
    name: str
    type: EntityType
    image: str | None = None
    source_id: str | None = None
    release_type: ReleaseType | None = None
    parent_id: str | None = None
    depth: int | None = None
    child_count: int | None = None
    metadata: dict[str, str] = Field(default_factory=dict)

    def merged_with(self, other: Entity) -> Entity:
        """Return a copy with empty fields filled from *other*.

        The receiver's values win wherever both are set; metadata keys are
        unioned the same way.
        """
        updates: dict[str, object] = {}
        for field_name in (
            "image", "source_id", "release_type", "parent_id", "depth", "child_count",
        ):
            if getattr(self, field_name) is None and getattr(other, field_name) is not None:
                updates[field_name] = getattr(other, field_name)
        missing_meta = {k: v for k, v in other.metadata.items() if k not in self.metadata}
        if missing_meta:
            updates["metadata"] = {**self.metadata, **missing_meta}
        if not updates:
            return self
        return self.model_copy(update=updates)


class Relationship(BaseModel):
    """A typed, directed edge between two entities."""

    model_config = _GRAPH_MODEL_CONFIG

    id: str
    source: str
    target: str
    role: RoleType

    @classmethod
    def create(cls, source: str, target: str, role: RoleType) -> Relationship:
        """Build a relationship whose id is derived from the triple."""
        return cls(
            id=relationship_id(source, target, role),
            source=source,
            target=target,
            role=role,
        )


class MusicGraph(BaseModel):
    """A deduplicated entity/relationship subgraph.

    Also the exchange format: ``{"entities": [...], "relationships": [...]}``.
    Array order is insertion order and carries no meaning.
    """

    model_config = ConfigDict(frozen=True)

    entities: list[Entity] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> MusicGraph:
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.entities

    def entity_ids(self) -> set[str]:
        return {entity.id for entity in self.entities}

    def get_entity(self, entity_id: str) -> Entity | None:
        for entity in self.entities:
            if entity.id == entity_id:
                return entity
        return None

    def relationships_for(self, entity_id: str) -> list[Relationship]:
        """Relationships touching *entity_id* on either end."""
        return [
            rel for rel in self.relationships
            if rel.source == entity_id or rel.target == entity_id
        ]

    def to_exchange_dict(self) -> dict:
        """Serialize to the camelCase exchange/persistence shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
