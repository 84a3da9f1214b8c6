"""Mutable, deduplicating builder for one graph assembly.

Every GraphAssembler request gets a fresh accumulator; nothing in it is
shared between requests.  It enforces the graph invariants as entities and
relationships arrive:

- an entity id is stored once; a second add merges fields into the first;
- a relationship is keyed by its derived ``(source, target, role)`` id, so
  re-adding it is a no-op;
- :meth:`build` drops any relationship whose endpoint never materialized.

It also keeps the normalized-name index that the AliasResolver's second
layer consults.
"""

from __future__ import annotations

import structlog

from creditgraph.models.graph import (
    Entity,
    EntityType,
    MusicGraph,
    Relationship,
    RoleType,
    relationship_id,
)
from creditgraph.utils.logging import get_logger
from creditgraph.utils.text_normalizer import normalize_artist

logger: structlog.BoundLogger = get_logger(__name__)


class GraphAccumulator:
    """In-progress graph with id and artist-name indices."""

    def __init__(self, graph: MusicGraph | None = None) -> None:
        self._entities: dict[str, Entity] = {}
        self._relationships: dict[str, Relationship] = {}
        self._artist_names: dict[str, str] = {}
        if graph is not None:
            for entity in graph.entities:
                self.add_entity(entity)
            for rel in graph.relationships:
                self.add_relationship(rel.source, rel.target, rel.role)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def get(self, entity_id: str) -> Entity | None:
        return self._entities.get(entity_id)

    def add_entity(self, entity: Entity) -> Entity:
        """Insert *entity*, or merge it into the existing one with the same id.

        Returns the stored entity.
        """
        existing = self._entities.get(entity.id)
        stored = existing.merged_with(entity) if existing is not None else entity
        self._entities[entity.id] = stored

        if stored.type is EntityType.ARTIST:
            # The first entity to claim a name keeps it.
            self._artist_names.setdefault(normalize_artist(stored.name), stored.id)
        return stored

    def find_artist_by_name(self, name: str) -> str | None:
        """Return the id of an artist already present under the same normalized name."""
        key = normalize_artist(name)
        if not key:
            return None
        return self._artist_names.get(key)

    def set_image(self, entity_id: str, image: str) -> None:
        entity = self._entities.get(entity_id)
        if entity is not None and entity.image is None:
            self._entities[entity_id] = entity.model_copy(update={"image": image})

    @property
    def entities(self) -> list[Entity]:
        return list(self._entities.values())

    def artists(self) -> list[Entity]:
        return [e for e in self._entities.values() if e.type is EntityType.ARTIST]

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    def has_relationship(self, source: str, target: str, role: RoleType) -> bool:
        return relationship_id(source, target, role) in self._relationships

    def add_relationship(self, source: str, target: str, role: RoleType) -> bool:
        """Insert a relationship; returns False when the same triple already exists."""
        rel = Relationship.create(source, target, role)
        if rel.id in self._relationships:
            return False
        self._relationships[rel.id] = rel
        return True

    @property
    def relationships(self) -> list[Relationship]:
        return list(self._relationships.values())

    def roles_between(self, source: str, target: str) -> set[RoleType]:
        return {
            rel.role for rel in self._relationships.values()
            if rel.source == source and rel.target == target
        }

    # ------------------------------------------------------------------

    def build(self) -> MusicGraph:
        """Freeze into a :class:`MusicGraph`, dropping dangling relationships."""
        kept: list[Relationship] = []
        for rel in self._relationships.values():
            if rel.source in self._entities and rel.target in self._entities:
                kept.append(rel)
            else:
                logger.warning(
                    "dangling_relationship_dropped",
                    source=rel.source,
                    target=rel.target,
                    role=rel.role.value,
                )
        return MusicGraph(entities=list(self._entities.values()), relationships=kept)
