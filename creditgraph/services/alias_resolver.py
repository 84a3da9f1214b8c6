"""Artist identity resolution across spellings, stage names and catalogs.

A credit for "Abel Tesfaye" on a songwriting relation and a primary credit
for "The Weeknd" must land on one entity.  :meth:`AliasResolver.resolve_entity_id`
tries three layers in order and the first hit wins:

1. **Direct id** -- the credit's own namespaced id is already in the graph.
2. **Normalized name** -- an artist with the same :func:`normalize_artist`
   key is already in the graph.
3. **Alias table** -- the name is a known alias of a canonical artist.

The alias table is filled lazily: :meth:`ensure_aliases` fetches an
artist's aliases at most once per resolver lifetime.  The resolver is an
explicit service object owned by whoever constructs it (one per
application in ``main.py``); :meth:`clear` resets it.
"""

from __future__ import annotations

import asyncio
from typing import Iterable

import structlog

from creditgraph.interfaces.catalog_provider import ICatalogProvider
from creditgraph.services.graph_accumulator import GraphAccumulator
from creditgraph.utils.concurrency import throttled_gather
from creditgraph.utils.errors import CreditGraphError
from creditgraph.utils.logging import get_logger
from creditgraph.utils.text_normalizer import normalize_artist

logger: structlog.BoundLogger = get_logger(__name__)

ARTIST_ID_PREFIX = "artist-"


def artist_entity_id(catalog_id: str) -> str:
    """Namespaced graph id for a primary-catalog artist."""
    return f"{ARTIST_ID_PREFIX}{catalog_id}"


class AliasResolver:
    """Alias map, canonical names and the set of artists already fetched."""

    def __init__(self, catalog: ICatalogProvider, max_concurrent_fetches: int = 4) -> None:
        self._catalog = catalog
        self._alias_to_id: dict[str, str] = {}
        self._canonical_names: dict[str, str] = {}
        self._fetched: set[str] = set()
        self._max_concurrent = max_concurrent_fetches

    # ------------------------------------------------------------------
    # Alias table
    # ------------------------------------------------------------------

    def register_alias(self, name: str, catalog_id: str) -> bool:
        """Map *name* to *catalog_id* unless the name is already claimed.

        Returns True when a new mapping was added.
        """
        key = normalize_artist(name)
        if not key or key in self._alias_to_id:
            return False
        self._alias_to_id[key] = catalog_id
        return True

    async def ensure_aliases(self, catalog_id: str, primary_name: str) -> None:
        """Fetch and index an artist's aliases, once per resolver lifetime.

        Failures are logged and swallowed; the artist is still marked as
        fetched so a flaky upstream is not hammered on every request.
        """
        if catalog_id in self._fetched:
            return
        # Marked before awaiting so concurrent callers skip the fetch.
        self._fetched.add(catalog_id)
        self._canonical_names.setdefault(catalog_id, primary_name)
        self.register_alias(primary_name, catalog_id)

        try:
            aliases = await self._catalog.fetch_artist_aliases(catalog_id)
        except CreditGraphError as exc:
            logger.warning(
                "alias_fetch_failed",
                artist_id=catalog_id,
                artist=primary_name,
                error=str(exc),
            )
            return

        added = sum(1 for alias in aliases if self.register_alias(alias, catalog_id))
        logger.debug("aliases_indexed", artist=primary_name, fetched=len(aliases), added=added)

    async def prefetch(self, artists: Iterable[tuple[str, str]]) -> None:
        """Fetch aliases for a batch of ``(catalog_id, name)`` pairs and wait for all."""
        pending = [(cid, name) for cid, name in artists if cid not in self._fetched]
        if not pending:
            return
        semaphore = asyncio.Semaphore(self._max_concurrent)
        results = await throttled_gather(
            [self.ensure_aliases(cid, name) for cid, name in pending],
            semaphore=semaphore,
        )
        for (cid, name), result in zip(pending, results):
            if isinstance(result, BaseException):
                logger.warning("alias_prefetch_failed", artist_id=cid, artist=name, error=str(result))

    def resolve_alias(self, name: str) -> str | None:
        """Return the canonical catalog id for *name*, if it is a known alias."""
        return self._alias_to_id.get(normalize_artist(name))

    def canonical_name(self, catalog_id: str) -> str | None:
        return self._canonical_names.get(catalog_id)

    def has_fetched(self, catalog_id: str) -> bool:
        return catalog_id in self._fetched

    # ------------------------------------------------------------------
    # Three-layer resolution
    # ------------------------------------------------------------------

    def resolve_entity_id(
        self,
        name: str,
        candidate_id: str | None,
        graph: GraphAccumulator,
    ) -> str | None:
        """Return the graph entity id a credit should attach to, or None.

        ``None`` means no layer matched and the caller should create a new
        entity under *candidate_id*.  A layer-3 hit may return an id that is
        not in *graph* yet; the caller then creates it under
        :meth:`canonical_name`.
        """
        if candidate_id and candidate_id in graph:
            return candidate_id

        by_name = graph.find_artist_by_name(name)
        if by_name is not None:
            return by_name

        canonical = self.resolve_alias(name)
        if canonical is not None:
            resolved = artist_entity_id(canonical)
            if resolved != candidate_id:
                logger.debug("alias_redirect", name=name, canonical=resolved)
            return resolved

        return None

    # ------------------------------------------------------------------

    def clear(self) -> None:
        self._alias_to_id.clear()
        self._canonical_names.clear()
        self._fetched.clear()

    def stats(self) -> dict[str, int]:
        return {
            "aliases": len(self._alias_to_id),
            "artists_fetched": len(self._fetched),
        }
