"""
Read-through TTL cache of graph index snapshots.

Entries are keyed by the query filters and tagged with the store version they
were built from. Relationship mutations reported by the store drop every
entry; backends that cannot report mutations rely on the TTL, which is the
staleness bound documented to callers.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .filters import ALL_ENTITIES, ALL_RELATIONSHIPS, EntityFilter, RelationshipFilter
from .index import GraphIndex
from .schema import Relationship
from .store import GraphStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheStats:
    """Expose basic cache metrics for diagnostics."""

    label: str
    size: int
    hits: int
    misses: int
    invalidations: int
    ttl_seconds: int
    enabled: bool

    def to_dict(self):
        return {
            "label": self.label,
            "size": self.size,
            "hits": self.hits,
            "misses": self.misses,
            "invalidations": self.invalidations,
            "ttlSeconds": self.ttl_seconds,
            "enabled": self.enabled,
        }


class GraphIndexCache:
    """
    Index snapshots per filter key, guarded by one coarse lock.

    Index builds happen outside the lock; two concurrent misses for the same
    key may both build, and the later one wins.
    """

    def __init__(
        self,
        store: GraphStore,
        ttl_seconds: int = 300,
        *,
        enabled: bool = True,
        label: str = "graph_index",
    ):
        self.store = store
        self.ttl_seconds = max(1, int(ttl_seconds))
        self.enabled = enabled
        self.label = label
        self._lock = threading.Lock()
        self._store: Dict[str, Tuple[float, GraphIndex]] = {}
        self._hits = 0
        self._misses = 0
        self._invalidations = 0
        store.subscribe(self._on_store_change)

    def get_index(
        self,
        relationship_filter: Optional[RelationshipFilter] = None,
        entity_filter: Optional[EntityFilter] = None,
    ) -> GraphIndex:
        relationship_filter = relationship_filter or ALL_RELATIONSHIPS
        entity_filter = entity_filter or ALL_ENTITIES
        key = f"{entity_filter.cache_key()}|{relationship_filter.cache_key()}"
        version = self.store.version

        if self.enabled:
            cached = self._lookup(key, version)
            if cached is not None:
                return cached

        index = GraphIndex(
            self.store.list_entities(entity_filter),
            self.store.list_relationships(relationship_filter),
            version=version,
            key=key,
        )
        if self.enabled:
            with self._lock:
                self._store[key] = (time.time() + self.ttl_seconds, index)
        return index

    def _lookup(self, key: str, version: int) -> Optional[GraphIndex]:
        with self._lock:
            entry = self._store.get(key)
            if not entry:
                self._misses += 1
                return None
            expires_at, index = entry
            if expires_at < time.time() or index.version != version:
                self._store.pop(key, None)
                self._misses += 1
                return None
            self._hits += 1
            return index

    def invalidate(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._store.clear()
            else:
                self._store.pop(key, None)
            self._invalidations += 1
        logger.debug("[GRAPH CACHE] Invalidated %s", key or "all entries")

    def _on_store_change(self, event: str, relationship: Optional[Relationship]) -> None:
        logger.debug(
            "[GRAPH CACHE] Store change %s (%s); dropping cached indexes",
            event,
            relationship.id if relationship else "-",
        )
        self.invalidate()

    def describe(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                label=self.label,
                size=len(self._store),
                hits=self._hits,
                misses=self._misses,
                invalidations=self._invalidations,
                ttl_seconds=self.ttl_seconds,
                enabled=self.enabled,
            )

    def __len__(self) -> int:  # pragma: no cover - trivial wrapper
        with self._lock:
            return len(self._store)
