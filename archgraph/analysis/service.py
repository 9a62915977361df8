"""
High-level service that wires the graph stores into the relationship analyzers.

Every public method builds its filters, picks up a (possibly cached) index
snapshot and runs one analyzer against it under a per-request deadline.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..config.context import ConfigContext
from ..config.models import EngineSettings
from ..errors import InvalidArgumentError
from ..graph.cache import GraphIndexCache
from ..graph.deadline import Deadline
from ..graph.filters import EntityFilter, RelationshipFilter
from ..graph.index import GraphIndex
from ..graph.schema import GraphStats, RelationshipType
from ..graph.store import GraphStore, build_graph_store
from .chains import ChainTraversal
from .critical_paths import CriticalPathDetector
from .impact_analyzer import ImpactAnalyzer
from .matrix import MatrixBuilder
from .models import (
    CriticalPath,
    DependencyChain,
    ImpactResult,
    RelationshipMatrix,
    RelationshipTypeSummary,
)

logger = logging.getLogger(__name__)


class RelationshipAnalysisService:
    """Facade that exposes the read-only relationship query surface."""

    def __init__(
        self,
        store: GraphStore,
        settings: EngineSettings,
        *,
        cache: Optional[GraphIndexCache] = None,
        backend: str = "yaml",
    ):
        self.store = store
        self.settings = settings
        self.backend = backend
        self.cache = cache or GraphIndexCache(
            store,
            ttl_seconds=settings.cache.ttl_seconds,
            enabled=settings.cache.enabled,
        )

    @classmethod
    def from_config(
        cls,
        config_context: ConfigContext,
        *,
        base_dir: Optional[Path] = None,
    ) -> "RelationshipAnalysisService":
        store = build_graph_store(config_context, base_dir=base_dir)
        return cls(store, config_context.engine, backend=config_context.store.backend)

    # ------------------------------------------------------------------
    # Query surface

    def chains(
        self,
        card_id: str,
        depth: Optional[int] = None,
        *,
        types: Optional[Iterable[Any]] = None,
        lifecycle_state: Optional[str] = None,
        min_confidence: Optional[float] = None,
        as_of: Optional[Any] = None,
        card_types: Optional[Iterable[Any]] = None,
        timeout: Optional[float] = None,
    ) -> DependencyChain:
        relationship_filter = RelationshipFilter.build(types, min_confidence, lifecycle_state, as_of)
        index = self._index(relationship_filter, EntityFilter.build(card_types))
        deadline = self._deadline(timeout, "chain traversal")
        traversal = ChainTraversal(
            index,
            self.settings.chains,
            impact=self._impact(index, relationship_filter, deadline),
            types=relationship_filter.types,
            deadline=deadline,
        )
        return traversal.traverse(card_id, depth)

    def impact(
        self,
        card_id: str,
        *,
        types: Optional[Iterable[Any]] = None,
        lifecycle_state: Optional[str] = None,
        min_confidence: Optional[float] = None,
        as_of: Optional[Any] = None,
        card_types: Optional[Iterable[Any]] = None,
        timeout: Optional[float] = None,
    ) -> ImpactResult:
        relationship_filter = RelationshipFilter.build(types, min_confidence, lifecycle_state, as_of)
        index = self._index(relationship_filter, EntityFilter.build(card_types))
        deadline = self._deadline(timeout, "impact analysis")
        return self._impact(index, relationship_filter, deadline).analyze(card_id)

    def matrix(
        self,
        card_ids: Optional[Iterable[str]] = None,
        value_mode: Optional[str] = None,
        *,
        types: Optional[Iterable[Any]] = None,
        lifecycle_state: Optional[str] = None,
        min_confidence: Optional[float] = None,
        as_of: Optional[Any] = None,
        card_types: Optional[Iterable[Any]] = None,
        timeout: Optional[float] = None,
    ) -> RelationshipMatrix:
        relationship_filter = RelationshipFilter.build(types, min_confidence, lifecycle_state, as_of)
        index = self._index(relationship_filter, EntityFilter.build(card_types))
        builder = MatrixBuilder(
            index,
            self.settings.matrix,
            types=relationship_filter.types,
            deadline=self._deadline(timeout, "matrix build"),
        )
        return builder.build(card_ids, value_mode)

    def critical_paths(
        self,
        limit: Optional[int] = None,
        *,
        types: Optional[Iterable[Any]] = None,
        lifecycle_state: Optional[str] = None,
        min_confidence: Optional[float] = None,
        as_of: Optional[Any] = None,
        card_types: Optional[Iterable[Any]] = None,
        timeout: Optional[float] = None,
    ) -> List[CriticalPath]:
        relationship_filter = RelationshipFilter.build(types, min_confidence, lifecycle_state, as_of)
        index = self._index(relationship_filter, EntityFilter.build(card_types))
        deadline = self._deadline(timeout, "critical path scan")
        detector = CriticalPathDetector(
            index,
            self.settings.critical_paths,
            impact=self._impact(index, relationship_filter, deadline),
            types=relationship_filter.types,
            deadline=deadline,
        )
        return detector.detect(limit)

    def relationship_types(self) -> List[RelationshipTypeSummary]:
        index = self._index(RelationshipFilter(), EntityFilter())
        counts: Dict[RelationshipType, int] = {rel_type: 0 for rel_type in RelationshipType}
        for rel in index.relationships:
            counts[rel.type] += 1
        return [
            RelationshipTypeSummary(
                relationship_type=rel_type.value,
                count=counts[rel_type],
                description=rel_type.description,
            )
            for rel_type in RelationshipType
        ]

    def graph_stats(
        self,
        *,
        types: Optional[Iterable[Any]] = None,
        lifecycle_state: Optional[str] = None,
        min_confidence: Optional[float] = None,
        card_types: Optional[Iterable[Any]] = None,
        timeout: Optional[float] = None,
    ) -> GraphStats:
        relationship_filter = RelationshipFilter.build(types, min_confidence, lifecycle_state)
        index = self._index(relationship_filter, EntityFilter.build(card_types))
        return index.stats(self._deadline(timeout, "graph stats"))

    # ------------------------------------------------------------------
    # Maintenance

    def invalidate_cache(self) -> None:
        logger.info("[GRAPH CACHE] Manual invalidation requested")
        self.cache.invalidate()

    def close(self) -> None:
        close_store = getattr(self.store, "close", None)
        if callable(close_store):
            logger.info("[GRAPH STORE] Closing %s store", self.backend)
            close_store()

    def health(self) -> Dict[str, Any]:
        store_available = True
        is_available = getattr(self.store, "is_available", None)
        if callable(is_available):
            store_available = bool(is_available())
        return {
            "status": "ok" if store_available else "degraded",
            "backend": self.backend,
            "storeAvailable": store_available,
            "storeVersion": self.store.version,
            "cache": self.cache.describe().to_dict(),
        }

    # ------------------------------------------------------------------
    # Helpers

    def _index(self, relationship_filter: RelationshipFilter, entity_filter: EntityFilter) -> GraphIndex:
        return self.cache.get_index(relationship_filter, entity_filter)

    def _impact(
        self,
        index: GraphIndex,
        relationship_filter: RelationshipFilter,
        deadline: Deadline,
    ) -> ImpactAnalyzer:
        return ImpactAnalyzer(
            index,
            self.settings.impact,
            types=relationship_filter.types,
            deadline=deadline,
        )

    def _deadline(self, timeout: Optional[float], label: str) -> Deadline:
        if timeout is None:
            return Deadline(self.settings.timeout_seconds, label=label)
        timeout = float(timeout)
        if timeout <= 0:
            raise InvalidArgumentError(f"timeout must be positive, got {timeout}")
        return Deadline(timeout, label=label)


__all__ = ["RelationshipAnalysisService"]
