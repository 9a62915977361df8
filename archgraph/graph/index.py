"""
In-memory adjacency index over one store snapshot.

Every lookup is keyed by entity id and, optionally, relationship type. The
index never assumes the graph is connected or acyclic.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from typing import Dict, Iterable, List, Optional, Set

from ..errors import EntityNotFoundError
from .deadline import Deadline
from .schema import Entity, GraphStats, Relationship, RelationshipType

logger = logging.getLogger(__name__)

TypeSet = Optional[Iterable[RelationshipType]]


def _edge_sort_key(relationship: Relationship):
    return (relationship.source_id, relationship.target_id, relationship.type.rank, relationship.id)


class GraphIndex:
    """Successor/predecessor lookup by entity id, bucketed by relationship type."""

    def __init__(
        self,
        entities: Iterable[Entity],
        relationships: Iterable[Relationship],
        *,
        version: int = 0,
        key: str = "",
    ):
        self.version = version
        self.key = key
        self._entities: Dict[str, Entity] = {}
        self._outgoing: Dict[str, Dict[RelationshipType, List[Relationship]]] = defaultdict(
            lambda: defaultdict(list)
        )
        self._incoming: Dict[str, Dict[RelationshipType, List[Relationship]]] = defaultdict(
            lambda: defaultdict(list)
        )
        self._relationships: List[Relationship] = []

        for entity in entities:
            self._entities[entity.id] = entity

        skipped = 0
        for relationship in sorted(relationships, key=_edge_sort_key):
            if relationship.source_id not in self._entities or relationship.target_id not in self._entities:
                skipped += 1
                continue
            self._outgoing[relationship.source_id][relationship.type].append(relationship)
            self._incoming[relationship.target_id][relationship.type].append(relationship)
            self._relationships.append(relationship)

        if skipped:
            logger.warning(
                "[GRAPH INDEX] Skipped %s relationship(s) with endpoints outside the snapshot",
                skipped,
            )
        logger.debug(
            "[GRAPH INDEX] Built index %s: %s nodes, %s edges",
            key or "<default>",
            len(self._entities),
            len(self._relationships),
        )

    # ------------------------------------------------------------------
    # Entity lookups

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def entity(self, entity_id: str) -> Entity:
        try:
            return self._entities[entity_id]
        except KeyError:
            raise EntityNotFoundError(entity_id)

    def entities(self) -> List[Entity]:
        return list(self._entities.values())

    def entity_ids(self) -> List[str]:
        return list(self._entities.keys())

    @property
    def relationships(self) -> List[Relationship]:
        return list(self._relationships)

    @property
    def edge_count(self) -> int:
        return len(self._relationships)

    # ------------------------------------------------------------------
    # Adjacency

    def successors(self, entity_id: str, types: TypeSet = None) -> Set[Relationship]:
        """Outgoing edges of `entity_id`, optionally restricted to `types`."""
        return set(self.outgoing(entity_id, types))

    def predecessors(self, entity_id: str, types: TypeSet = None) -> Set[Relationship]:
        """Incoming edges of `entity_id`, optionally restricted to `types`."""
        return set(self.incoming(entity_id, types))

    def outgoing(self, entity_id: str, types: TypeSet = None) -> List[Relationship]:
        """Deterministically ordered variant of `successors` used by the walks."""
        self.entity(entity_id)
        return self._collect(self._outgoing.get(entity_id), types)

    def incoming(self, entity_id: str, types: TypeSet = None) -> List[Relationship]:
        self.entity(entity_id)
        return self._collect(self._incoming.get(entity_id), types)

    @staticmethod
    def _collect(
        buckets: Optional[Dict[RelationshipType, List[Relationship]]],
        types: TypeSet,
    ) -> List[Relationship]:
        if not buckets:
            return []
        if types is None:
            selected = [rel for rel_type in RelationshipType for rel in buckets.get(rel_type, [])]
        else:
            wanted = set(types)
            selected = [
                rel
                for rel_type in RelationshipType
                if rel_type in wanted
                for rel in buckets.get(rel_type, [])
            ]
        selected.sort(key=_edge_sort_key)
        return selected

    # ------------------------------------------------------------------
    # Statistics

    def stats(self, deadline: Optional[Deadline] = None) -> GraphStats:
        deadline = deadline or Deadline.unbounded("graph stats")
        node_count = len(self._entities)
        edge_count = len(self._relationships)
        if not node_count:
            return GraphStats()

        return GraphStats(
            total_nodes=node_count,
            total_edges=edge_count,
            connected_components=self._count_weak_components(deadline),
            average_degree=round((2.0 * edge_count) / node_count, 3),
            max_depth=self._max_depth(deadline),
        )

    def _count_weak_components(self, deadline: Deadline) -> int:
        visited: Set[str] = set()
        components = 0
        for start in self._entities:
            if start in visited:
                continue
            components += 1
            visited.add(start)
            queue = deque([start])
            while queue:
                deadline.check()
                current = queue.popleft()
                neighbours = [rel.target_id for rel in self.outgoing(current)]
                neighbours.extend(rel.source_id for rel in self.incoming(current))
                for neighbour in neighbours:
                    if neighbour not in visited:
                        visited.add(neighbour)
                        queue.append(neighbour)
        return components

    def _max_depth(self, deadline: Deadline) -> int:
        """Largest shortest-hop distance from a source node; cycles are walked once."""
        sources = [entity_id for entity_id in self._entities if not self._incoming.get(entity_id)]
        covered: Set[str] = set()
        deepest = 0

        def walk(start: str) -> None:
            nonlocal deepest
            levels = {start: 0}
            queue = deque([start])
            while queue:
                deadline.check()
                current = queue.popleft()
                covered.add(current)
                for rel in self.outgoing(current):
                    if rel.target_id not in levels:
                        levels[rel.target_id] = levels[current] + 1
                        deepest = max(deepest, levels[rel.target_id])
                        queue.append(rel.target_id)

        for source in sources:
            walk(source)
        # Nodes only reachable inside a source-less cycle.
        for entity_id in self._entities:
            if entity_id not in covered:
                walk(entity_id)
        return deepest


__all__ = ["GraphIndex"]
