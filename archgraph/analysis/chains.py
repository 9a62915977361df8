"""
Bounded-depth chain traversal used by the relationship visualizer.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Dict, FrozenSet, List, Optional

from ..config.models import ChainSettings
from ..errors import InvalidArgumentError
from ..graph.deadline import Deadline
from ..graph.index import GraphIndex
from ..graph.schema import RelationshipType
from .impact_analyzer import ImpactAnalyzer
from .models import DependencyChain, TraversalLink, TraversalNode

logger = logging.getLogger(__name__)

DEFAULT_CHAIN_SETTINGS = ChainSettings(default_depth=3, max_depth=10)


class ChainTraversal:
    """
    Breadth-first walk along outgoing edges (source -> target).

    A node's level is the hop count at which it was first reached, so the
    shortest path always wins over longer alternates and cycles.
    """

    def __init__(
        self,
        index: GraphIndex,
        settings: Optional[ChainSettings] = None,
        *,
        impact: Optional[ImpactAnalyzer] = None,
        types: Optional[FrozenSet[RelationshipType]] = None,
        deadline: Optional[Deadline] = None,
    ):
        self.index = index
        self.settings = settings or DEFAULT_CHAIN_SETTINGS
        self.types = types
        self.deadline = deadline or Deadline.unbounded("chain traversal")
        self.impact = impact or ImpactAnalyzer(index, types=types, deadline=self.deadline)

    def traverse(self, root_id: str, depth: Optional[int] = None) -> DependencyChain:
        depth = self.settings.default_depth if depth is None else int(depth)
        if depth > self.settings.max_depth:
            raise InvalidArgumentError(
                f"depth must be at most {self.settings.max_depth}, got {depth}"
            )

        self.index.entity(root_id)
        levels = self._walk(root_id, max(depth, 0))

        nodes = [self._node(entity_id, level) for entity_id, level in levels.items()]
        links: List[TraversalLink] = []
        for entity_id, level in levels.items():
            if level >= depth:
                continue
            for rel in self.index.outgoing(entity_id, self.types):
                if rel.target_id not in levels:
                    continue
                links.append(
                    TraversalLink(
                        relationship_id=rel.id,
                        source=rel.source_id,
                        target=rel.target_id,
                        relationship_type=rel.type.value,
                        strength=rel.strength,
                    )
                )

        logger.info(
            "[CHAINS] %s depth=%s -> %s node(s), %s link(s)",
            root_id,
            depth,
            len(nodes),
            len(links),
        )
        return DependencyChain(root_id=root_id, depth=depth, nodes=nodes, links=links)

    def _walk(self, root_id: str, depth: int) -> Dict[str, int]:
        # Insertion order doubles as BFS discovery order.
        levels: Dict[str, int] = {root_id: 0}
        queue = deque([root_id])
        while queue:
            self.deadline.check()
            current = queue.popleft()
            level = levels[current]
            if level >= depth:
                continue
            for rel in self.index.outgoing(current, self.types):
                if rel.target_id in levels:
                    continue
                levels[rel.target_id] = level + 1
                queue.append(rel.target_id)
        return levels

    def _node(self, entity_id: str, level: int) -> TraversalNode:
        entity = self.index.entity(entity_id)
        return TraversalNode(
            entity_id=entity.id,
            name=entity.name,
            entity_type=entity.type.value,
            level=level,
            criticality=self.impact.criticality(entity_id),
            lifecycle_phase=entity.lifecycle_phase,
        )


__all__ = ["ChainTraversal", "DEFAULT_CHAIN_SETTINGS"]
