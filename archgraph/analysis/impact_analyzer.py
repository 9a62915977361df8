"""
Transitive impact analysis with criticality scoring and risk banding.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple

from ..config.models import ImpactSettings
from ..graph.deadline import Deadline
from ..graph.index import GraphIndex
from ..graph.schema import RelationshipType
from .models import ImpactResult, classify_risk

logger = logging.getLogger(__name__)

DEFAULT_IMPACT_SETTINGS = ImpactSettings(
    max_depth=None,
    base_weight=0.4,
    structural_weight=0.6,
    upstream_weight=1.0,
    downstream_weight=1.0,
    saturation=5.0,
    decompose_threshold=5,
)

UPSTREAM = "upstream"
DOWNSTREAM = "downstream"


@dataclass(frozen=True)
class ReachInfo:
    entity_ids: Tuple[str, ...]
    max_strength: float


class ImpactAnalyzer:
    """
    Computes upstream/downstream reach and a 0-100 criticality score.

    criticality = base_weight * criticality_base
                + structural_weight * reach_score * (0.5 + 0.5 * max_strength)

    where reach_score = 100 * r / (r + saturation) and
    r = upstream_weight * |upstream| + downstream_weight * |downstream|.
    Every term is non-decreasing in both reach counts, so an extra dependent
    never lowers the score.
    """

    def __init__(
        self,
        index: GraphIndex,
        settings: Optional[ImpactSettings] = None,
        *,
        types: Optional[FrozenSet[RelationshipType]] = None,
        deadline: Optional[Deadline] = None,
    ):
        self.index = index
        self.settings = settings or DEFAULT_IMPACT_SETTINGS
        self.types = types
        self.deadline = deadline or Deadline.unbounded("impact analysis")
        self._results: Dict[str, ImpactResult] = {}

    def analyze(self, entity_id: str) -> ImpactResult:
        cached = self._results.get(entity_id)
        if cached is not None:
            return cached

        entity = self.index.entity(entity_id)
        upstream = self._reach(entity_id, UPSTREAM)
        downstream = self._reach(entity_id, DOWNSTREAM)
        max_strength = max(upstream.max_strength, downstream.max_strength)
        criticality = self.score(
            entity.criticality_base,
            len(upstream.entity_ids),
            len(downstream.entity_ids),
            max_strength,
        )

        fan_in = len({rel.source_id for rel in self.index.incoming(entity_id, self.types)})
        fan_out = len({rel.target_id for rel in self.index.outgoing(entity_id, self.types)})

        result = ImpactResult(
            entity_id=entity_id,
            upstream=sorted(upstream.entity_ids),
            downstream=sorted(downstream.entity_ids),
            criticality=criticality,
            risk_level=classify_risk(criticality),
            fan_in=fan_in,
            fan_out=fan_out,
            max_strength=round(max_strength, 4),
            safe_to_refactor=not upstream.entity_ids,
            consider_decomposing=len(downstream.entity_ids) > self.settings.decompose_threshold,
        )
        self._results[entity_id] = result
        logger.debug(
            "[IMPACT] %s: %s upstream, %s downstream, criticality=%s (%s)",
            entity_id,
            len(result.upstream),
            len(result.downstream),
            result.criticality,
            result.risk_level.value,
        )
        return result

    def criticality(self, entity_id: str) -> float:
        return self.analyze(entity_id).criticality

    def score(
        self,
        criticality_base: float,
        upstream_count: int,
        downstream_count: int,
        max_strength: float,
    ) -> float:
        settings = self.settings
        reach = settings.upstream_weight * upstream_count + settings.downstream_weight * downstream_count
        reach_score = 100.0 * reach / (reach + settings.saturation) if reach > 0 else 0.0
        strength_factor = 0.5 + 0.5 * max(0.0, min(1.0, max_strength))
        value = (
            settings.base_weight * float(criticality_base)
            + settings.structural_weight * reach_score * strength_factor
        )
        return round(max(0.0, min(100.0, value)), 2)

    def _reach(self, entity_id: str, direction: str) -> ReachInfo:
        """
        Breadth-first walk in one direction; each entity is counted once no
        matter how many paths or cycles lead back to it.
        """
        max_depth = self.settings.max_depth
        visited = {entity_id}
        order: List[str] = []
        max_strength = 0.0
        queue = deque([(entity_id, 0)])

        while queue:
            self.deadline.check()
            current, depth = queue.popleft()
            if max_depth is not None and depth >= max_depth:
                continue
            if direction == UPSTREAM:
                edges = [(rel.source_id, rel.strength) for rel in self.index.incoming(current, self.types)]
            else:
                edges = [(rel.target_id, rel.strength) for rel in self.index.outgoing(current, self.types)]
            for neighbour, strength in edges:
                max_strength = max(max_strength, strength)
                if neighbour in visited:
                    continue
                visited.add(neighbour)
                order.append(neighbour)
                queue.append((neighbour, depth + 1))

        return ReachInfo(entity_ids=tuple(order), max_strength=max_strength)


__all__ = ["DEFAULT_IMPACT_SETTINGS", "ImpactAnalyzer", "ReachInfo"]
