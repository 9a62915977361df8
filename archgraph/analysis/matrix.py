"""
Pairwise relationship aggregation over a bounded entity set.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from ..config.models import MatrixSettings
from ..errors import InvalidArgumentError
from ..graph.deadline import Deadline
from ..graph.index import GraphIndex
from ..graph.schema import Entity, RelationshipType
from .models import MatrixCell, RelationshipMatrix

logger = logging.getLogger(__name__)

DEFAULT_MATRIX_SETTINGS = MatrixSettings(max_nodes=20, value_mode="count")
VALUE_MODES = ("count", "weighted")


def _dedupe(entity_ids: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for entity_id in entity_ids:
        if entity_id not in seen:
            seen.add(entity_id)
            ordered.append(entity_id)
    return ordered


class MatrixBuilder:
    """
    Builds a directed (source, target) table; (A, B) and (B, A) are separate cells.

    Only pairs joined by at least one edge produce a cell. Self pairs never do,
    since self-loops are rejected at the schema level.
    """

    def __init__(
        self,
        index: GraphIndex,
        settings: Optional[MatrixSettings] = None,
        *,
        types: Optional[FrozenSet[RelationshipType]] = None,
        deadline: Optional[Deadline] = None,
    ):
        self.index = index
        self.settings = settings or DEFAULT_MATRIX_SETTINGS
        self.types = types
        self.deadline = deadline or Deadline.unbounded("matrix build")

    def build(
        self,
        entity_ids: Optional[Iterable[str]] = None,
        value_mode: Optional[str] = None,
    ) -> RelationshipMatrix:
        mode = (value_mode or self.settings.value_mode).strip().lower()
        if mode not in VALUE_MODES:
            raise InvalidArgumentError(
                f"value_mode must be one of {', '.join(VALUE_MODES)}, got {value_mode!r}"
            )

        total_count = len(self.index)
        if entity_ids is None:
            selected = self._default_selection()
            requested_count = total_count
        else:
            requested = _dedupe(entity_ids)
            if len(requested) > self.settings.max_nodes:
                raise InvalidArgumentError(
                    f"Matrix accepts at most {self.settings.max_nodes} cards, got {len(requested)}"
                )
            selected = [self.index.entity(entity_id) for entity_id in requested]
            requested_count = len(requested)

        member_ids = {entity.id for entity in selected}
        cells = []
        for entity in selected:
            buckets: Dict[str, Dict[RelationshipType, Tuple[int, float]]] = defaultdict(dict)
            for rel in self.index.outgoing(entity.id, self.types):
                self.deadline.check()
                if rel.target_id not in member_ids:
                    continue
                count, weight = buckets[rel.target_id].get(rel.type, (0, 0.0))
                buckets[rel.target_id][rel.type] = (count + 1, weight + rel.strength)
            for target in selected:
                per_type = buckets.get(target.id)
                if per_type:
                    cells.append(self._cell(entity.id, target.id, per_type, mode))

        matrix = RelationshipMatrix(
            nodes=[{"id": entity.id, "name": entity.name} for entity in selected],
            cells=cells,
            requested_count=requested_count,
            total_count=total_count,
            value_mode=mode,
        )
        if matrix.truncated:
            logger.info(
                "[MATRIX] Returned %s of %s requested cards (cap %s)",
                matrix.returned_count,
                requested_count,
                self.settings.max_nodes,
            )
        logger.debug("[MATRIX] %s node(s), %s cell(s), mode=%s", len(selected), len(cells), mode)
        return matrix

    def _default_selection(self) -> List[Entity]:
        """Top-N cards by stored criticality, then name, then id."""
        ranked = sorted(
            self.index.entities(),
            key=lambda entity: (-entity.criticality_base, entity.name.lower(), entity.id),
        )
        return ranked[: self.settings.max_nodes]

    @staticmethod
    def _cell(
        source: str,
        target: str,
        per_type: Dict[RelationshipType, Tuple[int, float]],
        mode: str,
    ) -> MatrixCell:
        def aggregate(rel_type: RelationshipType) -> float:
            count, weight = per_type[rel_type]
            return float(count) if mode == "count" else weight

        # Highest aggregate wins; enum rank breaks ties.
        dominant = min(per_type, key=lambda rel_type: (-aggregate(rel_type), rel_type.rank))
        edge_count = sum(count for count, _ in per_type.values())
        value = float(edge_count) if mode == "count" else round(
            sum(weight for _, weight in per_type.values()), 4
        )
        return MatrixCell(
            source=source,
            target=target,
            value=value,
            relationship_type=dominant.value,
            edge_count=edge_count,
        )


__all__ = ["DEFAULT_MATRIX_SETTINGS", "MatrixBuilder", "VALUE_MODES"]
