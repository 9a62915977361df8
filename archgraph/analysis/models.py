"""
Dataclasses and enums shared across the relationship analysis pipeline.

Every record here is derived per request and never written back to a store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Lower bounds, highest first. Anything below the last bound is LOW.
RISK_BANDS = (
    (80.0, RiskLevel.CRITICAL),
    (60.0, RiskLevel.HIGH),
    (40.0, RiskLevel.MEDIUM),
)


def classify_risk(criticality: float) -> RiskLevel:
    for lower_bound, level in RISK_BANDS:
        if criticality >= lower_bound:
            return level
    return RiskLevel.LOW


@dataclass
class TraversalNode:
    entity_id: str
    name: str
    entity_type: str
    level: int
    criticality: float
    lifecycle_phase: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.entity_id,
            "name": self.name,
            "type": self.entity_type,
            "level": self.level,
            "criticality": self.criticality,
            "lifecyclePhase": self.lifecycle_phase,
        }


@dataclass
class TraversalLink:
    relationship_id: str
    source: str
    target: str
    relationship_type: str
    strength: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.relationship_id,
            "source": self.source,
            "target": self.target,
            "type": self.relationship_type,
            "strength": self.strength,
        }


@dataclass
class DependencyChain:
    root_id: str
    depth: int
    nodes: List[TraversalNode] = field(default_factory=list)
    links: List[TraversalLink] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rootId": self.root_id,
            "nodes": [node.to_dict() for node in self.nodes],
            "links": [link.to_dict() for link in self.links],
            "depth": self.depth,
        }


@dataclass
class ImpactResult:
    entity_id: str
    upstream: List[str] = field(default_factory=list)
    downstream: List[str] = field(default_factory=list)
    criticality: float = 0.0
    risk_level: RiskLevel = RiskLevel.LOW
    fan_in: int = 0
    fan_out: int = 0
    max_strength: float = 0.0
    safe_to_refactor: bool = True
    consider_decomposing: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entityId": self.entity_id,
            "upstream": list(self.upstream),
            "downstream": list(self.downstream),
            "criticality": self.criticality,
            "riskLevel": self.risk_level.value,
            "fanIn": self.fan_in,
            "fanOut": self.fan_out,
            "maxStrength": self.max_strength,
            "safeToRefactor": self.safe_to_refactor,
            "considerDecomposing": self.consider_decomposing,
        }


@dataclass
class MatrixCell:
    source: str
    target: str
    value: float
    relationship_type: str
    edge_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "value": self.value,
            "type": self.relationship_type,
            "count": self.edge_count,
        }


@dataclass
class RelationshipMatrix:
    nodes: List[Dict[str, str]] = field(default_factory=list)
    cells: List[MatrixCell] = field(default_factory=list)
    requested_count: int = 0
    total_count: int = 0
    value_mode: str = "count"

    @property
    def returned_count(self) -> int:
        return len(self.nodes)

    @property
    def truncated(self) -> bool:
        return self.returned_count < self.requested_count

    def cell(self, source: str, target: str) -> Optional[MatrixCell]:
        for cell in self.cells:
            if cell.source == source and cell.target == target:
                return cell
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": list(self.nodes),
            "cells": [cell.to_dict() for cell in self.cells],
            "requestedCount": self.requested_count,
            "totalCount": self.total_count,
            "returnedCount": self.returned_count,
            "truncated": self.truncated,
            "valueMode": self.value_mode,
        }


@dataclass
class CriticalPath:
    path_id: str
    cards: List[str]
    risk_score: float
    mean_criticality: float = 0.0
    min_strength: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.path_id,
            "cards": list(self.cards),
            "riskScore": self.risk_score,
            "meanCriticality": self.mean_criticality,
            "minStrength": self.min_strength,
        }


@dataclass
class RelationshipTypeSummary:
    relationship_type: str
    count: int
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.relationship_type,
            "count": self.count,
            "description": self.description,
        }
