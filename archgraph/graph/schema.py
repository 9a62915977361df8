"""
Entity and relationship definitions shared across the graph module.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..errors import InvalidArgumentError


class EntityType(str, Enum):
    """Closed set of architecture card types."""

    BUSINESS_CAPABILITY = "BusinessCapability"
    OBJECTIVE = "Objective"
    APPLICATION = "Application"
    INTERFACE = "Interface"
    IT_COMPONENT = "ITComponent"
    PLATFORM = "Platform"
    ARCHITECTURE_PRINCIPLE = "ArchitecturePrinciple"
    TECHNOLOGY_STANDARD = "TechnologyStandard"
    ARCHITECTURE_POLICY = "ArchitecturePolicy"
    EXCEPTION = "Exception"
    INITIATIVE = "Initiative"
    RISK = "Risk"
    COMPLIANCE_REQUIREMENT = "ComplianceRequirement"
    COMPLIANCE_AUDIT = "ComplianceAudit"
    ARB_MEETING = "ARBMeeting"
    ARB_SUBMISSION = "ARBSubmission"

    @classmethod
    def parse(cls, value: Any) -> "EntityType":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip()
        for member in cls:
            if text == member.value or text.lower() == member.value.lower():
                return member
        raise InvalidArgumentError(f"Unknown entity type: {value!r}")


class RelationshipType(str, Enum):
    """
    Directed relationship kinds, in tie-break order.

    Declaration order is significant: when two types aggregate to the same
    weight, the earlier member wins.
    """

    DEPENDS_ON = "depends_on"
    IMPLEMENTS = "implements"
    SIMILAR_TO = "similar_to"
    CONFLICTS_WITH = "conflicts_with"

    @property
    def rank(self) -> int:
        return RELATIONSHIP_TYPE_INFO[self]["rank"]

    @property
    def description(self) -> str:
        return RELATIONSHIP_TYPE_INFO[self]["description"]

    @classmethod
    def parse(cls, value: Any) -> "RelationshipType":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        # The portal stores camelCase names ("dependsOn") for some rows.
        normalized = "".join(f"_{ch.lower()}" if ch.isupper() else ch for ch in str(value or "").strip())
        for candidate in (text, normalized.lstrip("_")):
            for member in cls:
                if candidate == member.value:
                    return member
        raise InvalidArgumentError(f"Unknown relationship type: {value!r}")


RELATIONSHIP_TYPE_INFO: Dict[RelationshipType, Dict[str, Any]] = {
    RelationshipType.DEPENDS_ON: {
        "rank": 0,
        "description": "Source requires the target to operate",
    },
    RelationshipType.IMPLEMENTS: {
        "rank": 1,
        "description": "Source realizes or implements the target",
    },
    RelationshipType.SIMILAR_TO: {
        "rank": 2,
        "description": "Source overlaps functionally with the target",
    },
    RelationshipType.CONFLICTS_WITH: {
        "rank": 3,
        "description": "Source is incompatible with the target",
    },
}

if set(RELATIONSHIP_TYPE_INFO) != set(RelationshipType):  # pragma: no cover - import-time guard
    raise RuntimeError("RELATIONSHIP_TYPE_INFO must describe every RelationshipType")


class LifecycleState(str, Enum):
    """Which validity window of a relationship a query looks at."""

    CURRENT = "current"
    TARGET = "target"


def parse_date(value: Any) -> Optional[date]:
    """Accept ISO dates, ISO datetimes, or date objects; empty means open-ended."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        if "T" in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return date.fromisoformat(text)
    except ValueError:
        raise InvalidArgumentError(f"Invalid ISO date: {value!r}")


def _first(payload: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


@dataclass(frozen=True)
class Entity:
    """A persisted architecture card. Never carries per-request derived state."""

    id: str
    name: str
    type: EntityType
    criticality_base: float = 0.0
    lifecycle_phase: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        if not self.id:
            raise InvalidArgumentError("Entity id must not be empty")
        if not 0.0 <= float(self.criticality_base) <= 100.0:
            raise InvalidArgumentError(
                f"Entity {self.id} criticality must be within 0-100, got {self.criticality_base}"
            )

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Entity":
        attributes = dict(payload.get("attributes") or {})
        criticality = _first(payload, "criticality_base", "criticalityBase", "criticality")
        if criticality is None:
            criticality = attributes.get("criticality", 0.0)
        entity_id = str(_first(payload, "id", default="") or "")
        return cls(
            id=entity_id,
            name=str(_first(payload, "name", default=entity_id)),
            type=EntityType.parse(_first(payload, "type", "card_type", "cardType")),
            criticality_base=float(criticality),
            lifecycle_phase=_first(payload, "lifecycle_phase", "lifecyclePhase"),
            attributes=attributes,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "criticalityBase": self.criticality_base,
            "lifecyclePhase": self.lifecycle_phase,
        }


@dataclass(frozen=True)
class Relationship:
    """A directed, typed, weighted edge between two entities."""

    id: str
    source_id: str
    target_id: str
    type: RelationshipType
    strength: float = 0.5
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    attributes: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        if not self.source_id or not self.target_id:
            raise InvalidArgumentError(f"Relationship {self.id} must have a source and a target")
        if self.source_id == self.target_id:
            raise InvalidArgumentError(f"Relationship {self.id} is a self-loop on {self.source_id}")
        if not 0.0 <= float(self.strength) <= 1.0:
            raise InvalidArgumentError(
                f"Relationship {self.id} strength must be within 0-1, got {self.strength}"
            )

    def is_valid_on(self, as_of: date) -> bool:
        if self.valid_from is not None and self.valid_from > as_of:
            return False
        if self.valid_to is not None and as_of >= self.valid_to:
            return False
        return True

    def is_planned_after(self, as_of: date) -> bool:
        return self.valid_from is not None and self.valid_from > as_of

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Relationship":
        source = _first(payload, "source_id", "sourceId", "source", "from_card_id", "fromCardId")
        target = _first(payload, "target_id", "targetId", "target", "to_card_id", "toCardId")
        rel_type = RelationshipType.parse(
            _first(payload, "type", "relationship_type", "relationshipType")
        )
        strength = _first(payload, "strength", "confidence", default=0.5)
        rel_id = _first(payload, "id") or f"{source}->{target}:{rel_type.value}"
        return cls(
            id=str(rel_id),
            source_id=str(source or ""),
            target_id=str(target or ""),
            type=rel_type,
            strength=float(strength),
            valid_from=parse_date(_first(payload, "valid_from", "validFrom")),
            valid_to=parse_date(_first(payload, "valid_to", "validTo")),
            attributes=dict(payload.get("attributes") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source_id,
            "target": self.target_id,
            "type": self.type.value,
            "strength": self.strength,
            "validFrom": self.valid_from.isoformat() if self.valid_from else None,
            "validTo": self.valid_to.isoformat() if self.valid_to else None,
        }


@dataclass
class GraphStats:
    """Structural summary of one index snapshot."""

    total_nodes: int = 0
    total_edges: int = 0
    connected_components: int = 0
    average_degree: float = 0.0
    max_depth: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalNodes": self.total_nodes,
            "totalEdges": self.total_edges,
            "connectedComponents": self.connected_components,
            "averageDegree": self.average_degree,
            "maxDepth": self.max_depth,
        }
