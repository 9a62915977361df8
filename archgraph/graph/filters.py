"""
Query filters applied when reading a snapshot from the stores.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, FrozenSet, Iterable, Optional, Tuple

from ..errors import InvalidArgumentError
from .schema import (
    Entity,
    EntityType,
    LifecycleState,
    Relationship,
    RelationshipType,
    parse_date,
)


def _split_csv(values: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    # Query strings arrive either repeated (?types=a&types=b) or comma-joined.
    if values is None:
        return ()
    if isinstance(values, str):
        values = [values]
    parts = []
    for value in values:
        for chunk in str(value).split(","):
            chunk = chunk.strip()
            if chunk:
                parts.append(chunk)
    return tuple(parts)


@dataclass(frozen=True)
class RelationshipFilter:
    """Restricts which edges a snapshot admits."""

    types: Optional[FrozenSet[RelationshipType]] = None
    min_confidence: float = 0.0
    lifecycle_state: Optional[LifecycleState] = None
    as_of: Optional[date] = None

    @classmethod
    def build(
        cls,
        types: Optional[Iterable[Any]] = None,
        min_confidence: Optional[float] = None,
        lifecycle_state: Optional[str] = None,
        as_of: Optional[Any] = None,
    ) -> "RelationshipFilter":
        parsed_types = _split_csv(types)
        type_set = (
            frozenset(RelationshipType.parse(value) for value in parsed_types)
            if parsed_types
            else None
        )
        confidence = 0.0 if min_confidence is None else float(min_confidence)
        if not 0.0 <= confidence <= 1.0:
            raise InvalidArgumentError(f"min_confidence must be within 0-1, got {min_confidence}")
        state = None
        if lifecycle_state:
            try:
                state = LifecycleState(str(lifecycle_state).strip().lower())
            except ValueError:
                raise InvalidArgumentError(
                    f"lifecycle_state must be 'current' or 'target', got {lifecycle_state!r}"
                )
        return cls(
            types=type_set,
            min_confidence=confidence,
            lifecycle_state=state,
            as_of=parse_date(as_of),
        )

    def admits(self, relationship: Relationship, today: Optional[date] = None) -> bool:
        if self.types is not None and relationship.type not in self.types:
            return False
        if relationship.strength < self.min_confidence:
            return False
        if self.lifecycle_state is not None:
            as_of = self.as_of or today or date.today()
            if self.lifecycle_state is LifecycleState.CURRENT:
                return relationship.is_valid_on(as_of)
            return relationship.is_planned_after(as_of)
        return True

    def cache_key(self) -> str:
        types = ",".join(sorted(t.value for t in self.types)) if self.types else "*"
        state = self.lifecycle_state.value if self.lifecycle_state else "*"
        as_of = (self.as_of or date.today()).isoformat() if self.lifecycle_state else "*"
        return f"types={types}|min={self.min_confidence:.4f}|state={state}|as_of={as_of}"


@dataclass(frozen=True)
class EntityFilter:
    """Restricts which entities a snapshot admits."""

    types: Optional[FrozenSet[EntityType]] = None

    @classmethod
    def build(cls, types: Optional[Iterable[Any]] = None) -> "EntityFilter":
        parsed = _split_csv(types)
        if not parsed:
            return cls()
        return cls(types=frozenset(EntityType.parse(value) for value in parsed))

    def admits(self, entity: Entity) -> bool:
        return self.types is None or entity.type in self.types

    def cache_key(self) -> str:
        if not self.types:
            return "cards=*"
        return "cards=" + ",".join(sorted(t.value for t in self.types))


ALL_RELATIONSHIPS = RelationshipFilter()
ALL_ENTITIES = EntityFilter()
