"""
Graph module - card/relationship schema, stores, index and cache.
"""

from .schema import (
    Entity,
    EntityType,
    GraphStats,
    LifecycleState,
    Relationship,
    RelationshipType,
)
from .filters import EntityFilter, RelationshipFilter
from .store import GraphStore, InMemoryGraphStore, YamlGraphStoreLoader, build_graph_store
from .index import GraphIndex
from .cache import CacheStats, GraphIndexCache
from .deadline import Deadline

__all__ = [
    "CacheStats",
    "Deadline",
    "Entity",
    "EntityFilter",
    "EntityType",
    "GraphIndex",
    "GraphIndexCache",
    "GraphStats",
    "GraphStore",
    "InMemoryGraphStore",
    "LifecycleState",
    "Relationship",
    "RelationshipFilter",
    "RelationshipType",
    "YamlGraphStoreLoader",
    "build_graph_store",
]
