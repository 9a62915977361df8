"""
Pytest configuration and fixtures for the relationship engine tests.

This file provides:
- Import path setup for the flat `archgraph` package and `api_server`
- Factories for in-memory stores and graph indexes
- A baseline engine configuration mirroring config.yaml
"""

import copy
import sys
from pathlib import Path
from typing import Dict

import pytest

# Add parent directory to path
BASE_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(BASE_DIR))

from archgraph.graph.index import GraphIndex
from archgraph.graph.schema import Entity, EntityType, Relationship, RelationshipType
from archgraph.graph.store import InMemoryGraphStore


BASE_CONFIG: Dict[str, object] = {
    "logging": {"level": "INFO", "file": "data/test_archgraph.log"},
    "store": {"backend": "yaml", "files": []},
    "graph": {"enabled": False},
    "engine": {
        "timeout_seconds": 5.0,
        "cache": {"enabled": True, "ttl_seconds": 300},
        "chains": {"default_depth": 3, "max_depth": 10},
        "impact": {
            "max_depth": None,
            "base_weight": 0.4,
            "structural_weight": 0.6,
            "upstream_weight": 1.0,
            "downstream_weight": 1.0,
            "saturation": 5.0,
            "decompose_threshold": 5,
        },
        "matrix": {"max_nodes": 20, "value_mode": "count"},
        "critical_paths": {
            "max_paths": 10,
            "min_path_length": 2,
            "max_path_length": 6,
            "significance_threshold": 20.0,
            "max_expansions": 20000,
        },
    },
}


@pytest.fixture
def base_config() -> Dict[str, object]:
    return copy.deepcopy(BASE_CONFIG)


def _edge_tuple(edge):
    source, target = edge[0], edge[1]
    rel_type = edge[2] if len(edge) > 2 else "depends_on"
    strength = edge[3] if len(edge) > 3 else 0.5
    return source, target, RelationshipType.parse(rel_type), strength


@pytest.fixture
def store_factory():
    """
    Build an InMemoryGraphStore from edge tuples.

    Edges are (source, target[, type[, strength]]). Cards are created for every
    endpoint plus any id in `isolated`; `criticality` maps ids to their base.
    """

    def _build(edges=(), *, isolated=(), criticality=None, names=None, types=None):
        criticality = criticality or {}
        names = names or {}
        types = types or {}
        parsed = [_edge_tuple(edge) for edge in edges]
        ids = []
        for source, target, _, _ in parsed:
            for entity_id in (source, target):
                if entity_id not in ids:
                    ids.append(entity_id)
        for entity_id in isolated:
            if entity_id not in ids:
                ids.append(entity_id)

        entities = [
            Entity(
                id=entity_id,
                name=names.get(entity_id, entity_id),
                type=EntityType.parse(types.get(entity_id, "Application")),
                criticality_base=float(criticality.get(entity_id, 0.0)),
            )
            for entity_id in ids
        ]
        relationships = [
            Relationship(
                id=f"{source}->{target}:{rel_type.value}",
                source_id=source,
                target_id=target,
                type=rel_type,
                strength=strength,
            )
            for source, target, rel_type, strength in parsed
        ]
        return InMemoryGraphStore(entities, relationships)

    return _build


@pytest.fixture
def index_factory(store_factory):
    def _build(edges=(), **kwargs):
        store = store_factory(edges, **kwargs)
        return GraphIndex(store.list_entities(), store.list_relationships())

    return _build


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
