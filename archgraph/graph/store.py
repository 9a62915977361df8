"""
Entity and relationship stores consumed by the graph engine.

The engine only ever reads from a store. `InMemoryGraphStore` also carries the
create/update/delete operations the CRUD layer performs, and notifies
subscribers after every relationship mutation so cached indexes can be dropped.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import yaml

from ..errors import EntityNotFoundError, InvalidArgumentError, StoreUnavailableError
from .filters import EntityFilter, RelationshipFilter
from .schema import Entity, Relationship, parse_date

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str, Optional[Relationship]], None]


class GraphStore:
    """Read contract shared by every store backend."""

    backend = "abstract"

    def __init__(self) -> None:
        self._listeners: List[ChangeListener] = []
        self._listener_lock = threading.Lock()

    def get_entity(self, entity_id: str) -> Optional[Entity]:
        raise NotImplementedError

    def list_entities(self, entity_filter: Optional[EntityFilter] = None) -> List[Entity]:
        raise NotImplementedError

    def list_relationships(
        self, relationship_filter: Optional[RelationshipFilter] = None
    ) -> List[Relationship]:
        raise NotImplementedError

    @property
    def version(self) -> int:
        """Monotonic snapshot counter; backends without change tracking report 0."""
        return 0

    def subscribe(self, listener: ChangeListener) -> None:
        with self._listener_lock:
            self._listeners.append(listener)

    def _notify(self, event: str, relationship: Optional[Relationship]) -> None:
        with self._listener_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, relationship)
            except Exception as exc:
                logger.error("[GRAPH STORE] Change listener failed for %s: %s", event, exc)


class InMemoryGraphStore(GraphStore):
    """Thread-safe store holding entities and relationships in memory."""

    backend = "memory"

    def __init__(
        self,
        entities: Optional[Iterable[Entity]] = None,
        relationships: Optional[Iterable[Relationship]] = None,
    ) -> None:
        super().__init__()
        self._lock = threading.RLock()
        self._entities: Dict[str, Entity] = {}
        self._relationships: Dict[str, Relationship] = {}
        self._version = 0
        for entity in entities or []:
            self._entities[entity.id] = entity
        for relationship in relationships or []:
            self._require_endpoints(relationship)
            self._relationships[relationship.id] = relationship

    # ------------------------------------------------------------------
    # Reads

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def get_entity(self, entity_id: str) -> Optional[Entity]:
        with self._lock:
            return self._entities.get(entity_id)

    def list_entities(self, entity_filter: Optional[EntityFilter] = None) -> List[Entity]:
        with self._lock:
            entities = list(self._entities.values())
        if entity_filter is None:
            return entities
        return [entity for entity in entities if entity_filter.admits(entity)]

    def list_relationships(
        self, relationship_filter: Optional[RelationshipFilter] = None
    ) -> List[Relationship]:
        with self._lock:
            relationships = list(self._relationships.values())
        if relationship_filter is None:
            return relationships
        return [rel for rel in relationships if relationship_filter.admits(rel)]

    # ------------------------------------------------------------------
    # Writes (CRUD layer)

    def upsert_entity(self, entity: Entity) -> Entity:
        with self._lock:
            self._entities[entity.id] = entity
            self._version += 1
        self._notify("entity.upserted", None)
        return entity

    def delete_entity(self, entity_id: str) -> None:
        with self._lock:
            if entity_id not in self._entities:
                raise EntityNotFoundError(entity_id)
            del self._entities[entity_id]
            dropped = [
                rel_id
                for rel_id, rel in self._relationships.items()
                if entity_id in (rel.source_id, rel.target_id)
            ]
            for rel_id in dropped:
                del self._relationships[rel_id]
            self._version += 1
        if dropped:
            logger.info(
                "[GRAPH STORE] Removed %s relationship(s) attached to %s", len(dropped), entity_id
            )
        self._notify("entity.deleted", None)

    def add_relationship(self, relationship: Relationship) -> Relationship:
        with self._lock:
            self._require_endpoints(relationship)
            self._relationships[relationship.id] = relationship
            self._version += 1
        self._notify("relationship.created", relationship)
        return relationship

    def update_relationship(
        self,
        relationship_id: str,
        *,
        strength: Optional[float] = None,
        valid_from: Optional[Any] = None,
        valid_to: Optional[Any] = None,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> Relationship:
        with self._lock:
            existing = self._relationships.get(relationship_id)
            if existing is None:
                raise EntityNotFoundError(relationship_id, f"Relationship not found: {relationship_id}")
            changes: Dict[str, Any] = {}
            if strength is not None:
                changes["strength"] = float(strength)
            if valid_from is not None:
                changes["valid_from"] = parse_date(valid_from)
            if valid_to is not None:
                changes["valid_to"] = parse_date(valid_to)
            if attributes is not None:
                changes["attributes"] = dict(attributes)
            updated = replace(existing, **changes)
            self._relationships[relationship_id] = updated
            self._version += 1
        self._notify("relationship.updated", updated)
        return updated

    def delete_relationship(self, relationship_id: str) -> None:
        with self._lock:
            removed = self._relationships.pop(relationship_id, None)
            if removed is None:
                raise EntityNotFoundError(relationship_id, f"Relationship not found: {relationship_id}")
            self._version += 1
        self._notify("relationship.deleted", removed)

    def _require_endpoints(self, relationship: Relationship) -> None:
        for endpoint in (relationship.source_id, relationship.target_id):
            if endpoint not in self._entities:
                raise EntityNotFoundError(
                    endpoint,
                    f"Relationship {relationship.id} references unknown entity {endpoint}",
                )


class YamlGraphStoreLoader:
    """Loads entity/relationship fixtures from YAML files into an in-memory store."""

    def __init__(self, files: Iterable[str], *, base_dir: Optional[Path] = None):
        self.files: List[Path] = []
        for path in files:
            path = Path(path)
            if base_dir is not None and not path.is_absolute():
                path = Path(base_dir) / path
            self.files.append(path)

    def load(self, store: Optional[InMemoryGraphStore] = None) -> InMemoryGraphStore:
        store = store or InMemoryGraphStore()
        pending: List[Dict[str, Any]] = []
        for path in self.files:
            pending.extend(self._ingest_file(path, store))
        for entry in pending:
            self._ingest_relationship(entry, store)
        logger.info(
            "[GRAPH STORE] Loaded %s entities and %s relationships from %s file(s)",
            len(store.list_entities()),
            len(store.list_relationships()),
            len(self.files),
        )
        return store

    # ------------------------------------------------------------------
    # Ingestion helpers

    def _ingest_file(self, path: Path, store: InMemoryGraphStore) -> List[Dict[str, Any]]:
        if not path.exists():
            logger.warning("[GRAPH STORE] File not found: %s", path)
            return []
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as exc:
            logger.error("[GRAPH STORE] Failed to parse %s: %s", path, exc)
            raise StoreUnavailableError(f"Could not parse graph data file {path}: {exc}")

        for entry in data.get("entities", []) or []:
            self._ingest_entity(entry, store)

        # Relationships are resolved after every file is read so edges may
        # reference entities declared in a later file.
        return list(data.get("relationships", []) or [])

    def _ingest_entity(self, entry: Dict[str, Any], store: InMemoryGraphStore) -> None:
        if not isinstance(entry, dict) or not entry.get("id"):
            logger.warning("[GRAPH STORE] Skipping entity entry without id: %s", entry)
            return
        try:
            entity = Entity.from_dict(entry)
        except (InvalidArgumentError, TypeError, ValueError) as exc:
            logger.warning("[GRAPH STORE] Skipping entity %s: %s", entry.get("id"), exc)
            return
        store.upsert_entity(entity)

    def _ingest_relationship(self, entry: Dict[str, Any], store: InMemoryGraphStore) -> None:
        if not isinstance(entry, dict):
            logger.warning("[GRAPH STORE] Skipping malformed relationship entry: %s", entry)
            return
        try:
            relationship = Relationship.from_dict(entry)
            store.add_relationship(relationship)
        except EntityNotFoundError as exc:
            logger.warning("[GRAPH STORE] Skipping dangling relationship: %s", exc)
        except (InvalidArgumentError, TypeError, ValueError) as exc:
            logger.warning("[GRAPH STORE] Skipping relationship %s: %s", entry.get("id"), exc)


def build_graph_store(context, base_dir: Optional[Path] = None) -> GraphStore:
    """
    Construct the store backend selected by `store.backend`.

    Args:
        context: ConfigContext carrying the validated accessor.
        base_dir: Directory relative data file paths resolve against.
    """
    settings = context.store
    if settings.backend == "neo4j":
        from .neo4j_store import Neo4jGraphStore

        return Neo4jGraphStore(context.neo4j)
    return YamlGraphStoreLoader(settings.files, base_dir=base_dir).load()


__all__ = [
    "ChangeListener",
    "GraphStore",
    "InMemoryGraphStore",
    "YamlGraphStoreLoader",
    "build_graph_store",
]
