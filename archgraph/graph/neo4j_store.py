"""
Neo4jGraphStore - read-only Neo4j client feeding the relationship engine.

Cards live as `(:Card)` nodes and relationships as `[:RELATED_TO]` edges
carrying `relationship_type`, `confidence`, `valid_from` and `valid_to`.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

from neo4j import GraphDatabase
from neo4j.exceptions import Neo4jError, ServiceUnavailable

from ..config.models import Neo4jSettings
from ..errors import InvalidArgumentError, StoreUnavailableError
from .filters import EntityFilter, RelationshipFilter
from .schema import Entity, Relationship
from .store import GraphStore

logger = logging.getLogger(__name__)

ENTITY_QUERY = """
MATCH (c:Card)
RETURN c.id AS id,
       c.name AS name,
       c.type AS type,
       coalesce(c.criticality, 0.0) AS criticality,
       c.lifecycle_phase AS lifecycle_phase
"""

SINGLE_ENTITY_QUERY = """
MATCH (c:Card {id: $entity_id})
RETURN c.id AS id,
       c.name AS name,
       c.type AS type,
       coalesce(c.criticality, 0.0) AS criticality,
       c.lifecycle_phase AS lifecycle_phase
"""

RELATIONSHIP_QUERY = """
MATCH (a:Card)-[r:RELATED_TO]->(b:Card)
RETURN coalesce(r.id, elementId(r)) AS id,
       a.id AS source,
       b.id AS target,
       r.relationship_type AS type,
       coalesce(r.confidence, 0.5) AS strength,
       r.valid_from AS valid_from,
       r.valid_to AS valid_to
"""


class Neo4jGraphStore(GraphStore):
    """Wrapper around the Neo4j Python driver exposing the store read contract."""

    backend = "neo4j"

    def __init__(self, settings: Neo4jSettings, *, driver: Any = None):
        super().__init__()
        self.enabled: bool = settings.enabled
        self.uri: Optional[str] = os.getenv("NEO4J_URI") or settings.uri
        self.username: Optional[str] = (
            os.getenv("NEO4J_USER") or os.getenv("NEO4J_USERNAME") or settings.username
        )
        self.password: Optional[str] = os.getenv("NEO4J_PASSWORD") or settings.password
        self.database: Optional[str] = os.getenv("NEO4J_DATABASE") or settings.database
        env_enabled = os.getenv("NEO4J_ENABLED")
        if env_enabled is not None:
            self.enabled = env_enabled.lower() == "true"

        self._driver = driver
        self._last_query: Optional[Dict[str, Any]] = None
        if self._driver is None and self.is_available():
            self._connect()

    def _connect(self) -> None:
        try:
            self._driver = GraphDatabase.driver(
                self.uri,
                auth=(self.username or "", self.password or ""),
            )
            logger.info("[GRAPH STORE] Connected to Neo4j at %s", self.uri)
        except (Neo4jError, ServiceUnavailable, ValueError) as exc:
            logger.error("[GRAPH STORE] Failed to connect to Neo4j: %s", exc)
            self._driver = None

    def close(self) -> None:
        if self._driver:
            try:
                self._driver.close()
            finally:
                self._driver = None

    def is_available(self) -> bool:
        return bool(
            self.enabled
            and self.uri
            and self.username is not None
            and self.password is not None
        )

    # ------------------------------------------------------------------
    # Store contract

    def get_entity(self, entity_id: str) -> Optional[Entity]:
        rows = self.run_query(SINGLE_ENTITY_QUERY, {"entity_id": entity_id})
        entities = self._rows_to_entities(rows)
        return entities[0] if entities else None

    def list_entities(self, entity_filter: Optional[EntityFilter] = None) -> List[Entity]:
        entities = self._rows_to_entities(self.run_query(ENTITY_QUERY))
        if entity_filter is None:
            return entities
        return [entity for entity in entities if entity_filter.admits(entity)]

    def list_relationships(
        self, relationship_filter: Optional[RelationshipFilter] = None
    ) -> List[Relationship]:
        relationships: List[Relationship] = []
        for row in self.run_query(RELATIONSHIP_QUERY):
            try:
                relationship = Relationship.from_dict(row)
            except (InvalidArgumentError, TypeError, ValueError) as exc:
                logger.warning("[GRAPH STORE] Skipping relationship %s: %s", row.get("id"), exc)
                continue
            if relationship_filter is None or relationship_filter.admits(relationship):
                relationships.append(relationship)
        return relationships

    # ------------------------------------------------------------------
    # Internal helpers

    @staticmethod
    def _rows_to_entities(rows: List[Dict[str, Any]]) -> List[Entity]:
        entities: List[Entity] = []
        for row in rows:
            try:
                entities.append(Entity.from_dict(row))
            except (InvalidArgumentError, TypeError, ValueError) as exc:
                logger.warning("[GRAPH STORE] Skipping card %s: %s", row.get("id"), exc)
        return entities

    def run_query(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        if not self._driver:
            self._record_query_metadata(query, params, error="driver_unavailable")
            raise StoreUnavailableError("Neo4j store is not connected")
        try:
            with self._driver.session(database=self.database or None) as session:
                result = session.run(query, params or {})
                rows = []
                for record in result:
                    row = {key: record[key] for key in record.keys()}
                    rows.append(row)
                self._record_query_metadata(query, params, row_count=len(rows))
                return rows
        except (ServiceUnavailable, Neo4jError) as exc:
            logger.error("[GRAPH STORE] Query failed: %s", exc)
            self._record_query_metadata(query, params, error=str(exc))
            raise StoreUnavailableError(f"Neo4j query failed: {exc}")

    def last_query_metadata(self) -> Optional[Dict[str, Any]]:
        if not self._last_query:
            return None
        return dict(self._last_query)

    def _record_query_metadata(
        self,
        query: str,
        params: Optional[Dict[str, Any]],
        *,
        row_count: Optional[int] = None,
        error: Optional[str] = None,
    ) -> None:
        self._last_query = {
            "cypher": query.strip() if isinstance(query, str) else query,
            "params": params or {},
            "database": self.database or None,
            "row_count": row_count,
            "error": error,
        }
