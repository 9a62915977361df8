"""
FastAPI server that exposes the relationship graph engine to the portal UI.
All routes are read-only queries except the manual cache invalidation hook.
"""
from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

# Load .env file explicitly before importing anything that needs config
project_root = Path(__file__).resolve().parent
env_path = project_root / ".env"
if env_path.exists():
    load_dotenv(env_path, override=True)
else:
    load_dotenv(override=False)

# Ensure project root is in Python path for absolute imports
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from archgraph import __version__
from archgraph.analysis import RelationshipAnalysisService
from archgraph.config.context import get_config_context
from archgraph.errors import GraphEngineError
from archgraph.utils import setup_logging

CONFIG_PATH = Path(os.getenv("ARCHGRAPH_CONFIG", str(project_root / "config.yaml")))

config_context = get_config_context(CONFIG_PATH)
setup_logging(config_context.data)
logger = logging.getLogger(__name__)

analysis_service = RelationshipAnalysisService.from_config(config_context, base_dir=project_root)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    analysis_service.close()


app = FastAPI(title="Archgraph Relationship API", version=__version__, lifespan=lifespan)

_STATUS_BY_CODE = {
    "not_found": 404,
    "invalid_argument": 400,
    "unavailable": 503,
    "timeout": 504,
}


def _raise_http(exc: GraphEngineError) -> NoReturn:
    status_code = _STATUS_BY_CODE.get(exc.code, 500)
    if status_code >= 500:
        logger.warning("[API] %s (%s): %s", exc.code, status_code, exc.message)
    raise HTTPException(status_code=status_code, detail=exc.to_dict()) from exc


class RelationshipTypeInfo(BaseModel):
    type: str
    count: int
    description: str


class CriticalPathPayload(BaseModel):
    id: str
    cards: List[str]
    riskScore: float
    meanCriticality: float = 0.0
    minStrength: float = 0.0


class CacheInvalidationResponse(BaseModel):
    status: str
    cache: Dict[str, Any]


@app.get("/health")
def health_check():
    """Store and cache status for the launcher and load balancer."""
    return analysis_service.health()


@app.get("/api/v1/relationships/types", response_model=List[RelationshipTypeInfo])
def list_relationship_types():
    try:
        summaries = analysis_service.relationship_types()
    except GraphEngineError as exc:
        _raise_http(exc)
    return [summary.to_dict() for summary in summaries]


@app.get("/api/v1/relationships/matrix")
def get_relationship_matrix(
    card_ids: Optional[List[str]] = Query(None, description="Explicit card ids (repeated or comma separated)"),
    value_mode: Optional[str] = Query(None, description="count or weighted"),
    types: Optional[List[str]] = Query(None),
    lifecycle_state: Optional[str] = Query(None),
    min_confidence: Optional[float] = Query(None),
    card_types: Optional[List[str]] = Query(None),
    timeout: Optional[float] = Query(None),
):
    ids = None
    if card_ids:
        ids = [chunk.strip() for value in card_ids for chunk in value.split(",") if chunk.strip()]
    try:
        matrix = analysis_service.matrix(
            ids,
            value_mode,
            types=types,
            lifecycle_state=lifecycle_state,
            min_confidence=min_confidence,
            card_types=card_types,
            timeout=timeout,
        )
    except GraphEngineError as exc:
        _raise_http(exc)
    return matrix.to_dict()


@app.get("/api/v1/relationships/critical-paths", response_model=List[CriticalPathPayload])
def get_critical_paths(
    limit: Optional[int] = Query(None, description="Number of paths to return"),
    types: Optional[List[str]] = Query(None),
    lifecycle_state: Optional[str] = Query(None),
    min_confidence: Optional[float] = Query(None),
    card_types: Optional[List[str]] = Query(None),
    timeout: Optional[float] = Query(None),
):
    try:
        paths = analysis_service.critical_paths(
            limit,
            types=types,
            lifecycle_state=lifecycle_state,
            min_confidence=min_confidence,
            card_types=card_types,
            timeout=timeout,
        )
    except GraphEngineError as exc:
        _raise_http(exc)
    return [path.to_dict() for path in paths]


@app.post("/api/v1/relationships/cache/invalidate", response_model=CacheInvalidationResponse)
def invalidate_relationship_cache():
    analysis_service.invalidate_cache()
    return {"status": "invalidated", "cache": analysis_service.cache.describe().to_dict()}


@app.get("/api/v1/relationships/{card_id}/chains")
def get_relationship_chains(
    card_id: str,
    depth: Optional[int] = Query(None, description="Maximum hop count; <= 0 returns the root only"),
    types: Optional[List[str]] = Query(None),
    lifecycle_state: Optional[str] = Query(None),
    min_confidence: Optional[float] = Query(None),
    card_types: Optional[List[str]] = Query(None),
    timeout: Optional[float] = Query(None),
):
    try:
        chain = analysis_service.chains(
            card_id,
            depth,
            types=types,
            lifecycle_state=lifecycle_state,
            min_confidence=min_confidence,
            card_types=card_types,
            timeout=timeout,
        )
    except GraphEngineError as exc:
        _raise_http(exc)
    return chain.to_dict()


@app.get("/api/v1/relationships/{card_id}/impact")
def get_relationship_impact(
    card_id: str,
    types: Optional[List[str]] = Query(None),
    lifecycle_state: Optional[str] = Query(None),
    min_confidence: Optional[float] = Query(None),
    card_types: Optional[List[str]] = Query(None),
    timeout: Optional[float] = Query(None),
):
    try:
        result = analysis_service.impact(
            card_id,
            types=types,
            lifecycle_state=lifecycle_state,
            min_confidence=min_confidence,
            card_types=card_types,
            timeout=timeout,
        )
    except GraphEngineError as exc:
        _raise_http(exc)
    return result.to_dict()


@app.get("/api/v1/graph/stats")
def get_graph_stats(
    types: Optional[List[str]] = Query(None),
    lifecycle_state: Optional[str] = Query(None),
    min_confidence: Optional[float] = Query(None),
    card_types: Optional[List[str]] = Query(None),
    timeout: Optional[float] = Query(None),
):
    try:
        stats = analysis_service.graph_stats(
            types=types,
            lifecycle_state=lifecycle_state,
            min_confidence=min_confidence,
            card_types=card_types,
            timeout=timeout,
        )
    except GraphEngineError as exc:
        _raise_http(exc)
    return stats.to_dict()


# ============================================================================
# MAIN
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Archgraph Relationship API...")
    logger.info("API docs: http://localhost:8000/docs")

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=int(os.getenv("ARCHGRAPH_PORT", "8000")),
        log_level="info",
    )
