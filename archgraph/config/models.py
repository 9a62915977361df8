"""
Typed configuration models for the relationship graph engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class StoreSettings:
    backend: str
    files: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Neo4jSettings:
    enabled: bool
    uri: Optional[str]
    username: Optional[str]
    password: Optional[str]
    database: Optional[str]


@dataclass(frozen=True)
class CacheSettings:
    enabled: bool
    ttl_seconds: int


@dataclass(frozen=True)
class ChainSettings:
    default_depth: int
    max_depth: int


@dataclass(frozen=True)
class ImpactSettings:
    max_depth: Optional[int]
    base_weight: float
    structural_weight: float
    upstream_weight: float
    downstream_weight: float
    saturation: float
    decompose_threshold: int


@dataclass(frozen=True)
class MatrixSettings:
    max_nodes: int
    value_mode: str


@dataclass(frozen=True)
class CriticalPathSettings:
    max_paths: int
    min_path_length: int
    max_path_length: int
    significance_threshold: float
    max_expansions: int


@dataclass(frozen=True)
class EngineSettings:
    timeout_seconds: float
    cache: CacheSettings
    chains: ChainSettings
    impact: ImpactSettings
    matrix: MatrixSettings
    critical_paths: CriticalPathSettings
