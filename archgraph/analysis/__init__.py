"""
Relationship analysis package.
"""

from .models import (
    CriticalPath,
    DependencyChain,
    ImpactResult,
    MatrixCell,
    RelationshipMatrix,
    RelationshipTypeSummary,
    RiskLevel,
    TraversalLink,
    TraversalNode,
    classify_risk,
)
from .impact_analyzer import ImpactAnalyzer
from .chains import ChainTraversal
from .matrix import MatrixBuilder
from .critical_paths import CriticalPathDetector
from .service import RelationshipAnalysisService

__all__ = [
    "ChainTraversal",
    "CriticalPath",
    "CriticalPathDetector",
    "DependencyChain",
    "ImpactAnalyzer",
    "ImpactResult",
    "MatrixBuilder",
    "MatrixCell",
    "RelationshipAnalysisService",
    "RelationshipMatrix",
    "RelationshipTypeSummary",
    "RiskLevel",
    "TraversalLink",
    "TraversalNode",
    "classify_risk",
]
