"""
Config Validator and Access Layer

Ensures config.yaml is the single source of truth for store selection and
engine tuning. Provides safe accessors that validate fields before use so
the analyzers never have to guess at defaults or ranges.
"""

import logging
from typing import Dict, Any

from .config.models import (
    CacheSettings,
    ChainSettings,
    CriticalPathSettings,
    EngineSettings,
    ImpactSettings,
    MatrixSettings,
    Neo4jSettings,
    StoreSettings,
)

logger = logging.getLogger(__name__)

STORE_BACKENDS = {"yaml", "neo4j"}
MATRIX_VALUE_MODES = {"count", "weighted"}


class ConfigValidationError(Exception):
    """Raised when config validation fails."""
    pass


def _positive_int(value: Any, path: str, default: int) -> int:
    if value is None:
        return default
    try:
        int_value = int(value)
    except (TypeError, ValueError):
        raise ConfigValidationError(f"{path} must be an integer.")
    if int_value <= 0:
        raise ConfigValidationError(f"{path} must be greater than zero.")
    return int_value


def _non_negative_float(value: Any, path: str, default: float) -> float:
    if value is None:
        return default
    try:
        float_value = float(value)
    except (TypeError, ValueError):
        raise ConfigValidationError(f"{path} must be a number.")
    if float_value < 0:
        raise ConfigValidationError(f"{path} must be zero or greater.")
    return float_value


def _choice(value: Any, path: str, allowed: set, default: str) -> str:
    if value is None:
        return default
    normalized = str(value).strip().lower()
    if normalized not in allowed:
        raise ConfigValidationError(
            f"Invalid {path} '{value}'. Expected one of: {', '.join(sorted(allowed))}."
        )
    return normalized


class ConfigAccessor:
    """
    Safe config accessor that validates fields exist before use.

    This class ensures:
    1. Store and engine settings come from config
    2. Fields are validated before access
    3. Numeric bounds are enforced once, here
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize config accessor.

        Args:
            config: Configuration dictionary from load_config()
        """
        self.config = config or {}
        self._validate_structure()

    def _validate_structure(self):
        """Validate that required top-level sections exist."""
        required_sections = [
            "store",
            "engine",
        ]

        missing = [section for section in required_sections if section not in self.config]
        if missing:
            raise ConfigValidationError(
                f"Missing required config sections: {', '.join(missing)}"
            )

    def get(self, path: str, default: Any = None, required: bool = False) -> Any:
        """
        Safely get a config value by dot-separated path.

        Args:
            path: Dot-separated path (e.g., "engine.matrix.max_nodes")
            default: Default value if path doesn't exist
            required: If True, raise error if path doesn't exist

        Returns:
            Config value or default

        Raises:
            ConfigValidationError: If required=True and path doesn't exist
        """
        parts = path.split(".")
        value = self.config

        for part in parts:
            if not isinstance(value, dict) or part not in value:
                if required:
                    raise ConfigValidationError(
                        f"Required config path not found: {path}"
                    )
                return default
            value = value[part]

        return value

    def get_store_settings(self) -> StoreSettings:
        """Return which backend feeds the graph engine and where its data lives."""
        store_cfg = self.get("store", {}) or {}
        backend = _choice(store_cfg.get("backend"), "store.backend", STORE_BACKENDS, "yaml")
        files = [str(path) for path in store_cfg.get("files", []) or []]
        if backend == "yaml" and not files:
            logger.warning("[CONFIG] store.backend is yaml but store.files is empty")
        return StoreSettings(backend=backend, files=files)

    def get_neo4j_settings(self) -> Neo4jSettings:
        graph_cfg = self.get("graph", {}) or {}
        return Neo4jSettings(
            enabled=bool(graph_cfg.get("enabled", False)),
            uri=graph_cfg.get("uri"),
            username=graph_cfg.get("username"),
            password=graph_cfg.get("password"),
            database=graph_cfg.get("database"),
        )

    def get_engine_settings(self) -> EngineSettings:
        """
        Return normalized engine configuration used by every analyzer.
        """
        engine_cfg = self.get("engine", {}) or {}
        cache_cfg = engine_cfg.get("cache", {}) or {}
        chains_cfg = engine_cfg.get("chains", {}) or {}
        impact_cfg = engine_cfg.get("impact", {}) or {}
        matrix_cfg = engine_cfg.get("matrix", {}) or {}
        paths_cfg = engine_cfg.get("critical_paths", {}) or {}

        timeout_seconds = _non_negative_float(
            engine_cfg.get("timeout_seconds"), "engine.timeout_seconds", 5.0
        )
        if timeout_seconds == 0:
            raise ConfigValidationError("engine.timeout_seconds must be greater than zero.")

        cache = CacheSettings(
            enabled=bool(cache_cfg.get("enabled", True)),
            ttl_seconds=_positive_int(cache_cfg.get("ttl_seconds"), "engine.cache.ttl_seconds", 300),
        )

        chains = ChainSettings(
            default_depth=_positive_int(chains_cfg.get("default_depth"), "engine.chains.default_depth", 3),
            max_depth=_positive_int(chains_cfg.get("max_depth"), "engine.chains.max_depth", 10),
        )
        if chains.default_depth > chains.max_depth:
            raise ConfigValidationError(
                "engine.chains.default_depth must not exceed engine.chains.max_depth."
            )

        impact_max_depth = impact_cfg.get("max_depth")
        impact = ImpactSettings(
            max_depth=(
                None
                if impact_max_depth is None
                else _positive_int(impact_max_depth, "engine.impact.max_depth", 1)
            ),
            base_weight=_non_negative_float(impact_cfg.get("base_weight"), "engine.impact.base_weight", 0.4),
            structural_weight=_non_negative_float(
                impact_cfg.get("structural_weight"), "engine.impact.structural_weight", 0.6
            ),
            upstream_weight=_non_negative_float(
                impact_cfg.get("upstream_weight"), "engine.impact.upstream_weight", 1.0
            ),
            downstream_weight=_non_negative_float(
                impact_cfg.get("downstream_weight"), "engine.impact.downstream_weight", 1.0
            ),
            saturation=_non_negative_float(impact_cfg.get("saturation"), "engine.impact.saturation", 5.0),
            decompose_threshold=_positive_int(
                impact_cfg.get("decompose_threshold"), "engine.impact.decompose_threshold", 5
            ),
        )
        if impact.saturation == 0:
            raise ConfigValidationError("engine.impact.saturation must be greater than zero.")
        if impact.base_weight + impact.structural_weight > 1.0 + 1e-9:
            raise ConfigValidationError(
                "engine.impact.base_weight + engine.impact.structural_weight must not exceed 1.0."
            )

        matrix = MatrixSettings(
            max_nodes=_positive_int(matrix_cfg.get("max_nodes"), "engine.matrix.max_nodes", 20),
            value_mode=_choice(
                matrix_cfg.get("value_mode"), "engine.matrix.value_mode", MATRIX_VALUE_MODES, "count"
            ),
        )

        critical_paths = CriticalPathSettings(
            max_paths=_positive_int(paths_cfg.get("max_paths"), "engine.critical_paths.max_paths", 10),
            min_path_length=_positive_int(
                paths_cfg.get("min_path_length"), "engine.critical_paths.min_path_length", 2
            ),
            max_path_length=_positive_int(
                paths_cfg.get("max_path_length"), "engine.critical_paths.max_path_length", 6
            ),
            significance_threshold=_non_negative_float(
                paths_cfg.get("significance_threshold"),
                "engine.critical_paths.significance_threshold",
                20.0,
            ),
            max_expansions=_positive_int(
                paths_cfg.get("max_expansions"), "engine.critical_paths.max_expansions", 20000
            ),
        )
        if critical_paths.min_path_length < 2:
            raise ConfigValidationError("engine.critical_paths.min_path_length must be at least 2.")
        if critical_paths.min_path_length > critical_paths.max_path_length:
            raise ConfigValidationError(
                "engine.critical_paths.min_path_length must not exceed max_path_length."
            )

        return EngineSettings(
            timeout_seconds=timeout_seconds,
            cache=cache,
            chains=chains,
            impact=impact,
            matrix=matrix,
            critical_paths=critical_paths,
        )
