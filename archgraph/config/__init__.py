"""
Typed engine settings plus lazy access to the config context.

`context` imports `config_validator`, which imports `models` from this
package, so the context is only imported on demand.
"""

from typing import TYPE_CHECKING

from .models import (
    CacheSettings,
    ChainSettings,
    CriticalPathSettings,
    EngineSettings,
    ImpactSettings,
    MatrixSettings,
    Neo4jSettings,
    StoreSettings,
)

if TYPE_CHECKING:
    from .context import ConfigContext


def get_config_context(config_path=None) -> "ConfigContext":
    from .context import get_config_context as _get_config_context

    return _get_config_context(config_path)


__all__ = [
    "CacheSettings",
    "ChainSettings",
    "CriticalPathSettings",
    "EngineSettings",
    "ImpactSettings",
    "MatrixSettings",
    "Neo4jSettings",
    "StoreSettings",
    "get_config_context",
]
